"""
Tests for datetime handling in the state models.

Naive datetimes are interpreted as UTC on every persisted timestamp field.
"""

from datetime import datetime, UTC

from autosolve.schemas.repair_outcome import PendingRepairSubmission, RepairSubmission
from autosolve.schemas.subscription import DiagnosticSession, TrialStats, UsageStats

NOW = datetime(2024, 6, 5, 12, 0, tzinfo=UTC)


class TestPendingFollowUpDue:
    """Test the computed due state."""

    def test_naive_schedule_compares_with_aware_now(self):
        follow_up = PendingRepairSubmission(
            diagnostic_id="diag-1", scheduled_follow_up_date=datetime(2024, 6, 1)
        )
        assert follow_up.scheduled_follow_up_date == datetime(2024, 6, 1, tzinfo=UTC)
        assert follow_up.is_due(NOW) is True

    def test_naive_now_compares_with_aware_schedule(self):
        follow_up = PendingRepairSubmission(
            diagnostic_id="diag-1", scheduled_follow_up_date=datetime(2024, 6, 8, tzinfo=UTC)
        )
        assert follow_up.is_due(datetime(2024, 6, 5, 12, 0)) is False
        assert follow_up.is_due(datetime(2024, 6, 8)) is True


class TestNaiveTimestamps:
    """Test that naive values become UTC-aware."""

    def test_submission_timestamps(self):
        submission = RepairSubmission(
            id="sub-1",
            diagnostic_id="diag-1",
            outcome="fixed",
            timestamp=datetime(2024, 6, 1, 9, 30),
            submitted_at=datetime(2024, 6, 1, 9, 31),
        )
        assert submission.timestamp == datetime(2024, 6, 1, 9, 30, tzinfo=UTC)
        assert submission.submitted_at.tzinfo is not None

    def test_session_timestamp(self):
        session = DiagnosticSession(id="s1", timestamp=datetime(2024, 6, 1))
        assert session.timestamp.tzinfo is not None

    def test_usage_and_trial_dates(self):
        usage = UsageStats(week_start_date=datetime(2024, 6, 2))
        trial = TrialStats(trial_start_date=datetime(2024, 6, 3, 8, 0))
        assert usage.week_start_date == datetime(2024, 6, 2, tzinfo=UTC)
        assert trial.trial_start_date == datetime(2024, 6, 3, 8, 0, tzinfo=UTC)

    def test_missing_dates_stay_none(self):
        assert UsageStats().week_start_date is None
        assert TrialStats().trial_start_date is None

    def test_aware_values_unchanged(self):
        session = DiagnosticSession(id="s1", timestamp=NOW)
        assert session.timestamp == NOW

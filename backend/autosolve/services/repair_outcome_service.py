"""
Repair Outcome Service - follow-up scheduling, submissions and cached stats.

Follow-up lifecycle per entry: scheduled -> due -> completed.
"Due" is computed (date reached, not completed, reminder not sent); only
completion or an explicit reminder mark takes an entry out of the due set.
Entries are never deleted.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from autosolve.core.clock import Clock, SystemClock
from autosolve.core.config import Settings, get_settings
from autosolve.core.logging import get_logger
from autosolve.db.repositories import RepairOutcomeRepository
from autosolve.schemas.repair_outcome import (
    DiagnosticData,
    PendingRepairSubmission,
    RepairDetails,
    RepairOutcome,
    RepairOutcomeState,
    RepairSubmission,
    RepairType,
    RepairVehicle,
    WhatFixedItStats,
)
from autosolve.services.outcome_aggregator import calculate_stats, generate_stats_key

logger = get_logger(__name__)


class RepairOutcomeService:
    """
    Repair outcome state with write-through persistence.

    Usage:
        outcomes = RepairOutcomeService(RepairOutcomeRepository(store))
        outcomes.schedule_follow_up(session.id, 3)
        for follow_up in outcomes.get_pending_follow_ups():
            ...
    """

    def __init__(
        self,
        repository: RepairOutcomeRepository,
        settings: Settings | None = None,
        clock: Clock | None = None,
        mark_on_surface: bool | None = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.mark_on_surface = (
            self.settings.FOLLOW_UP_MARK_ON_SURFACE if mark_on_surface is None else mark_on_surface
        )
        self._state = repository.load()

    def _save(self) -> None:
        self.repository.save(self._state)

    @property
    def state(self) -> RepairOutcomeState:
        """Deep copy of the current state."""
        return self._state.model_copy(deep=True)

    # =========================================================================
    # Follow-ups
    # =========================================================================

    def schedule_follow_up(self, diagnostic_id: str, days_later: int) -> PendingRepairSubmission:
        """Schedule a follow-up ``days_later`` days from now. Duplicates are allowed."""
        follow_up = PendingRepairSubmission(
            diagnostic_id=diagnostic_id,
            scheduled_follow_up_date=self.clock.now() + timedelta(days=days_later),
        )
        self._state.pending_follow_ups.append(follow_up)
        self._save()
        logger.info(
            "Follow-up scheduled",
            extra={
                "event": "follow_up_scheduled",
                "diagnostic_id": diagnostic_id,
                "days_later": days_later,
            },
        )
        return follow_up.model_copy()

    def get_pending_follow_ups(self) -> list[PendingRepairSubmission]:
        """
        Follow-ups that are due now.

        Read-only unless mark_on_surface is enabled, in which case the returned
        entries are flagged reminder_sent and will not surface again.
        """
        now = self.clock.now()
        due = [f for f in self._state.pending_follow_ups if f.is_due(now)]
        surfaced = [f.model_copy() for f in due]

        if due and self.mark_on_surface:
            for follow_up in due:
                follow_up.reminder_sent = True
            self._save()

        return surfaced

    def mark_reminder_sent(self, diagnostic_id: str) -> int:
        """Flag every open follow-up for ``diagnostic_id`` as shown."""
        updated = 0
        for follow_up in self._state.pending_follow_ups:
            if follow_up.diagnostic_id == diagnostic_id and not follow_up.completed:
                follow_up.reminder_sent = True
                updated += 1
        if updated:
            self._save()
        return updated

    def mark_follow_up_completed(self, diagnostic_id: str) -> int:
        """
        Complete every follow-up for ``diagnostic_id``.

        Unknown ids are a no-op. Returns the number of entries matched.
        """
        matched = 0
        for follow_up in self._state.pending_follow_ups:
            if follow_up.diagnostic_id == diagnostic_id:
                follow_up.completed = True
                matched += 1
        if matched:
            self._save()
            logger.info(
                "Follow-up completed",
                extra={"event": "follow_up_completed", "diagnostic_id": diagnostic_id, "entries": matched},
            )
        return matched

    def get_follow_ups(self, diagnostic_id: str | None = None) -> list[PendingRepairSubmission]:
        """All follow-ups, optionally for one diagnostic, including completed ones."""
        return [
            f.model_copy()
            for f in self._state.pending_follow_ups
            if diagnostic_id is None or f.diagnostic_id == diagnostic_id
        ]

    # =========================================================================
    # Submissions
    # =========================================================================

    def add_submission(self, submission: RepairSubmission) -> None:
        """Queue a submission for sync and keep it in the user's own repairs."""
        self._state.pending_submissions.append(submission)
        self._state.my_repairs.append(submission)
        self._save()
        logger.info(
            "Repair outcome recorded",
            extra={
                "event": "repair_submitted",
                "diagnostic_id": submission.diagnostic_id,
                "outcome": submission.outcome.value,
            },
        )

    def submit_outcome(
        self,
        diagnostic_id: str,
        outcome: RepairOutcome | str,
        repair: RepairDetails | None = None,
        vehicle: RepairVehicle | None = None,
        diagnostic_data: DiagnosticData | None = None,
        confidence: int = 5,
        additional_notes: str | None = None,
        days_to_repair: int = 0,
        user_id: str = "anonymous",
    ) -> RepairSubmission:
        """
        Build a submission, record it and complete its follow-ups.

        A not_fixed outcome carries no repair details.
        """
        outcome = RepairOutcome(outcome)
        if outcome == RepairOutcome.NOT_FIXED:
            repair = RepairDetails(type=repair.type if repair else RepairType.DIY)
        elif repair is None:
            repair = RepairDetails()

        now = self.clock.now()
        submission = RepairSubmission(
            id=uuid4().hex,
            user_id=user_id,
            diagnostic_id=diagnostic_id,
            vehicle=vehicle or RepairVehicle(),
            diagnostic_data=diagnostic_data or DiagnosticData(),
            repair=repair,
            outcome=outcome,
            confidence=confidence,
            additional_notes=additional_notes,
            days_to_repair=days_to_repair,
            timestamp=now,
            submitted_at=now,
        )
        self.add_submission(submission)
        self.mark_follow_up_completed(diagnostic_id)
        return submission

    def get_pending_submissions(self) -> list[RepairSubmission]:
        return list(self._state.pending_submissions)

    def clear_pending_submissions(self) -> None:
        """Drop the sync queue; the user's own repairs are kept."""
        self._state.pending_submissions = []
        self._save()

    def get_my_repairs(self) -> list[RepairSubmission]:
        return list(self._state.my_repairs)

    # =========================================================================
    # Contribution opt-in
    # =========================================================================

    @property
    def contribution_enabled(self) -> bool:
        return self._state.contribution_enabled

    def set_contribution_enabled(self, enabled: bool) -> None:
        self._state.contribution_enabled = enabled
        self._save()

    # =========================================================================
    # Cached community stats
    # =========================================================================

    def cache_stats(self, key: str, stats: WhatFixedItStats) -> None:
        """Store stats under ``key``, replacing any previous entry."""
        self._state.cached_stats[key] = stats
        self._save()
        logger.debug(
            "Community stats cached",
            extra={"event": "stats_cached", "stats_key": key, "total_reports": stats.total_reports},
        )

    def get_cached_stats(self, key: str) -> WhatFixedItStats | None:
        """Cached stats for ``key``; None means no data yet."""
        stats = self._state.cached_stats.get(key)
        return stats.model_copy(deep=True) if stats is not None else None

    def refresh_community_stats(
        self,
        symptoms: list[str],
        dtc_codes: list[str],
    ) -> tuple[str, WhatFixedItStats]:
        """
        Recompute and cache stats from locally known submissions.

        Submissions match when their diagnostic data yields the same stats key.
        """
        strategy = self.settings.STATS_KEY_STRATEGY
        key = generate_stats_key(symptoms, dtc_codes, strategy=strategy)
        matching = [
            s
            for s in self._state.my_repairs
            if generate_stats_key(
                s.diagnostic_data.symptoms, s.diagnostic_data.dtc_codes, strategy=strategy
            )
            == key
        ]
        stats = calculate_stats(
            matching,
            now=self.clock.now(),
            top_limit=self.settings.TOP_SOLUTIONS_LIMIT,
            recent_window_days=self.settings.RECENT_REPORT_WINDOW_DAYS,
        )
        self.cache_stats(key, stats)
        return key, stats

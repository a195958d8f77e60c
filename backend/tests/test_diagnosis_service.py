"""
Tests for the scan orchestration flow.

Tests cover:
- Quota gate before the diagnostic call
- Request validation and DTC extraction
- State changes on success and none on failure
- Community stats lookup
"""

from datetime import timedelta

import pytest

from autosolve.core.exceptions import DiagnosisException, ValidationException
from autosolve.schemas.diagnosis import DiagnosisRequest, DiagnosisResult, ScanStatus, ScanVehicle
from autosolve.schemas.repair_outcome import WhatFixedItStats
from autosolve.services.diagnosis_service import DiagnosisOrchestrator, extract_dtc_codes
from autosolve.services.outcome_aggregator import generate_stats_key


class RecordingDiagnose:
    """Async diagnostic callable that records its queries."""

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else {"summary": "Vacuum leak likely", "confidence": 0.8}
        self.error = error
        self.queries = []

    async def __call__(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.result


def _request(description="Rough idle, codes P0171 and p0300", make="Honda", model="Civic"):
    return DiagnosisRequest(
        vehicle=ScanVehicle(year="2015", make=make, model=model, mileage="98000"),
        issue_description=description,
    )


@pytest.fixture
def diagnose():
    return RecordingDiagnose()


@pytest.fixture
def orchestrator(usage, outcomes, diagnose, test_settings, clock):
    ids = iter(f"scan-{i}" for i in range(100))
    return DiagnosisOrchestrator(
        usage, outcomes, diagnose, settings=test_settings, clock=clock, id_factory=lambda: next(ids)
    )


class TestExtractDtcCodes:
    """Test DTC extraction from free text."""

    def test_extracts_and_uppercases(self):
        assert extract_dtc_codes("check p0171, then B1234") == ["P0171", "B1234"]

    def test_deduplicates_in_order(self):
        assert extract_dtc_codes("P0300 P0171 p0300") == ["P0300", "P0171"]

    def test_no_codes(self):
        assert extract_dtc_codes("car makes a clunking noise") == []
        assert extract_dtc_codes("") == []


class TestRunScan:
    """Test a successful scan."""

    @pytest.mark.asyncio
    async def test_completed_scan(self, orchestrator, diagnose, usage, clock):
        result = await orchestrator.run_scan(_request())

        assert result.status == ScanStatus.COMPLETED
        assert result.remaining_scans == 1
        assert result.session.id == "scan-0"
        assert result.session.timestamp == clock.now()
        assert result.session.dtc_codes == ["P0171", "P0300"]
        assert result.session.summary == "Vacuum leak likely"
        assert result.result.model_extra["confidence"] == 0.8
        assert usage.state.usage_stats.scans_this_week == 1

    @pytest.mark.asyncio
    async def test_query_defaults(self, orchestrator, diagnose):
        request = DiagnosisRequest(
            vehicle=ScanVehicle(make="Ford", model="Focus"), issue_description="Won't start"
        )
        await orchestrator.run_scan(request)
        query = diagnose.queries[0]
        assert query.vehicle.year == "Unknown"
        assert query.vehicle.engine == "Not specified"
        assert query.symptoms == ["Won't start"]
        assert query.dtc_codes == []

    @pytest.mark.asyncio
    async def test_session_added_to_history(self, orchestrator, usage):
        usage.set_subscription_tier("premium")
        await orchestrator.run_scan(_request())
        history = usage.get_history()
        assert len(history) == 1
        assert history[0].vehicle.make == "Honda"
        assert history[0].vehicle.mileage == "98000"

    @pytest.mark.asyncio
    async def test_follow_up_scheduled(self, orchestrator, outcomes, clock):
        result = await orchestrator.run_scan(_request())
        follow_ups = outcomes.get_follow_ups(result.session.id)
        assert len(follow_ups) == 1
        assert follow_ups[0].scheduled_follow_up_date == clock.now() + timedelta(days=3)

    @pytest.mark.asyncio
    async def test_cached_stats_attached(self, orchestrator, outcomes):
        request = _request()
        key = generate_stats_key([request.issue_description], ["P0171", "P0300"])
        outcomes.cache_stats(key, WhatFixedItStats(total_reports=4))

        result = await orchestrator.run_scan(request)
        assert result.stats_key == key
        assert result.community_stats.total_reports == 4

    @pytest.mark.asyncio
    async def test_no_cached_stats(self, orchestrator):
        result = await orchestrator.run_scan(_request())
        assert result.community_stats is None

    @pytest.mark.asyncio
    async def test_accepts_result_model(self, usage, outcomes, test_settings, clock):
        diagnose = RecordingDiagnose(result=DiagnosisResult(summary="Bad coil"))
        orchestrator = DiagnosisOrchestrator(usage, outcomes, diagnose, settings=test_settings, clock=clock)
        result = await orchestrator.run_scan(_request())
        assert result.session.summary == "Bad coil"


class TestQuotaGate:
    """Test that exhausted quota stops the scan early."""

    @pytest.mark.asyncio
    async def test_quota_exceeded(self, orchestrator, diagnose, usage, outcomes):
        await orchestrator.run_scan(_request())
        await orchestrator.run_scan(_request())

        result = await orchestrator.run_scan(_request())
        assert result.status == ScanStatus.QUOTA_EXCEEDED
        assert result.remaining_scans == 0
        assert result.session is None
        assert len(diagnose.queries) == 2
        assert len(outcomes.get_follow_ups()) == 2
        assert usage.state.usage_stats.scans_this_week == 2


class TestFailures:
    """Test that failed scans leave state untouched."""

    @pytest.mark.asyncio
    async def test_missing_vehicle(self, orchestrator, diagnose):
        with pytest.raises(ValidationException) as exc_info:
            await orchestrator.run_scan(_request(make=""))
        assert exc_info.value.details["field"] == "vehicle"
        assert diagnose.queries == []

    @pytest.mark.asyncio
    async def test_missing_description(self, orchestrator):
        with pytest.raises(ValidationException) as exc_info:
            await orchestrator.run_scan(_request(description="   "))
        assert exc_info.value.details["field"] == "issue_description"

    @pytest.mark.asyncio
    async def test_diagnose_error(self, usage, outcomes, test_settings, clock):
        diagnose = RecordingDiagnose(error=TimeoutError("upstream timeout"))
        orchestrator = DiagnosisOrchestrator(usage, outcomes, diagnose, settings=test_settings, clock=clock)

        with pytest.raises(DiagnosisException):
            await orchestrator.run_scan(_request())
        assert usage.state.usage_stats.scans_this_week == 0
        assert usage.state.history == []
        assert outcomes.get_follow_ups() == []

    @pytest.mark.asyncio
    async def test_unusable_result(self, usage, outcomes, test_settings, clock):
        diagnose = RecordingDiagnose(result={"summary": ["not", "text"]})
        orchestrator = DiagnosisOrchestrator(usage, outcomes, diagnose, settings=test_settings, clock=clock)

        with pytest.raises(DiagnosisException):
            await orchestrator.run_scan(_request())
        assert usage.state.usage_stats.total_scans_all_time == 0

"""
Diagnosis Service - scan flow orchestration.

This module coordinates one scan request:
- Quota gate via UsageService
- Input validation and DTC extraction from the free-text description
- The external diagnostic call (LLM), injected as an async callable
- On success: usage counting, history entry, repair outcome follow-up
- Lookup of cached community stats for the same symptoms and codes

Prompting, response parsing and rendering belong to the diagnostic callable.
A failed call leaves all state untouched.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from autosolve.core.clock import Clock, SystemClock
from autosolve.core.config import Settings, get_settings
from autosolve.core.exceptions import DiagnosisException, ValidationException
from autosolve.core.logging import get_logger
from autosolve.schemas.diagnosis import (
    DiagnosisQuery,
    DiagnosisRequest,
    DiagnosisResult,
    ScanResult,
    ScanStatus,
    ScanVehicle,
)
from autosolve.schemas.subscription import DiagnosticSession, VehicleSummary
from autosolve.services.outcome_aggregator import generate_stats_key
from autosolve.services.repair_outcome_service import RepairOutcomeService
from autosolve.services.usage_service import UsageService

logger = get_logger(__name__)

DiagnoseCallable = Callable[[DiagnosisQuery], Awaitable[DiagnosisResult | dict[str, Any]]]

DTC_PATTERN = re.compile(r"[PBCU][0-9]{4}", re.IGNORECASE)


def extract_dtc_codes(text: str) -> list[str]:
    """Upper-cased DTC codes found in ``text``, deduplicated in order of appearance."""
    codes: dict[str, None] = {}
    for match in DTC_PATTERN.findall(text or ""):
        codes.setdefault(match.upper(), None)
    return list(codes)


class DiagnosisOrchestrator:
    """
    Main scan orchestration service.

    Usage:
        orchestrator = DiagnosisOrchestrator(usage, outcomes, diagnose=llm_diagnose)
        result = await orchestrator.run_scan(request)
        if result.status == ScanStatus.QUOTA_EXCEEDED:
            show_paywall()
    """

    def __init__(
        self,
        usage: UsageService,
        outcomes: RepairOutcomeService,
        diagnose: DiagnoseCallable,
        settings: Settings | None = None,
        clock: Clock | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self.usage = usage
        self.outcomes = outcomes
        self.diagnose = diagnose
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.id_factory = id_factory or (lambda: uuid4().hex)

    # =========================================================================
    # Main Scan Method
    # =========================================================================

    async def run_scan(self, request: DiagnosisRequest) -> ScanResult:
        """
        Run one scan request end to end.

        Returns:
            ScanResult with status QUOTA_EXCEEDED (nothing changed) or COMPLETED.

        Raises:
            ValidationException: Vehicle make/model or description missing.
            DiagnosisException: The diagnostic call failed; no state was changed.
        """
        if not self.usage.can_scan():
            return ScanResult(status=ScanStatus.QUOTA_EXCEEDED, remaining_scans=0)

        self._validate_request(request)

        query = self._build_query(request)
        result = await self._call_diagnose(query)

        self.usage.increment_scan_usage()

        session = DiagnosticSession(
            id=self.id_factory(),
            timestamp=self.clock.now(),
            vehicle=VehicleSummary(
                year=request.vehicle.year or "N/A",
                make=request.vehicle.make or "N/A",
                model=request.vehicle.model or "N/A",
                mileage=request.vehicle.mileage or "N/A",
            ),
            symptoms=query.symptoms,
            dtc_codes=query.dtc_codes,
            summary=result.summary,
        )
        self.usage.add_to_history(session)
        self.outcomes.schedule_follow_up(session.id, self.settings.FOLLOW_UP_DAYS)

        stats_key = generate_stats_key(
            query.symptoms, query.dtc_codes, strategy=self.settings.STATS_KEY_STRATEGY
        )

        logger.info(
            "Scan completed",
            extra={
                "event": "scan_completed",
                "diagnostic_id": session.id,
                "dtc_count": len(query.dtc_codes),
                "tier": self.usage.tier.value,
            },
        )

        return ScanResult(
            status=ScanStatus.COMPLETED,
            remaining_scans=self.usage.get_remaining_scans(),
            session=session,
            result=result,
            stats_key=stats_key,
            community_stats=self.outcomes.get_cached_stats(stats_key),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _validate_request(request: DiagnosisRequest) -> None:
        if not request.vehicle.make.strip() or not request.vehicle.model.strip():
            raise ValidationException("Please enter a vehicle make and model", field="vehicle")
        if not request.issue_description.strip():
            raise ValidationException(
                "Please describe your issue, symptoms, or enter DTC codes",
                field="issue_description",
            )

    @staticmethod
    def _build_query(request: DiagnosisRequest) -> DiagnosisQuery:
        vehicle = request.vehicle
        return DiagnosisQuery(
            vehicle=ScanVehicle(
                vin=vehicle.vin,
                year=vehicle.year or "Unknown",
                make=vehicle.make,
                model=vehicle.model,
                engine=vehicle.engine or "Not specified",
                mileage=vehicle.mileage or "Not specified",
            ),
            symptoms=[request.issue_description],
            dtc_codes=extract_dtc_codes(request.issue_description),
        )

    async def _call_diagnose(self, query: DiagnosisQuery) -> DiagnosisResult:
        try:
            raw = await self.diagnose(query)
        except Exception as e:
            logger.error(f"Diagnostic call failed: {e}", extra={"event": "scan_failed"})
            raise DiagnosisException(original_error=e) from e

        if isinstance(raw, DiagnosisResult):
            return raw
        try:
            return DiagnosisResult.model_validate(raw)
        except ValidationError as e:
            logger.error("Diagnostic call returned an unusable result", extra={"event": "scan_failed"})
            raise DiagnosisException("Diagnostic result could not be read", original_error=e) from e

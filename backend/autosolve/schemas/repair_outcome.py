"""
Repair outcome schemas - the crowdsourced "what fixed it" records.

Submissions are immutable once created. Stats and solutions are derived
values recomputed from a list of submissions.
"""

from datetime import datetime
from enum import StrEnum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from autosolve.core.clock import ensure_aware


class RepairOutcome(StrEnum):
    """Whether the repair resolved the diagnosed issue."""

    FIXED = "fixed"
    PARTIAL = "partial"
    NOT_FIXED = "not_fixed"


class RepairType(StrEnum):
    """Who performed the repair."""

    DIY = "diy"
    SHOP = "shop"


class RepairPart(BaseModel):
    """A replaced part."""

    model_config = ConfigDict(frozen=True)

    name: str
    cost: float = Field(0.0, ge=0)


class RepairVehicle(BaseModel):
    """Vehicle info used for matching reports."""

    model_config = ConfigDict(frozen=True)

    year: str = ""
    make: str = ""
    model: str = ""
    engine: str = ""
    mileage: str = ""


class DiagnosticData(BaseModel):
    """The diagnostic input and result the repair relates to."""

    model_config = ConfigDict(frozen=True)

    symptoms: List[str] = Field(default_factory=list)
    dtc_codes: List[str] = Field(default_factory=list)
    ai_diagnosis_title: str = ""
    ai_diagnosis_path: str = Field("", description="Which diagnostic path was followed")


class RepairDetails(BaseModel):
    """What was done to the vehicle."""

    model_config = ConfigDict(frozen=True)

    type: RepairType = RepairType.DIY
    parts_replaced: List[RepairPart] = Field(default_factory=list)
    labor_description: str = ""
    total_cost: float = Field(0.0, ge=0)
    time_spent: float = Field(0.0, ge=0, description="Hours")
    shop_name: Optional[str] = None


class RepairSubmission(BaseModel):
    """A user-reported repair outcome."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str = "anonymous"
    diagnostic_id: str = Field(..., description="Links to the originating diagnostic session")
    vehicle: RepairVehicle = Field(default_factory=RepairVehicle)
    diagnostic_data: DiagnosticData = Field(default_factory=DiagnosticData)
    repair: RepairDetails = Field(default_factory=RepairDetails)
    outcome: RepairOutcome
    confidence: int = Field(5, ge=1, le=5, description="How sure the user is this fixed it")
    additional_notes: Optional[str] = None
    days_to_repair: int = Field(0, ge=0, description="Days between diagnosis and repair")
    timestamp: datetime
    submitted_at: datetime
    upvotes: int = Field(0, ge=0)
    downvotes: int = Field(0, ge=0)
    verified_by_expert: bool = False
    flagged_as_incorrect: bool = False

    @field_validator("timestamp", "submitted_at")
    @classmethod
    def validate_timestamps(cls, v: datetime) -> datetime:
        """Naive timestamps are UTC."""
        return ensure_aware(v)


class PendingRepairSubmission(BaseModel):
    """
    A scheduled "did this fix it?" follow-up.

    Lifecycle: scheduled -> due -> completed. "Due" is computed, never stored.
    """

    diagnostic_id: str
    scheduled_follow_up_date: datetime
    reminder_sent: bool = False
    completed: bool = False

    @field_validator("scheduled_follow_up_date")
    @classmethod
    def validate_scheduled_follow_up_date(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    def is_due(self, now: datetime) -> bool:
        """Actionable: date reached, not completed, not yet surfaced."""
        return (
            not self.completed
            and not self.reminder_sent
            and self.scheduled_follow_up_date <= ensure_aware(now)
        )


class RepairSolution(BaseModel):
    """Aggregated reports sharing one repair description."""

    description: str
    parts_used: List[str] = Field(default_factory=list)
    success_count: int = 0
    total_attempts: int = 0
    success_rate: float = Field(0.0, ge=0, le=100, description="Percentage")
    average_cost: float = 0.0
    diy_friendly: bool = False
    recent_reports: int = Field(0, description="Reports in the recent window")


class VehicleBreakdown(BaseModel):
    """Per make/model success figures."""

    make: str
    model: str
    count: int = 0
    success_rate: float = 0.0


class CostDistribution(BaseModel):
    """Report counts per total-cost bucket."""

    under_100: int = 0
    under_500: int = 0
    under_1000: int = 0
    over_1000: int = 0

    def total(self) -> int:
        return self.under_100 + self.under_500 + self.under_1000 + self.over_1000


class WhatFixedItStats(BaseModel):
    """Community statistics for one symptom/DTC combination."""

    total_reports: int = 0
    success_rate: float = Field(0.0, ge=0, le=100)
    average_cost: float = 0.0
    average_time: float = 0.0
    top_solutions: List[RepairSolution] = Field(default_factory=list)
    vehicle_specific: List[VehicleBreakdown] = Field(default_factory=list)
    cost_distribution: CostDistribution = Field(default_factory=CostDistribution)


class RepairOutcomeState(BaseModel):
    """Persisted repair-outcome blob."""

    pending_submissions: List[RepairSubmission] = Field(
        default_factory=list, description="Waiting to be synced"
    )
    pending_follow_ups: List[PendingRepairSubmission] = Field(default_factory=list)
    cached_stats: Dict[str, WhatFixedItStats] = Field(default_factory=dict)
    my_repairs: List[RepairSubmission] = Field(default_factory=list)
    contribution_enabled: bool = True

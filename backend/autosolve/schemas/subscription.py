"""
Subscription schemas - tier, usage counters, trial window and history.
"""

from datetime import datetime
from enum import StrEnum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from autosolve.core.clock import ensure_aware


class SubscriptionTier(StrEnum):
    """Subscription level controlling scan quota and history access."""

    FREE = "free"
    PREMIUM = "premium"
    TRIAL = "trial"


class UsageStats(BaseModel):
    """Weekly and lifetime scan counters."""

    scans_this_week: int = Field(0, ge=0, description="Scans since week_start_date")
    week_start_date: Optional[datetime] = Field(
        None, description="Week boundary as of the last write (None before first launch)"
    )
    total_scans_all_time: int = Field(0, ge=0, description="Lifetime scan count")

    @field_validator("week_start_date")
    @classmethod
    def validate_week_start_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None


class TrialStats(BaseModel):
    """Trial window state."""

    is_in_trial: bool = False
    trial_start_date: Optional[datetime] = None
    trial_scans_used: int = Field(0, ge=0)

    @field_validator("trial_start_date")
    @classmethod
    def validate_trial_start_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None


class VehicleSummary(BaseModel):
    """Vehicle description attached to a diagnostic session."""

    year: str = "N/A"
    make: str = "N/A"
    model: str = "N/A"
    mileage: str = "N/A"


class DiagnosticSession(BaseModel):
    """A completed scan as shown in the history list."""

    id: str = Field(..., description="Session identifier, also used as diagnostic_id")
    timestamp: datetime
    vehicle: VehicleSummary = Field(default_factory=VehicleSummary)
    symptoms: List[str] = Field(default_factory=list)
    dtc_codes: List[str] = Field(default_factory=list)
    summary: str = ""

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Naive timestamps are UTC."""
        return ensure_aware(v)


class SubscriptionState(BaseModel):
    """Persisted subscription/usage blob."""

    tier: SubscriptionTier = SubscriptionTier.FREE
    is_subscribed: bool = False
    usage_stats: UsageStats = Field(default_factory=UsageStats)
    trial_stats: TrialStats = Field(default_factory=TrialStats)
    history: List[DiagnosticSession] = Field(
        default_factory=list, description="Newest first"
    )

"""
Diagnosis schemas - scan request/response models.

The diagnostic call itself is an external collaborator; only the fields this
core reads from its result are declared here.
"""

from enum import StrEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from autosolve.schemas.repair_outcome import WhatFixedItStats
from autosolve.schemas.subscription import DiagnosticSession


class ScanVehicle(BaseModel):
    """Vehicle as entered on the scan screen."""

    vin: str = ""
    year: str = ""
    make: str = ""
    model: str = ""
    engine: str = ""
    mileage: str = ""


class DiagnosisRequest(BaseModel):
    """Request for a diagnostic scan."""

    vehicle: ScanVehicle = Field(default_factory=ScanVehicle)
    issue_description: str = Field(
        "", max_length=2000, description="Free text with symptoms and/or DTC codes"
    )


class DiagnosisQuery(BaseModel):
    """Normalized payload handed to the diagnostic service."""

    vehicle: ScanVehicle
    symptoms: List[str] = Field(default_factory=list)
    dtc_codes: List[str] = Field(default_factory=list)


class DiagnosisResult(BaseModel):
    """Result returned by the diagnostic service."""

    model_config = ConfigDict(extra="allow")

    summary: str = Field("", description="One-paragraph summary shown in history")


class ScanStatus(StrEnum):
    """Terminal outcome of a scan request."""

    COMPLETED = "completed"
    QUOTA_EXCEEDED = "quota_exceeded"


class ScanResult(BaseModel):
    """Outcome of DiagnosisOrchestrator.run_scan."""

    status: ScanStatus
    remaining_scans: int = 0
    session: Optional[DiagnosticSession] = None
    result: Optional[DiagnosisResult] = None
    stats_key: Optional[str] = None
    community_stats: Optional[WhatFixedItStats] = None

"""
Pydantic schemas for AutoSolve state and derived values.
"""

from autosolve.schemas.diagnosis import (
    DiagnosisQuery,
    DiagnosisRequest,
    DiagnosisResult,
    ScanResult,
    ScanStatus,
    ScanVehicle,
)
from autosolve.schemas.repair_outcome import (
    CostDistribution,
    DiagnosticData,
    PendingRepairSubmission,
    RepairDetails,
    RepairOutcome,
    RepairOutcomeState,
    RepairPart,
    RepairSolution,
    RepairSubmission,
    RepairType,
    RepairVehicle,
    VehicleBreakdown,
    WhatFixedItStats,
)
from autosolve.schemas.settings import AppSettings, DefaultVehicle, Language, Units
from autosolve.schemas.subscription import (
    DiagnosticSession,
    SubscriptionState,
    SubscriptionTier,
    TrialStats,
    UsageStats,
    VehicleSummary,
)

__all__ = [
    # Diagnosis
    "DiagnosisQuery",
    "DiagnosisRequest",
    "DiagnosisResult",
    "ScanResult",
    "ScanStatus",
    "ScanVehicle",
    # Repair outcomes
    "CostDistribution",
    "DiagnosticData",
    "PendingRepairSubmission",
    "RepairDetails",
    "RepairOutcome",
    "RepairOutcomeState",
    "RepairPart",
    "RepairSolution",
    "RepairSubmission",
    "RepairType",
    "RepairVehicle",
    "VehicleBreakdown",
    "WhatFixedItStats",
    # Settings
    "AppSettings",
    "DefaultVehicle",
    "Language",
    "Units",
    # Subscription
    "DiagnosticSession",
    "SubscriptionState",
    "SubscriptionTier",
    "TrialStats",
    "UsageStats",
    "VehicleSummary",
]

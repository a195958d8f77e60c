"""
Services module for AutoSolve.

This module contains the service classes and functions for usage accounting,
repair outcome tracking, community statistics, entitlements, settings and
scan orchestration.
"""

from autosolve.services.diagnosis_service import (
    DiagnosisOrchestrator,
    extract_dtc_codes,
)
from autosolve.services.entitlement_service import (
    BaseBillingClient,
    BillingPackage,
    Entitlement,
    EntitlementService,
    Offering,
    PurchaseResult,
    PurchaseStatus,
)
from autosolve.services.outcome_aggregator import (
    calculate_cost_distribution,
    calculate_stats,
    empty_stats,
    generate_stats_key,
)
from autosolve.services.repair_outcome_service import RepairOutcomeService
from autosolve.services.settings_service import SettingsService
from autosolve.services.usage_service import UsageService

__all__ = [
    # Diagnosis
    "DiagnosisOrchestrator",
    "extract_dtc_codes",
    # Entitlements
    "BaseBillingClient",
    "BillingPackage",
    "Entitlement",
    "EntitlementService",
    "Offering",
    "PurchaseResult",
    "PurchaseStatus",
    # Aggregation
    "calculate_stats",
    "calculate_cost_distribution",
    "empty_stats",
    "generate_stats_key",
    # State services
    "RepairOutcomeService",
    "SettingsService",
    "UsageService",
]

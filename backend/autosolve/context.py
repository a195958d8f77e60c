"""
Application context - explicit wiring of stores, repositories and services.

One context per process; components receive their collaborators through
constructors instead of reaching for module-level singletons.
"""

from __future__ import annotations

from dataclasses import dataclass

from autosolve.core.clock import Clock, SystemClock
from autosolve.core.config import Settings, get_settings
from autosolve.db.repositories import (
    RepairOutcomeRepository,
    SettingsRepository,
    SubscriptionRepository,
)
from autosolve.db.store import JsonFileStore, KeyValueStore
from autosolve.services.diagnosis_service import DiagnoseCallable, DiagnosisOrchestrator
from autosolve.services.repair_outcome_service import RepairOutcomeService
from autosolve.services.settings_service import SettingsService
from autosolve.services.usage_service import UsageService


@dataclass
class AppContext:
    """Services sharing one store and one clock."""

    settings: Settings
    store: KeyValueStore
    clock: Clock
    usage: UsageService
    outcomes: RepairOutcomeService
    user_settings: SettingsService

    def orchestrator(self, diagnose: DiagnoseCallable) -> DiagnosisOrchestrator:
        """Scan orchestrator bound to ``diagnose``."""
        return DiagnosisOrchestrator(
            self.usage,
            self.outcomes,
            diagnose,
            settings=self.settings,
            clock=self.clock,
        )


def create_context(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    clock: Clock | None = None,
) -> AppContext:
    """
    Build the application context.

    Args:
        settings: Defaults to the cached environment settings.
        store: Defaults to a JsonFileStore in settings.DATA_DIR.
        clock: Defaults to the system clock.
    """
    settings = settings or get_settings()
    store = store if store is not None else JsonFileStore(settings.DATA_DIR)
    clock = clock or SystemClock()

    return AppContext(
        settings=settings,
        store=store,
        clock=clock,
        usage=UsageService(SubscriptionRepository(store), settings=settings, clock=clock),
        outcomes=RepairOutcomeService(RepairOutcomeRepository(store), settings=settings, clock=clock),
        user_settings=SettingsService(SettingsRepository(store)),
    )

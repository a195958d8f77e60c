"""
Pytest configuration and fixtures for AutoSolve tests.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta, UTC
from pathlib import Path

# Add backend to path for imports
backend_path = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_path))

# Set environment variables for testing BEFORE any imports
# These need to be set before the modules are imported
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="autosolve-tests-"))

import pytest

from autosolve.core.config import Settings
from autosolve.db.repositories import (
    RepairOutcomeRepository,
    SettingsRepository,
    SubscriptionRepository,
)
from autosolve.db.store import InMemoryStore
from autosolve.schemas.repair_outcome import (
    DiagnosticData,
    RepairDetails,
    RepairOutcome,
    RepairPart,
    RepairSubmission,
    RepairType,
)
from autosolve.services.repair_outcome_service import RepairOutcomeService
from autosolve.services.settings_service import SettingsService
from autosolve.services.usage_service import UsageService

# Wednesday; the week started on Sunday 2024-06-02 00:00 UTC
START_TIME = datetime(2024, 6, 5, 12, 0, tzinfo=UTC)
WEEK_START = datetime(2024, 6, 2, tzinfo=UTC)


class FrozenClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START_TIME):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, **kwargs) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now


@pytest.fixture
def clock():
    """Clock frozen at START_TIME."""
    return FrozenClock()


@pytest.fixture
def test_settings():
    """Settings with UTC week boundaries and default limits."""
    return Settings(TIMEZONE="UTC", FOLLOW_UP_MARK_ON_SURFACE=False)


@pytest.fixture
def store():
    """Empty in-memory key-value store."""
    return InMemoryStore()


@pytest.fixture
def usage(store, test_settings, clock):
    """UsageService over a fresh store."""
    return UsageService(SubscriptionRepository(store), settings=test_settings, clock=clock)


@pytest.fixture
def outcomes(store, test_settings, clock):
    """RepairOutcomeService over a fresh store."""
    return RepairOutcomeService(RepairOutcomeRepository(store), settings=test_settings, clock=clock)


@pytest.fixture
def user_settings(store):
    """SettingsService over a fresh store."""
    return SettingsService(SettingsRepository(store))


@pytest.fixture
def make_submission():
    """Factory for RepairSubmission with sensible defaults."""
    counter = {"n": 0}

    def _make(
        description: str = "Replace O2 sensor",
        outcome: str = "fixed",
        cost: float = 0.0,
        hours: float = 0.0,
        repair_type: str = "diy",
        parts: tuple = (),
        timestamp: datetime = START_TIME,
        symptoms: tuple = ("rough idle",),
        dtc_codes: tuple = ("P0171",),
    ) -> RepairSubmission:
        counter["n"] += 1
        return RepairSubmission(
            id=f"sub-{counter['n']}",
            diagnostic_id=f"diag-{counter['n']}",
            diagnostic_data=DiagnosticData(symptoms=list(symptoms), dtc_codes=list(dtc_codes)),
            repair=RepairDetails(
                type=RepairType(repair_type),
                parts_replaced=[RepairPart(name=name) for name in parts],
                labor_description=description,
                total_cost=cost,
                time_spent=hours,
            ),
            outcome=RepairOutcome(outcome),
            timestamp=timestamp,
            submitted_at=timestamp,
        )

    return _make

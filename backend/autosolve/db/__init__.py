"""
Persistence layer: key-value stores and state repositories.
"""

from autosolve.db.repositories import (
    RepairOutcomeRepository,
    SettingsRepository,
    StateRepository,
    SubscriptionRepository,
)
from autosolve.db.store import InMemoryStore, JsonFileStore, KeyValueStore, StoreKey

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "StoreKey",
    "StateRepository",
    "SubscriptionRepository",
    "RepairOutcomeRepository",
    "SettingsRepository",
]

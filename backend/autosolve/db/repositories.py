"""
Repository pattern implementations for the persisted state blobs.

Services depend only on load()/save(); the underlying KeyValueStore can be
swapped for any key-value or file-backed implementation.

Stored layout per key:
    {"state": <model as JSON>, "version": <schema version>}
"""

import json
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from autosolve.core.exceptions import StorageCorruptedException, StorageException
from autosolve.core.logging import get_logger
from autosolve.db.store import KeyValueStore, StoreKey
from autosolve.schemas.repair_outcome import RepairOutcomeState
from autosolve.schemas.settings import AppSettings
from autosolve.schemas.subscription import SubscriptionState

logger = get_logger(__name__)

# Generic type for state models
StateType = TypeVar("StateType", bound=BaseModel)

SCHEMA_VERSION = 0


class StateRepository(Generic[StateType]):
    """
    Load and save one state model under a fixed store key.

    Attributes:
        store: Underlying key-value store.
        key: Store key of the blob.
        model: Pydantic model class of the state.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        model: type[StateType],
        default_factory: Callable[[], StateType] | None = None,
        version: int = SCHEMA_VERSION,
    ) -> None:
        self.store = store
        self.key = key
        self.model = model
        self.default_factory = default_factory or model
        self.version = version

    def exists(self) -> bool:
        """Whether a blob has been written under this key."""
        try:
            return self.store.get(self.key) is not None
        except StorageException:
            return False

    def load(self) -> StateType:
        """
        Load the stored state.

        Missing, unreadable, corrupted or version-mismatched blobs all yield a
        fresh default state; the reason is logged.
        """
        try:
            raw = self.store.get(self.key)
        except StorageException as e:
            logger.error(
                f"Falling back to default {self.key}: {e.message}",
                extra={"event": "state_load_failed", "key": self.key},
            )
            return self.default_factory()

        if raw is None:
            return self.default_factory()

        try:
            return self.decode(raw)
        except StorageCorruptedException as e:
            logger.error(
                f"Discarding corrupted {self.key}: {e.details.get('original_error', e.message)}",
                extra={"event": "state_corrupted", "key": self.key},
            )
            return self.default_factory()

    def decode(self, raw: str) -> StateType:
        """Decode a stored envelope, raising StorageCorruptedException on bad data."""
        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageCorruptedException(key=self.key, original_error=e) from e

        if not isinstance(envelope, dict) or "state" not in envelope:
            raise StorageCorruptedException("Missing state envelope.", key=self.key)

        stored_version = envelope.get("version", 0)
        if stored_version != self.version:
            # No migrations exist; an unknown layout is treated as absent
            logger.warning(
                f"Ignoring {self.key} with schema version {stored_version}",
                extra={
                    "event": "state_version_mismatch",
                    "key": self.key,
                    "stored_version": stored_version,
                    "expected_version": self.version,
                },
            )
            return self.default_factory()

        try:
            return self.model.model_validate(envelope["state"])
        except ValidationError as e:
            raise StorageCorruptedException(key=self.key, original_error=e) from e

    def encode(self, state: StateType) -> str:
        """Serialize ``state`` into the stored envelope."""
        return json.dumps({"state": state.model_dump(mode="json"), "version": self.version})

    def save(self, state: StateType) -> None:
        """Write the full state; raises StorageException if the store fails."""
        self.store.set(self.key, self.encode(state))

    def clear(self) -> bool:
        """Delete the stored blob."""
        return self.store.delete(self.key)


class SubscriptionRepository(StateRepository[SubscriptionState]):
    """Repository for tier, usage counters, trial window and history."""

    def __init__(self, store: KeyValueStore) -> None:
        super().__init__(store, StoreKey.SUBSCRIPTION, SubscriptionState)


class RepairOutcomeRepository(StateRepository[RepairOutcomeState]):
    """Repository for submissions, follow-ups and cached community stats."""

    def __init__(self, store: KeyValueStore) -> None:
        super().__init__(store, StoreKey.REPAIR_OUTCOME, RepairOutcomeState)


class SettingsRepository(StateRepository[AppSettings]):
    """Repository for user preferences."""

    def __init__(self, store: KeyValueStore) -> None:
        super().__init__(store, StoreKey.SETTINGS, AppSettings)

"""
Tests for key-value stores and state repositories.

Tests cover:
- InMemoryStore and JsonFileStore basics
- Stored envelope layout
- Fallback to defaults on missing, corrupted or mismatched blobs
- Write failures
"""

import json
import logging
from datetime import datetime, UTC

import pytest

from autosolve.core.exceptions import ErrorCode, StorageException
from autosolve.db.repositories import (
    SCHEMA_VERSION,
    RepairOutcomeRepository,
    SettingsRepository,
    SubscriptionRepository,
)
from autosolve.db.store import InMemoryStore, JsonFileStore, KeyValueStore, StoreKey
from autosolve.schemas.settings import Units
from autosolve.schemas.subscription import (
    DiagnosticSession,
    SubscriptionState,
    SubscriptionTier,
    UsageStats,
)


class FailingStore(KeyValueStore):
    """Store whose reads and writes always fail."""

    def get(self, key):
        raise StorageException("read failed", code=ErrorCode.STORAGE_READ, key=key)

    def set(self, key, value):
        raise StorageException("write failed", code=ErrorCode.STORAGE_WRITE, key=key)

    def delete(self, key):
        return False


class TestInMemoryStore:
    """Test the dictionary-backed store."""

    def test_get_missing(self):
        assert InMemoryStore().get("nope") is None

    def test_set_get_delete(self):
        store = InMemoryStore()
        store.set("k", "v")
        assert store.get("k") == "v"
        assert store.keys() == ["k"]
        assert store.delete("k") is True
        assert store.delete("k") is False


class TestJsonFileStore:
    """Test the file-backed store."""

    def test_roundtrip(self, tmp_path):
        store = JsonFileStore(tmp_path / "data")
        store.set(StoreKey.SETTINGS, '{"a": 1}')
        assert store.get(StoreKey.SETTINGS) == '{"a": 1}'
        assert (tmp_path / "data" / "settings-storage.json").exists()

    def test_no_temp_files_left(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.set("subscription-storage", "{}")
        store.set("subscription-storage", '{"x": 2}')
        assert sorted(p.name for p in tmp_path.iterdir()) == ["subscription-storage.json"]

    def test_missing_key(self, tmp_path):
        assert JsonFileStore(tmp_path).get("absent") is None

    def test_delete(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.set("k", "v")
        assert store.delete("k") is True
        assert store.delete("k") is False

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
    def test_invalid_key(self, tmp_path, key):
        with pytest.raises(StorageException):
            JsonFileStore(tmp_path).set(key, "v")

    def test_write_failure_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = JsonFileStore(blocker / "data")
        with pytest.raises(StorageException) as exc_info:
            store.set("k", "v")
        assert exc_info.value.code == ErrorCode.STORAGE_WRITE


class TestStateRepository:
    """Test envelope encoding and fallback rules."""

    def test_missing_blob_yields_default(self):
        repo = SubscriptionRepository(InMemoryStore())
        assert repo.exists() is False
        assert repo.load() == SubscriptionState()

    def test_envelope_layout(self):
        store = InMemoryStore()
        SettingsRepository(store).save(SettingsRepository(store).load())
        envelope = json.loads(store.get(StoreKey.SETTINGS))
        assert set(envelope) == {"state", "version"}
        assert envelope["version"] == SCHEMA_VERSION == 0

    def test_roundtrip_preserves_state(self):
        store = InMemoryStore()
        repo = SubscriptionRepository(store)
        week = datetime(2024, 6, 2, tzinfo=UTC)
        state = SubscriptionState(
            tier=SubscriptionTier.PREMIUM,
            is_subscribed=True,
            usage_stats=UsageStats(scans_this_week=4, week_start_date=week, total_scans_all_time=9),
            history=[DiagnosticSession(id="s1", timestamp=week, dtc_codes=["P0171"])],
        )
        repo.save(state)
        loaded = SubscriptionRepository(store).load()
        assert loaded == state
        assert loaded.usage_stats.week_start_date == week

    def test_corrupted_json_yields_default(self, caplog):
        store = InMemoryStore({StoreKey.SETTINGS: "{broken"})
        with caplog.at_level(logging.ERROR):
            settings = SettingsRepository(store).load()
        assert settings.units == Units.IMPERIAL
        assert any("corrupted" in r.getMessage() for r in caplog.records)

    def test_invalid_state_yields_default(self):
        payload = json.dumps({"state": {"tier": "gold"}, "version": 0})
        store = InMemoryStore({StoreKey.SUBSCRIPTION: payload})
        assert SubscriptionRepository(store).load().tier == SubscriptionTier.FREE

    def test_missing_envelope_yields_default(self):
        store = InMemoryStore({StoreKey.REPAIR_OUTCOME: json.dumps([1, 2, 3])})
        assert RepairOutcomeRepository(store).load().my_repairs == []

    def test_version_mismatch_yields_default(self, caplog):
        payload = json.dumps({"state": {"tier": "premium"}, "version": 3})
        store = InMemoryStore({StoreKey.SUBSCRIPTION: payload})
        with caplog.at_level(logging.WARNING):
            state = SubscriptionRepository(store).load()
        assert state.tier == SubscriptionTier.FREE
        assert any(r.levelno == logging.WARNING for r in caplog.records)

    def test_envelope_without_version_is_version_zero(self):
        payload = json.dumps({"state": {"tier": "premium"}})
        store = InMemoryStore({StoreKey.SUBSCRIPTION: payload})
        assert SubscriptionRepository(store).load().tier == SubscriptionTier.PREMIUM

    def test_read_failure_yields_default(self):
        assert SubscriptionRepository(FailingStore()).load() == SubscriptionState()

    def test_write_failure_propagates(self):
        repo = SubscriptionRepository(FailingStore())
        with pytest.raises(StorageException):
            repo.save(SubscriptionState())

    def test_clear(self):
        store = InMemoryStore()
        repo = SettingsRepository(store)
        repo.save(repo.load())
        assert repo.clear() is True
        assert repo.exists() is False

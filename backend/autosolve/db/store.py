"""
Key-value stores backing the persisted state blobs.

Each namespace (subscription/usage, repair outcomes, settings) is one string
value under a fixed key, loaded wholesale at start-up and written wholesale
after every mutation.

Implementations:
- InMemoryStore: process-local dict, used by tests and ephemeral sessions
- JsonFileStore: one <key>.json file per namespace, atomic replace on write
"""

from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from autosolve.core.exceptions import ErrorCode, StorageException
from autosolve.core.logging import PerformanceLogger, get_logger

logger = get_logger(__name__)


# =============================================================================
# Store Keys
# =============================================================================


class StoreKey:
    """Fixed names of the persisted blobs."""

    SUBSCRIPTION = "subscription-storage"
    REPAIR_OUTCOME = "repair-outcome-storage"
    SETTINGS = "settings-storage"


# =============================================================================
# Store Interface
# =============================================================================


class KeyValueStore(ABC):
    """Flat string key-value storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if something was deleted."""


class InMemoryStore(KeyValueStore):
    """Dictionary-backed store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore(KeyValueStore):
    """
    File-backed store writing one JSON document per key.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so a crash never leaves a half-written blob.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageException(f"Invalid store key: {key!r}", key=key)
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageException(
                "Unable to read local data.",
                code=ErrorCode.STORAGE_READ,
                key=key,
                original_error=e,
            ) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        with PerformanceLogger("store_write", key=key, bytes=len(value)):
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{key}.", suffix=".tmp", dir=self.directory
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as fh:
                        fh.write(value)
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                logger.error(f"Failed to write {path}: {e}")
                raise StorageException(
                    "Unable to save local data.",
                    code=ErrorCode.STORAGE_WRITE,
                    key=key,
                    original_error=e,
                ) from e

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageException(
                "Unable to delete local data.",
                code=ErrorCode.STORAGE_WRITE,
                key=key,
                original_error=e,
            ) from e

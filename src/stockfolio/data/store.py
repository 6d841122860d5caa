"""
Key-value blob persistence.

Positions, insights, transactions, alerts and the watchlist are saved as opaque blobs
under string keys. The core treats every store failure as non-fatal.
"""

import os
import re
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


# Store keys
POSITIONS_KEY = "positions"
INSIGHTS_KEY = "insights"
TRANSACTIONS_KEY = "transactions"
ALERTS_KEY = "price_alerts"
TRIGGERED_ALERTS_KEY = "triggered_alerts"
WATCHLIST_KEY = "watchlist"

_VALID_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class PersistenceError(Exception):
    """Raised when a blob cannot be read from or written to the store."""
    pass


class PersistenceStore(ABC):
    """
    Abstract key-value blob store.

    Implementations must provide load and save; a missing key loads as None.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[bytes]:
        """
        Load the blob stored under a key.

        Args:
            key: Store key

        Returns:
            Stored bytes, or None if nothing is stored

        Raises:
            PersistenceError: If the store cannot be read
        """
        pass

    @abstractmethod
    def save(self, key: str, data: bytes) -> None:
        """
        Store a blob under a key, replacing any previous value.

        Args:
            key: Store key
            data: Blob to store

        Raises:
            PersistenceError: If the blob cannot be written
        """
        pass


class MemoryStore(PersistenceStore):
    """In-process store, used for tests and ephemeral sessions."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def load(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._blobs.get(key)

    def save(self, key: str, data: bytes) -> None:
        with self._lock:
            self._blobs[key] = bytes(data)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)


class JsonFileStore(PersistenceStore):
    """
    File-backed store writing one ``<key>.json`` file per key.

    Writes go to a temporary file first and are moved into place with
    os.replace, so a crash never leaves a half-written blob behind.
    """

    def __init__(self, data_dir: str | Path = "data"):
        """
        Initialize the file store.

        Args:
            data_dir: Directory holding the blob files
        """
        self.data_dir = Path(data_dir)
        self._lock = threading.Lock()

    def _path_for(self, key: str) -> Path:
        if not _VALID_KEY.match(key):
            raise PersistenceError(f"Invalid store key: {key!r}")
        return self.data_dir / f"{key}.json"

    def load(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Failed to read {path}: {e}")

    def save(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        with self._lock:
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                tmp_path.write_bytes(data)
                os.replace(tmp_path, path)
            except OSError as e:
                raise PersistenceError(f"Failed to write {path}: {e}")

"""
API key pool for the transcription provider.

The pool holds the provider keys in insertion order and tracks which of them
are reserved by an in-flight provider call. It is the only mutable state shared
between concurrent transcription jobs, so every read and write goes through one
lock. Selection and reservation are available as separate steps
(get_available_key / mark_in_use) and as one atomic step (acquire), which the
orchestrator uses.

Persistence: add_key and remove_key save the full key list to the store before
returning. If the save fails the in-memory change is undone and KeyStoreError
is raised.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from metagrabber.errors import (
    DuplicateKeyError,
    IndexOutOfRangeError,
    InvalidKeyError,
    KeyInUseError,
    KeyStoreError,
)
from metagrabber.utils.key_utils import mask_key

logger = logging.getLogger(__name__)


class KeyStatus:
    AVAILABLE = "available"
    IN_USE = "in_use"


@dataclass(frozen=True)
class Credential:
    """One provider API key."""

    value: str

    @property
    def masked(self) -> str:
        return mask_key(self.value)

    def __repr__(self) -> str:
        return f"Credential({self.masked})"


class KeyPool:
    """Ordered set of provider keys with per-key Available/InUse state."""

    def __init__(self, store=None):
        self._store = store
        self._keys: List[str] = []
        self._in_use: set = set()
        self._lock = threading.Lock()

    # -- lifecycle ------------------------------------------------------

    def load(self) -> int:
        """Populate the pool from the store. Returns the number of keys loaded."""
        if self._store is None:
            return 0
        keys = self._store.load()
        with self._lock:
            self._keys = []
            for raw in keys:
                raw = raw.strip()
                if raw and raw not in self._keys:
                    self._keys.append(raw)
            self._in_use.clear()
            count = len(self._keys)
        logger.info("Loaded %d API key(s)", count)
        return count

    # -- mutation -------------------------------------------------------

    def add_key(self, raw: str) -> int:
        """Append a key and persist. Returns the new total count."""
        value = (raw or "").strip()
        if not value:
            raise InvalidKeyError("API key must not be empty")

        with self._lock:
            if value in self._keys:
                raise DuplicateKeyError(f"API key {mask_key(value)} is already registered")
            self._keys.append(value)
            try:
                self._persist()
            except KeyStoreError:
                self._keys.pop()
                raise
            count = len(self._keys)

        logger.info("Added API key %s (total=%d)", mask_key(value), count)
        return count

    def remove_key(self, index: int) -> int:
        """Remove the key at index and persist. Returns the new total count.

        Removing a key that is reserved by an in-flight call is refused with
        KeyInUseError; the caller may retry once the call has finished.
        """
        with self._lock:
            if index < 0 or index >= len(self._keys):
                raise IndexOutOfRangeError(
                    f"Key index {index} out of range (pool has {len(self._keys)} keys)"
                )
            value = self._keys[index]
            if value in self._in_use:
                raise KeyInUseError(f"API key {mask_key(value)} is in use and cannot be removed")
            del self._keys[index]
            try:
                self._persist()
            except KeyStoreError:
                self._keys.insert(index, value)
                raise
            count = len(self._keys)

        logger.info("Removed API key %s (total=%d)", mask_key(value), count)
        return count

    def mark_in_use(self, key: Credential) -> None:
        with self._lock:
            if key.value in self._keys:
                self._in_use.add(key.value)

    def mark_available(self, key: Credential) -> None:
        with self._lock:
            self._in_use.discard(key.value)

    release = mark_available

    # -- selection ------------------------------------------------------

    def get_available_key(self) -> Optional[Credential]:
        """Return the first Available key in insertion order, without reserving it."""
        with self._lock:
            return self._first_available(())

    def acquire(self, exclude: Iterable[str] = ()) -> Optional[Credential]:
        """Select and reserve the first Available key not in exclude, atomically."""
        excluded = set(exclude)
        with self._lock:
            key = self._first_available(excluded)
            if key is not None:
                self._in_use.add(key.value)
            return key

    # -- read-only views ------------------------------------------------

    def get_status(self) -> Dict[str, int]:
        with self._lock:
            total = len(self._keys)
            in_use = len(self._in_use)
        return {"total": total, "in_use": in_use, "available": total - in_use}

    def get_masked_keys(self) -> List[str]:
        with self._lock:
            return [mask_key(k) for k in self._keys]

    def key_values(self) -> List[str]:
        with self._lock:
            return list(self._keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    # -- internals (lock held) ------------------------------------------

    def _first_available(self, excluded) -> Optional[Credential]:
        for value in self._keys:
            if value not in self._in_use and value not in excluded:
                return Credential(value)
        return None

    def _persist(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(list(self._keys))
        except Exception as e:
            logger.error("Failed to persist API keys: %s", e)
            raise KeyStoreError(f"Failed to persist API keys: {e}") from e

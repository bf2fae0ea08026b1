"""
Global used-code ledger.

Every code that successfully linked an account is recorded here so it can
never authenticate anyone again, on any instance of the world. The ledger is
one world variable holding ``{code: {username, timestamp}}``; this module keeps
a read-through/write-through cache of it.

Writes replace the whole mapping (read-modify-write, last writer wins). Within
one process the merge and the store write are serialized by a lock, so
concurrent Socket.IO handlers never write an older snapshot over a newer one.
Two instances marking different codes at the same moment can still lose one
entry; there is no compare-and-swap on the stored value.

If the shared store cannot be reached the ledger keeps working from memory and
reports itself ``degraded``: replay protection then only covers codes seen by
this process.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

from hwlink.audit_logger import get_audit_logger
from hwlink.codes import normalize_code
from hwlink.errors import LedgerUnavailableError
from hwlink.metrics import ledger_write_failures
from hwlink.protocol import USED_CODES_KEY

logger = logging.getLogger(__name__)

LedgerEntry = Dict[str, Any]


def now_ms() -> int:
    return int(time.time() * 1000)


def normalize_entries(stored: Any) -> Dict[str, LedgerEntry]:
    """
    Clean up a stored ledger value.

    Keys are uppercased; missing usernames become "" and missing timestamps
    become the current time. Anything that is not a mapping is ignored.
    """
    if not isinstance(stored, dict):
        return {}

    normalized: Dict[str, LedgerEntry] = {}
    for raw_code, info in stored.items():
        if not isinstance(raw_code, str) or not raw_code or not isinstance(info, dict):
            continue

        username = info.get("username")
        timestamp = info.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            timestamp = now_ms()

        normalized[raw_code.upper()] = {
            "username": username if isinstance(username, str) else "",
            "timestamp": int(timestamp),
        }
    return normalized


class UsedCodeLedger:
    """Cached view of the shared used-code world variable.

    Loads, merges and whole-ledger writes run under one lock, so the store
    always receives snapshots in the order they were built.
    """

    def __init__(self, store, key: str = USED_CODES_KEY):
        self.store = store
        self.key = key
        self.degraded = False
        self._lock = threading.RLock()
        self._cache: Optional[Dict[str, LedgerEntry]] = None

    @property
    def loaded(self) -> bool:
        return self._cache is not None

    def __len__(self) -> int:
        return len(self._cache) if self._cache else 0

    def _degrade(self, reason: str) -> None:
        if not self.degraded:
            get_audit_logger().log_storage_degraded(self.key, reason)
        self.degraded = True

    def load(self) -> None:
        """Read the ledger from the shared store into the cache."""
        with self._lock:
            if self.store is None:
                self._cache = {}
                logger.warning("World persistent storage unavailable. Used code checks are local only.")
                self._degrade("no storage backend")
                return

            try:
                stored = self.store.fetch_world_variable(self.key)
            except Exception as e:
                logger.warning(f"Unable to load used code store: {e}")
                self._cache = {}
                self._degrade(str(e))
                return

            self._cache = normalize_entries(stored)
            self.degraded = False
            logger.info(f"Loaded {len(self._cache)} used codes")

    def ensure_loaded(self) -> None:
        with self._lock:
            if self._cache is None:
                self.load()

    def is_used(self, code: Optional[str]) -> bool:
        normalized = normalize_code(code)
        if not normalized or not self._cache:
            return False
        return normalized in self._cache

    def mark_used(self, code: str, username: str) -> LedgerEntry:
        """
        Record ``code`` as consumed by ``username``.

        The cache is updated first; a failed write to the shared store is
        logged and leaves the ledger degraded rather than raising.
        """
        normalized = normalize_code(code)
        entry = {"username": username, "timestamp": now_ms()}

        with self._lock:
            updated = dict(self._cache or {})
            updated[normalized] = entry
            self._cache = updated

            if self.store is None:
                logger.warning("World persistent storage unavailable. Used code state not persisted.")
                self._degrade("no storage backend")
                return entry

            try:
                self.store.set_world_variable(self.key, updated)
                logger.info(f"Marked code {normalized} as used by {username}")
            except Exception as e:
                logger.warning(f"Failed to persist used code state: {e}")
                ledger_write_failures.inc()
                self._degrade(str(e))

        return entry

    def clear(self) -> int:
        """
        Empty the ledger on every instance.

        Returns:
            Number of entries that were cached before clearing

        Raises:
            LedgerUnavailableError: If the shared store cannot be written
        """
        with self._lock:
            count = len(self)

            if self.store is None:
                raise LedgerUnavailableError("World persistent storage unavailable")

            try:
                self.store.set_world_variable(self.key, {})
            except Exception as e:
                ledger_write_failures.inc()
                raise LedgerUnavailableError(f"Failed to clear used codes: {e}") from e

            self._cache = {}
            return count

    def entries(self) -> Dict[str, LedgerEntry]:
        return {code: dict(info) for code, info in (self._cache or {}).items()}

"""
In-memory Relay Store

This module provides:
- RelayRecord: one registered relay and its last heartbeat time
- HealthSummary: active/inactive counts over the whole table
- RelayStore: the lock-protected relay table that owns every mutation rule
"""

import math
import sys
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from ..errors import (
    DuplicateRelayError,
    InvalidAddressError,
    InvalidPortError,
    MissingFieldError,
    PersistenceError,
    RelayNotFoundError,
)
from ..validation import normalize_port, validate_address


DEFAULT_TIMEOUT_MS = 5 * 60 * 1000


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass
class RelayRecord:
    """A relay as held by the directory."""
    relay_id: str
    address: str
    port: int
    public_key: str
    last_seen: int

    def to_public_dict(self) -> Dict[str, Any]:
        """Projection served to clients; ``last_seen`` stays internal."""
        return {
            "id": self.relay_id,
            "ip": self.address,
            "port": self.port,
            "public_key": self.public_key,
        }

    def to_snapshot_dict(self) -> Dict[str, Any]:
        return {
            "ip": self.address,
            "port": self.port,
            "public_key": self.public_key,
            "last_seen": self.last_seen,
        }

    @classmethod
    def from_snapshot_dict(cls, relay_id: str, data: Dict[str, Any]) -> 'RelayRecord':
        """Rebuild a record from a snapshot entry.

        Raises ValueError (or KeyError/TypeError) if the entry would not
        have been admitted by ``register_relay``.
        """
        if not isinstance(relay_id, str) or not relay_id:
            raise ValueError("missing relay id")
        address = data["ip"]
        if not validate_address(address):
            raise ValueError(f"invalid address {address!r}")
        public_key = data["public_key"]
        if not isinstance(public_key, str) or not public_key:
            raise ValueError("missing public key")
        return cls(
            relay_id=relay_id,
            address=address,
            port=normalize_port(data["port"]),
            public_key=public_key,
            last_seen=_snapshot_timestamp(data["last_seen"]),
        )


def _snapshot_timestamp(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"invalid last_seen {value!r}")
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        raise ValueError(f"invalid last_seen {value!r}")
    return int(value)


@dataclass
class HealthSummary:
    total: int
    active: int
    inactive: int

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "active": self.active, "inactive": self.inactive}


def _is_missing(value) -> bool:
    return value is None or value == ""


class RelayStore:
    """Thread-safe, dict-backed relay table.

    Every public method runs under a single lock. Mutations hand a full
    snapshot to *snapshot_store* (anything with a ``persist(snapshot)``
    method) before releasing it, so snapshot writes land in mutation order.
    A failed write is logged; the in-memory change stands.
    """

    def __init__(self, snapshot_store=None, clock: Callable[[], int] = now_ms,
                 relays: Optional[Dict[str, RelayRecord]] = None):
        self._lock = threading.Lock()
        self._relays: Dict[str, RelayRecord] = dict(relays or {})
        self._snapshot_store = snapshot_store
        self._clock = clock

    @classmethod
    def from_snapshot_store(cls, snapshot_store,
                            clock: Callable[[], int] = now_ms) -> 'RelayStore':
        """Build a store rehydrated from ``snapshot_store.load()``.

        An absent or unreadable snapshot yields an empty store. Entries
        that fail validation are skipped.
        """
        try:
            data = snapshot_store.load()
        except Exception as e:
            print(f"[directory] Snapshot load failed, starting empty: {e}", file=sys.stderr)
            data = None

        relays: Dict[str, RelayRecord] = {}
        for relay_id, entry in (data or {}).items():
            try:
                relays[relay_id] = RelayRecord.from_snapshot_dict(relay_id, entry)
            except (KeyError, TypeError, ValueError) as e:
                print(f"[directory] Skipping snapshot entry {relay_id!r}: {e}", file=sys.stderr)
        if relays:
            print(f"[directory] Restored relays: {', '.join(relays)}", file=sys.stderr)
        return cls(snapshot_store=snapshot_store, clock=clock, relays=relays)

    # -- persistence -------------------------------------------------------

    def _snapshot_locked(self) -> Dict[str, Dict[str, Any]]:
        return {rid: r.to_snapshot_dict() for rid, r in self._relays.items()}

    def _persist_locked(self) -> None:
        if self._snapshot_store is None:
            return
        try:
            self._snapshot_store.persist(self._snapshot_locked())
        except (PersistenceError, OSError) as e:
            print(f"[directory] Failed to save snapshot: {e}", file=sys.stderr)

    def _remove_locked(self, relay_id: str) -> None:
        del self._relays[relay_id]
        self._persist_locked()

    # -- mutations ---------------------------------------------------------

    def register_relay(self, relay_id: str, address: str, port,
                       public_key: str) -> RelayRecord:
        """Admit a new relay. Never touches an existing record."""
        if any(_is_missing(v) for v in (relay_id, address, port, public_key)):
            raise MissingFieldError()
        if not isinstance(relay_id, str) or not isinstance(public_key, str):
            raise MissingFieldError("Relay ID and public key must be strings")
        if not validate_address(address):
            raise InvalidAddressError()
        try:
            port = normalize_port(port)
        except ValueError:
            raise InvalidPortError() from None

        with self._lock:
            if relay_id in self._relays:
                raise DuplicateRelayError()
            record = RelayRecord(
                relay_id=relay_id,
                address=address,
                port=port,
                public_key=public_key,
                last_seen=self._clock(),
            )
            self._relays[relay_id] = record
            self._persist_locked()
            return replace(record)

    def heartbeat(self, relay_id: str) -> int:
        """Refresh *relay_id* and return its new ``last_seen``."""
        if _is_missing(relay_id):
            raise MissingFieldError("Missing relay ID")
        if not isinstance(relay_id, str):
            raise MissingFieldError("Relay ID must be a string")
        with self._lock:
            record = self._relays.get(relay_id)
            if record is None:
                raise RelayNotFoundError()
            record.last_seen = max(self._clock(), record.last_seen)
            self._persist_locked()
            return record.last_seen

    def remove_relay(self, relay_id: str) -> None:
        if not isinstance(relay_id, str):
            raise MissingFieldError("Relay ID must be a string")
        with self._lock:
            if relay_id not in self._relays:
                raise RelayNotFoundError()
            self._remove_locked(relay_id)

    def evict_expired(self, now: Optional[int] = None,
                      timeout_ms: int = DEFAULT_TIMEOUT_MS) -> List[str]:
        """Remove every relay whose last heartbeat is older than *timeout_ms*.

        Runs as one locked pass; each eviction persists exactly as
        ``remove_relay`` does.
        """
        with self._lock:
            if now is None:
                now = self._clock()
            expired = [
                rid for rid, r in self._relays.items()
                if now - r.last_seen > timeout_ms
            ]
            for rid in expired:
                self._remove_locked(rid)
        return expired

    # -- queries -----------------------------------------------------------

    def get_relay(self, relay_id: str) -> Optional[RelayRecord]:
        with self._lock:
            record = self._relays.get(relay_id)
            return replace(record) if record is not None else None

    def list_relays(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [r.to_public_dict() for r in self._relays.values()]

    def relay_count(self) -> int:
        with self._lock:
            return len(self._relays)

    def health_summary(self, now: Optional[int] = None,
                       timeout_ms: int = DEFAULT_TIMEOUT_MS) -> HealthSummary:
        with self._lock:
            if now is None:
                now = self._clock()
            total = len(self._relays)
            active = sum(
                1 for r in self._relays.values()
                if now - r.last_seen <= timeout_ms
            )
        return HealthSummary(total=total, active=active, inactive=total - active)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Copy of the table in snapshot layout."""
        with self._lock:
            return self._snapshot_locked()

"""Background eviction of relays whose heartbeats have stopped."""

import sys
import threading
from enum import Enum
from typing import Callable, List, Optional

from .registry import RelayStore
from .registry.relay_store import DEFAULT_TIMEOUT_MS


class SweeperState(Enum):
    IDLE = "idle"
    SWEEPING = "sweeping"


class LivenessSweeper:
    """Periodically removes relays that missed their heartbeat window.

    *interval* is in seconds, *timeout_ms* in milliseconds. Pass *clock*
    to control "now" in tests; by default the store's clock is used.
    """

    def __init__(self, store: RelayStore, interval: float = 10.0,
                 timeout_ms: int = DEFAULT_TIMEOUT_MS,
                 clock: Optional[Callable[[], int]] = None):
        self.store = store
        self.interval = interval
        self.timeout_ms = timeout_ms
        self._clock = clock
        self._state = SweeperState.IDLE
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SweeperState:
        return self._state

    def sweep_once(self, now: Optional[int] = None) -> List[str]:
        """Run one full pass and return the evicted relay ids."""
        if now is None and self._clock is not None:
            now = self._clock()
        self._state = SweeperState.SWEEPING
        try:
            evicted = self.store.evict_expired(now=now, timeout_ms=self.timeout_ms)
        finally:
            self._state = SweeperState.IDLE
        for relay_id in evicted:
            print(f"[sweeper] Removed inactive relay: {relay_id}", file=sys.stderr)
        return evicted

    def run(self, stop_event: threading.Event) -> None:
        """Sweep every *interval* seconds until *stop_event* is set."""
        while not stop_event.wait(self.interval):
            try:
                self.sweep_once()
            except Exception as e:
                print(f"[sweeper] Sweep failed: {e}", file=sys.stderr)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run, args=(self._stop,), name="liveness-sweeper", daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

"""Relay-side beacon: register with the directory and keep the entry alive."""

import sys
import time
from typing import Optional

from .errors import DuplicateRelayError
from .registry import DirectoryClient


def run_beacon(
    client: DirectoryClient,
    relay_id: str,
    ip: str,
    port: int,
    public_key: str,
    interval: float = 60,
    max_beats: Optional[int] = None,
) -> int:
    """Register *relay_id* and send a heartbeat every *interval* seconds.

    A 404 on heartbeat means the directory swept (or lost) the relay, so it
    is registered again. Stops after *max_beats* attempts if given and
    returns the number of heartbeats the directory acknowledged.
    """
    registered = False
    last_state: Optional[str] = None
    beats = 0
    sent = 0

    while max_beats is None or sent < max_beats:
        if not registered:
            result = client.register(relay_id, ip, port, public_key)
            if result is not None and (result[0] == 201 or
                                       result[1].get("error") == DuplicateRelayError.default_message):
                registered = True

        if registered:
            result = client.heartbeat(relay_id)
            sent += 1
            if result is None:
                state = "unreachable"
            elif result[0] == 404:
                state = "unknown"
                registered = False
            elif result[0] == 200:
                state = "alive"
                beats += 1
            else:
                state = f"error {result[0]}"
        else:
            state = "unregistered"
            sent += 1

        if state != last_state:
            print(
                f"[beacon] {relay_id}: {last_state or 'init'} -> {state}",
                file=sys.stderr,
            )
            last_state = state

        if max_beats is None or sent < max_beats:
            time.sleep(interval)

    return beats

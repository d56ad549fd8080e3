import pytest

from matryoshka.errors import PersistenceError
from matryoshka.registry import RelayStore


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class MemorySnapshotStore:
    """Records every persisted snapshot instead of touching disk."""

    def __init__(self, initial=None, fail: bool = False, error=None):
        self.initial = initial
        self.fail = fail
        self.error = error or PersistenceError("disk full")
        self.writes = []

    def load(self):
        return self.initial

    def persist(self, snapshot):
        if self.fail:
            raise self.error
        self.writes.append(snapshot)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def snapshots():
    return MemorySnapshotStore()


@pytest.fixture
def store(snapshots, clock):
    return RelayStore(snapshot_store=snapshots, clock=clock)

import pytest

from matryoshka import heartbeat
from matryoshka.heartbeat import run_beacon
from matryoshka.registry import DirectoryClient, start_directory_server


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(heartbeat.time, "sleep", lambda s: None)


@pytest.fixture
def server(store):
    server = start_directory_server(store, host="127.0.0.1", port=0, log_requests=False)
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def client(server):
    return DirectoryClient(host="127.0.0.1", port=server.server_address[1])


def test_beacon_registers_and_heartbeats(client, store, clock):
    beats = run_beacon(client, "r1", "10.0.0.1", 9001, "pk", interval=1, max_beats=3)

    assert beats == 3
    assert store.get_relay("r1").port == 9001


def test_beacon_tolerates_existing_registration(client, store):
    store.register_relay("r1", "10.0.0.1", 9001, "pk")
    assert run_beacon(client, "r1", "10.0.0.1", 9001, "pk", max_beats=2) == 2


def test_beacon_reregisters_after_sweep(client, store, monkeypatch):
    swept = []

    def sleep_and_sweep(seconds):
        if not swept:
            store.remove_relay("r1")
            swept.append(True)

    monkeypatch.setattr(heartbeat.time, "sleep", sleep_and_sweep)

    beats = run_beacon(client, "r1", "10.0.0.1", 9001, "pk", max_beats=3)

    # second attempt hits 404, third re-registers and succeeds
    assert beats == 2
    assert store.get_relay("r1") is not None


def test_beacon_unreachable_directory(capsys):
    client = DirectoryClient(host="127.0.0.1", port=1, timeout=1)
    assert run_beacon(client, "r1", "10.0.0.1", 9001, "pk", max_beats=2) == 0
    assert "init -> unregistered" in capsys.readouterr().err

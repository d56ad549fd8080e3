import json

import pytest

from matryoshka.cli import main
from matryoshka.registry import start_directory_server


@pytest.fixture
def port(store):
    server = start_directory_server(store, host="127.0.0.1", port=0, log_requests=False)
    yield str(server.server_address[1])
    server.shutdown()
    server.server_close()


def _dir_args(port):
    return ["--directory-host", "127.0.0.1", "--directory-port", port]


def test_register_and_list(port, capsys):
    main(["relays", "register", *_dir_args(port), "r1", "10.0.0.1", "9001", "pk-1"])
    assert "Relay registered successfully" in capsys.readouterr().out

    main(["relays", "list", *_dir_args(port), "--format", "json"])
    relays = json.loads(capsys.readouterr().out)
    assert relays == [{"id": "r1", "ip": "10.0.0.1", "port": 9001, "public_key": "pk-1"}]


def test_list_text_empty(port, capsys):
    main(["relays", "list", *_dir_args(port)])
    assert capsys.readouterr().out.strip() == "(no relays)"


def test_heartbeat_unknown_exits_nonzero(port, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["relays", "heartbeat", *_dir_args(port), "ghost"])
    assert exc.value.code == 1
    assert "Relay not found" in capsys.readouterr().err


def test_remove_and_health(port, store, capsys):
    store.register_relay("r1", "10.0.0.1", 9001, "pk")

    main(["relays", "remove", *_dir_args(port), "r1"])
    main(["relays", "health", *_dir_args(port)])

    out = capsys.readouterr().out
    assert "Relay removed successfully" in out
    assert "relays=0" in out


def test_no_command_prints_help():
    with pytest.raises(SystemExit):
        main([])

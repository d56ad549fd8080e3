import argparse

from matryoshka.config import DirectoryConfig, load_config, merge_cli_args


def test_defaults():
    config = DirectoryConfig()
    assert config.port == 5600
    assert config.heartbeat_timeout_ms == 300_000
    assert config.sweep_interval == 10


def test_load_config_ignores_unknown_keys(tmp_path):
    path = tmp_path / "directory.yaml"
    path.write_text("port: 7000\nheartbeat_timeout: 60\nbogus: 1\n")

    config = load_config(path)

    assert config.port == 7000
    assert config.heartbeat_timeout_ms == 60_000
    assert config.data_file == "relays.json"


def test_load_empty_file(tmp_path):
    path = tmp_path / "directory.yaml"
    path.write_text("")
    assert load_config(path) == DirectoryConfig()


def test_cli_overrides_file(tmp_path):
    path = tmp_path / "directory.yaml"
    path.write_text("port: 7000\nsweep_interval: 30\n")
    args = argparse.Namespace(port=8000, sweep_interval=None, log_requests=False)

    config = merge_cli_args(load_config(path), args)

    assert config.port == 8000
    assert config.sweep_interval == 30
    assert config.log_requests is False

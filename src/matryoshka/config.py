"""Configuration loading and merging for the directory server."""

from dataclasses import dataclass, fields
from pathlib import Path

import yaml


@dataclass
class DirectoryConfig:
    # HTTP listener
    host: str = "0.0.0.0"
    port: int = 5600

    # Snapshot file rewritten on every mutation
    data_file: str = "relays.json"

    # Seconds without a heartbeat before a relay counts as inactive and is swept
    heartbeat_timeout: int = 300

    # Seconds between sweeps
    sweep_interval: float = 10

    # Print one line per HTTP request to stderr
    log_requests: bool = True

    @property
    def heartbeat_timeout_ms(self) -> int:
        return int(self.heartbeat_timeout * 1000)


def load_config(path: str | Path) -> DirectoryConfig:
    """Load a DirectoryConfig from a YAML file. Unknown keys are ignored."""
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    valid_fields = {f.name for f in fields(DirectoryConfig)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return DirectoryConfig(**filtered)


def merge_cli_args(config: DirectoryConfig, args) -> DirectoryConfig:
    """Overlay CLI arguments onto an existing config. CLI values take precedence."""
    for f in fields(DirectoryConfig):
        cli_val = getattr(args, f.name, None)
        if cli_val is not None:
            setattr(config, f.name, cli_val)
    return config


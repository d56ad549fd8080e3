"""
Relay Registry

This package provides:
1. RelayStore — lock-protected relay table with admission and liveness rules
2. DirectoryClient — HTTP client for querying and updating the directory
3. start_directory_server — launches the HTTP API in a daemon thread
"""

from .relay_store import (
    HealthSummary,
    RelayRecord,
    RelayStore,
)
from .directory_service import (
    DirectoryClient,
    build_directory_server,
    start_directory_server,
)

__all__ = [
    'DirectoryClient',
    'HealthSummary',
    'RelayRecord',
    'RelayStore',
    'build_directory_server',
    'start_directory_server',
]

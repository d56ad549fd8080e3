"""JSON snapshot file used to survive directory restarts."""

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import PersistenceError


class JsonSnapshotStore:
    """Full-file JSON snapshot of the relay table.

    The file holds one object mapping relay id to
    ``{"ip", "port", "public_key", "last_seen"}``. Every ``persist`` call
    rewrites the whole file; there is no append log and no version field.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Dict[str, Any]]]:
        """Return the stored mapping, or None if absent or unreadable."""
        if not self.path.exists():
            print(f"[persistence] No snapshot at {self.path}, starting fresh", file=sys.stderr)
            return None
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"[persistence] Failed to load {self.path}: {e}", file=sys.stderr)
            return None
        if not isinstance(data, dict):
            print(
                f"[persistence] Ignoring {self.path}: expected a JSON object, "
                f"got {type(data).__name__}",
                file=sys.stderr,
            )
            return None
        print(f"[persistence] Loaded {len(data)} relay(s) from {self.path}", file=sys.stderr)
        return data

    def persist(self, snapshot: Dict[str, Dict[str, Any]]) -> None:
        """Atomically replace the snapshot file with *snapshot*."""
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=directory, prefix=f".{self.path.name}.", suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(snapshot, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"could not write {self.path}: {e}") from e

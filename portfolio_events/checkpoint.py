"""Remember when each periodic check last ran."""

from __future__ import annotations

import fcntl
import json
import os
from pathlib import Path
from typing import Protocol


class CheckpointStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryCheckpointStore:
    """Process-local checkpoints; nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonCheckpointStore:
    """Checkpoints persisted to a JSON file shared by every session using the same path."""

    def __init__(self, path: Path | None = None) -> None:
        if path is None:
            path = Path.home() / ".portfolio-events" / "checkpoints.json"
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def get(self, key: str) -> str | None:
        # Re-read on every access so other sessions' writes are visible
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        """Merge one key into the file under an exclusive lock, replacing it atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = self.path.with_suffix(".lock")
        tmp_path = self.path.with_suffix(".tmp")

        with open(lock_path, "w", encoding="utf-8") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                data = self._load()
                data[key] = value
                try:
                    with open(tmp_path, "w", encoding="utf-8") as f:
                        json.dump(data, f, indent=2)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, self.path)
                except OSError:
                    if tmp_path.exists():
                        tmp_path.unlink()
                    raise
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

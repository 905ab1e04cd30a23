"""Small persistent key-value state shared across commands (e.g. last-used agent)."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Protocol

from filelock import FileLock
from loguru import logger

from .constants import STATE_DIR_NAME, STATE_FILE, STATE_LOCK_FILE
from .io_utils import _atomic_write_yaml, _load_data_with_error


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryStateStore:
    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class FileStateStore:
    """Key-value state kept in ``.brainfile/state.yaml``.

    Writes are read-modify-write under a file lock so the CLI and a running
    server can share the file.  A state file that cannot be read is never
    overwritten.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_name(STATE_LOCK_FILE)

    @classmethod
    def for_project(cls, project_dir: Path) -> "FileStateStore":
        return cls(Path(project_dir) / STATE_DIR_NAME / STATE_FILE)

    def get(self, key: str, default: Any = None) -> Any:
        data, err = _load_data_with_error(self.path, {})
        if err:
            logger.warning("Ignoring unreadable state file: {}", err)
            return default
        return data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(self.lock_path):
            data, err = _load_data_with_error(self.path, {})
            if err:
                raise ValueError(f"Refusing to overwrite unreadable state file: {err}")
            data = dict(data)
            data[key] = value
            _atomic_write_yaml(self.path, data)

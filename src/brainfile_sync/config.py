"""Load sync settings from `.brainfile/config.yaml` and locate the board file."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .constants import (
    ARCHIVE_SUFFIX,
    BOARD_FILE_CANDIDATES,
    BOARD_FILE_GLOB,
    CONFIG_FILE,
    DEFAULT_DOCUMENT_EDIT_DEBOUNCE,
    DEFAULT_FILE_EVENT_DEBOUNCE,
    DEFAULT_WATCH_POLL_INTERVAL,
    PARSE_ERROR_TOLERANCE,
    STATE_DIR_NAME,
)
from .io_utils import _load_data_with_error

ENV_PREFIX = "BRAINFILE_SYNC_"


class ConfigError(Exception):
    """The sync configuration file or environment is invalid."""


class SyncSettings(BaseModel):
    """Tunables for a live board session."""

    document_edit_debounce: float = Field(DEFAULT_DOCUMENT_EDIT_DEBOUNCE, ge=0)
    file_event_debounce: float = Field(DEFAULT_FILE_EVENT_DEBOUNCE, ge=0)
    parse_error_tolerance: int = Field(PARSE_ERROR_TOLERANCE, ge=1)
    watch_poll_interval: float = Field(DEFAULT_WATCH_POLL_INTERVAL, gt=0)
    log_level: str = "INFO"
    log_file: Optional[str] = None


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name in SyncSettings.model_fields:
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            overrides[name] = raw
    return overrides


def load_sync_config(project_dir: Path, env: Optional[Mapping[str, str]] = None) -> SyncSettings:
    """Build settings from the optional config file plus environment overrides.

    Args:
        project_dir: Directory holding the board (and `.brainfile/`).
        env: Environment mapping; defaults to ``os.environ``.

    Returns:
        Validated ``SyncSettings``.

    Raises:
        ConfigError: The config file is unreadable or a value is invalid.
    """
    path = Path(project_dir).resolve() / STATE_DIR_NAME / CONFIG_FILE
    data, err = _load_data_with_error(path, {})
    if err:
        raise ConfigError(err)
    raw = data.get("sync", data)
    if not isinstance(raw, dict):
        raise ConfigError(f"{path.name}: 'sync' must be a mapping")

    values = {k: v for k, v in raw.items() if k in SyncSettings.model_fields}
    values.update(_env_overrides(os.environ if env is None else env))
    try:
        return SyncSettings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid sync settings: {exc}") from exc


def discover_board_file(project_dir: Path) -> Optional[Path]:
    """Find the board in *project_dir*.

    Checks the well-known names first, then the first ``brainfile.*.md``
    (sorted) that is not an archive.
    """
    project_dir = Path(project_dir)
    for name in BOARD_FILE_CANDIDATES:
        candidate = project_dir / name
        if candidate.is_file():
            return candidate
    for candidate in sorted(project_dir.glob(BOARD_FILE_GLOB)):
        if candidate.is_file() and not candidate.name.endswith(ARCHIVE_SUFFIX):
            return candidate
    return None

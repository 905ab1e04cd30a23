"""The sibling archive file (``<name>-archive.md``)."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from .codec import DocumentCodec
from .constants import ARCHIVE_BOARD_TITLE, ARCHIVE_SUFFIX
from .fingerprint import FingerprintTracker
from .io_utils import _atomic_write_text, _read_text
from .models import Board, Task


def get_archive_path(board_path: Path) -> Path:
    """Archive file next to the board: ``brainfile.md`` -> ``brainfile-archive.md``."""
    board_path = Path(board_path)
    name = board_path.name
    if name.endswith(".md"):
        name = name[: -len(".md")] + ARCHIVE_SUFFIX
    else:
        name = name + ARCHIVE_SUFFIX
    return board_path.parent / name


def create_empty_archive_board(title: str = ARCHIVE_BOARD_TITLE) -> Board:
    return Board(title=title, columns=[], archive=[])


class ArchiveStore:
    """Reads and writes archived tasks with the same fingerprint discipline
    as the main board file."""

    def __init__(self, board_path: Path, codec: DocumentCodec) -> None:
        self.path = get_archive_path(board_path)
        self._codec = codec
        self.fingerprints = FingerprintTracker()

    def exists(self) -> bool:
        return self.path.exists()

    def _load_board(self) -> Board:
        if not self.path.exists():
            return create_empty_archive_board()
        text = _read_text(self.path)
        self.fingerprints.observe(text)
        board = self._codec.parse(text)
        if board is None:
            logger.warning("Archive file {} is unreadable; treating it as empty", self.path.name)
            return create_empty_archive_board()
        return board

    def load(self) -> list[Task]:
        """Archived tasks, most recent first; an unreadable archive is empty."""
        return list(self._load_board().archive)

    def has_changed(self) -> bool:
        """True when the file content differs from what we last saw or wrote."""
        if not self.path.exists():
            return self.fingerprints.last is not None
        text = _read_text(self.path)
        return not self.fingerprints.is_known(text)

    def save(self, tasks: list[Task]) -> None:
        """Replace the archived task list, keeping the archive board's own fields."""
        board = self._load_board()
        board.archive = list(tasks)
        text = self._codec.serialize(board)
        _atomic_write_text(self.path, text)
        self.fingerprints.record_write(text)
        logger.debug("Archive {} written ({} tasks)", self.path.name, len(tasks))


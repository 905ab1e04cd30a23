"""Read, parse, mutate and write one board file.

The coordinator is the only component that touches the board and archive
files.  Refreshes turn file content into cache transitions and view
messages; commands run one pure operation per read-modify-write cycle.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Optional

from loguru import logger

from .archive import ArchiveStore
from .cache import BoardCache, CacheState, CacheTransition
from .codec import DocumentCodec, LintResult
from .constants import ERROR_TYPE_IO, ERROR_TYPE_PARSE, ERROR_TYPE_VALIDATION
from .fingerprint import FingerprintTracker
from .io_utils import BoardIOError, _atomic_write_text, _read_text
from .logging_utils import pretty, summarize_lint
from .models import Board
from .notifications import NotificationCenter
from .operations import OperationResult
from .scheduler import ChangeReason
from .view import BoardView
from .watcher import OpenDocuments

Operation = Callable[[Board], OperationResult]


@dataclass
class CommandOutcome:
    success: bool
    board: Optional[Board] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    conflict: bool = False
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "board": self.board.to_dict() if self.board else None,
            "error": self.error,
            "errorType": self.error_type,
            "conflict": self.conflict,
            "message": self.message,
        }


def _failed(error: str, error_type: str, *, conflict: bool = False) -> CommandOutcome:
    return CommandOutcome(success=False, error=error, error_type=error_type, conflict=conflict)


class PersistenceCoordinator:
    def __init__(
        self,
        board_path: Path,
        *,
        codec: Optional[DocumentCodec] = None,
        cache: Optional[BoardCache] = None,
        view: Optional[BoardView] = None,
        notifications: Optional[NotificationCenter] = None,
        open_documents: Optional[OpenDocuments] = None,
    ) -> None:
        self.path = Path(board_path)
        self.codec = codec or DocumentCodec()
        self.cache = cache or BoardCache()
        self.view = view
        self.notifications = notifications or NotificationCenter()
        self.open_documents = open_documents
        self.fingerprints = FingerprintTracker()
        self.archive = ArchiveStore(self.path, self.codec)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_content(self) -> str:
        """Current text of the board: an open editor buffer wins over disk."""
        if self.open_documents is not None:
            text = self.open_documents.get_text(self.path)
            if text is not None:
                return text
        return _read_text(self.path)

    def _has_content(self) -> bool:
        if self.open_documents is not None and self.open_documents.get_text(self.path) is not None:
            return True
        return self.path.exists()

    def _merge_archive(self, board: Board) -> Board:
        if not self.archive.exists():
            return board
        try:
            return replace(board, archive=self.archive.load())
        except BoardIOError as exc:
            logger.warning("{}; using the inline archive", exc)
            return board

    def _post(self, board: Optional[Board]) -> None:
        if self.view is not None:
            self.view.post_board(board)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, reason: ChangeReason = ChangeReason.INITIAL) -> Optional[CacheTransition]:
        """Re-read the board after a (debounced) change.

        Returns the cache transition, or None when nothing needed doing.
        """
        reason = ChangeReason(reason)
        if not self._has_content():
            return self.handle_file_deleted()
        try:
            text = self.read_content()
        except BoardIOError as exc:
            self.notifications.error(str(exc), board=self.path.name)
            return None
        if reason == ChangeReason.INITIAL or not self.fingerprints.is_known(text):
            logger.debug("Refreshing {} ({})", self.path.name, reason.value)
            return self.apply_content(text)
        if reason == ChangeReason.ARCHIVE_CHANGE:
            return self.refresh_archive()
        logger.trace("Refresh ({}) skipped: content unchanged", reason.value)
        return None

    def apply_content(self, text: str) -> CacheTransition:
        """Parse *text* and drive the cache and view with the result."""
        self.fingerprints.observe(text)
        board = self.codec.parse(text)
        if board is None:
            transition = self.cache.record_failure()
            lint = self.codec.lint(text)
            logger.debug(
                "Parse of {} failed ({}): {}", self.path.name, transition.current.value, pretty(summarize_lint(lint))
            )
            if self.view is not None:
                if transition.current == CacheState.TRANSIENT_ERROR:
                    self.view.warn(f"Parse error: {lint.first_summary()} - showing last valid state", lint)
                else:
                    self.view.show_error("Failed to parse board file", lint)
            return transition

        board = self._merge_archive(board)
        transition = self.cache.record_success(board)
        self._post(board)
        return transition

    def refresh_archive(self) -> Optional[CacheTransition]:
        """Re-merge the archive file into the cached board, if it changed."""
        try:
            if not self.archive.has_changed():
                return None
            if not self.archive.exists():
                # Archive removed: fall back to whatever the board keeps inline.
                self.archive.fingerprints.reset()
                if self.cache.board is None or not self._has_content():
                    return None
                return self.apply_content(self.read_content())
            tasks = self.archive.load()
        except BoardIOError as exc:
            logger.warning("{}", exc)
            return None
        merged = self.cache.merge_archive(tasks)
        if merged is None:
            return None
        logger.debug("Archive {} re-merged ({} tasks)", self.archive.path.name, len(tasks))
        self._post(merged)
        state = self.cache.state
        return CacheTransition(previous=state, current=state, board=merged, failures=self.cache.failures)

    def handle_file_deleted(self) -> CacheTransition:
        logger.info("Board file {} is gone", self.path.name)
        self.fingerprints.reset()
        transition = self.cache.file_deleted()
        self._post(None)
        return transition

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _sync_open_buffer(self, text: str) -> None:
        # An open buffer shadows disk on refresh; keep it equal to what we wrote.
        if self.open_documents is not None and self.open_documents.get_text(self.path) is not None:
            self.open_documents.open(self.path, text)

    def _write_main(self, board: Board) -> None:
        text = self.codec.serialize(board)
        _atomic_write_text(self.path, text)
        self.fingerprints.record_write(text)
        self._sync_open_buffer(text)

    def execute(self, name: str, operation: Operation, *, archive_first: bool = False) -> CommandOutcome:
        """Run one mutation against the file on disk and persist the result.

        ``archive_first`` orders the two writes when the operation changes the
        archive: archiving writes the archive before the board so a crash in
        between duplicates a task rather than losing it.
        """
        try:
            text = _read_text(self.path)
        except BoardIOError as exc:
            self.notifications.error(str(exc), board=self.path.name)
            return _failed(str(exc), ERROR_TYPE_IO)

        main_board = self.codec.parse(text)
        if main_board is None:
            error = "Board document is unreadable; fix the syntax errors before editing"
            self.notifications.error(error, board=self.path.name)
            return _failed(error, ERROR_TYPE_PARSE)

        conflict = self.fingerprints.differs_from_recorded(text)
        if conflict:
            self.notifications.warning(
                f"{self.path.name} changed outside this session; applying {name} to the latest content",
                board=self.path.name,
            )

        archive_existed = self.archive.exists()
        try:
            working = replace(main_board, archive=self.archive.load()) if archive_existed else main_board
        except BoardIOError as exc:
            self.notifications.error(str(exc), board=self.path.name)
            return _failed(str(exc), ERROR_TYPE_IO, conflict=conflict)

        result = operation(working)
        if not result.success or result.board is None:
            error = result.error or f"{name} failed"
            self.notifications.warning(error, board=self.path.name)
            return _failed(error, ERROR_TYPE_VALIDATION, conflict=conflict)

        updated = result.board
        archive_changed = updated.archive != working.archive
        # Once the archive lives in its own file the inline copy is left alone.
        inline_archive = main_board.archive if (archive_existed or not archive_changed) else []
        to_write = replace(updated, archive=inline_archive)

        try:
            if archive_changed and archive_first:
                self.archive.save(updated.archive)
                self._write_main(to_write)
            else:
                self._write_main(to_write)
                if archive_changed:
                    self.archive.save(updated.archive)
        except BoardIOError as exc:
            self.notifications.error(str(exc), board=self.path.name)
            return _failed(str(exc), ERROR_TYPE_IO, conflict=conflict)

        self.cache.replace_board(updated)
        self._post(updated)
        logger.info("{} applied to {}", name, self.path.name)
        return CommandOutcome(success=True, board=updated, conflict=conflict)

    # ------------------------------------------------------------------
    # Lint / fix
    # ------------------------------------------------------------------

    def lint(self) -> LintResult:
        return self.codec.lint(self.read_content())

    def preview_fix(self) -> LintResult:
        return self.codec.lint(self.read_content(), auto_fix=True)

    def apply_fix(self) -> CommandOutcome:
        try:
            lint = self.preview_fix()
        except BoardIOError as exc:
            self.notifications.error(str(exc), board=self.path.name)
            return _failed(str(exc), ERROR_TYPE_IO)
        if lint.fixed_content is None:
            return CommandOutcome(success=False, error="No fixable issues found", error_type=ERROR_TYPE_VALIDATION)

        fixed = lint.fixable_count
        try:
            _atomic_write_text(self.path, lint.fixed_content)
        except BoardIOError as exc:
            self.notifications.error(str(exc), board=self.path.name)
            return _failed(str(exc), ERROR_TYPE_IO)
        self.fingerprints.record_write(lint.fixed_content)
        self._sync_open_buffer(lint.fixed_content)

        transition = self.apply_content(lint.fixed_content)
        message = f"Fixed {fixed} issue(s)"
        if transition.current == CacheState.VALID:
            self.notifications.info(message, board=self.path.name)
            return CommandOutcome(success=True, board=transition.board, message=message)
        error = f"{message}, but the board still does not parse"
        self.notifications.warning(error, board=self.path.name)
        return _failed(error, ERROR_TYPE_PARSE)

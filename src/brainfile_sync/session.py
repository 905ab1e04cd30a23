"""One live board: watchers, debounced refreshes, the view and commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

from loguru import logger

from .cache import BoardCache
from .clock import Clock
from .codec import DocumentCodec
from .commands import CommandContext, execute_command
from .config import SyncSettings
from .constants import ERROR_TYPE_VALIDATION
from .coordinator import CommandOutcome, PersistenceCoordinator
from .notifications import Notice, NotificationCenter
from .scheduler import ChangeReason, RefreshScheduler
from .state_store import KeyValueStore, MemoryStateStore
from .view import BoardView, ViewSink
from .watcher import OpenDocuments, PollingFileWatcher


class BoardSession:
    """Keep a view in sync with one board file.

    File events and editor edits are debounced into refreshes; commands are
    executed immediately.  After :meth:`dispose` no refresh or command runs.
    """

    def __init__(
        self,
        board_path: Path,
        clock: Clock,
        sink: ViewSink,
        *,
        settings: Optional[SyncSettings] = None,
        open_documents: Optional[OpenDocuments] = None,
        notifications: Optional[NotificationCenter] = None,
        state: Optional[KeyValueStore] = None,
    ) -> None:
        self.settings = settings or SyncSettings()
        self.board_path = Path(board_path)
        self.open_documents = open_documents or OpenDocuments()
        self.notifications = notifications or NotificationCenter()
        self.view = BoardView(sink)
        self.coordinator = PersistenceCoordinator(
            self.board_path,
            codec=DocumentCodec(),
            cache=BoardCache(self.settings.parse_error_tolerance),
            view=self.view,
            notifications=self.notifications,
            open_documents=self.open_documents,
        )
        self.scheduler = RefreshScheduler(
            clock,
            self.coordinator.refresh,
            document_edit_debounce=self.settings.document_edit_debounce,
            file_event_debounce=self.settings.file_event_debounce,
        )
        self.board_watcher = PollingFileWatcher(
            self.board_path,
            clock,
            on_change=lambda _: self.scheduler.schedule(ChangeReason.FILE_CHANGE),
            on_create=lambda _: self.scheduler.schedule(ChangeReason.FILE_CREATE),
            on_delete=lambda _: self._on_deleted(),
            interval=self.settings.watch_poll_interval,
        )
        self.archive_watcher = PollingFileWatcher(
            self.coordinator.archive.path,
            clock,
            on_change=self._on_archive_event,
            on_create=self._on_archive_event,
            on_delete=self._on_archive_event,
            interval=self.settings.watch_poll_interval,
        )
        self.context = CommandContext(
            coordinator=self.coordinator,
            notifications=self.notifications,
            state=state or MemoryStateStore(),
        )
        self._unsubscribers: list[Callable[[], None]] = []
        self._started = False
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def start(self) -> None:
        if self._started or self._disposed:
            return
        self._started = True
        try:
            self._unsubscribers.append(self.open_documents.subscribe(self._on_document_edit))
            self._unsubscribers.append(self.notifications.subscribe(self._forward_notice))
            self.board_watcher.start()
            self.archive_watcher.start()
            logger.info("Watching {}", self.board_path)
            self.coordinator.refresh(ChangeReason.INITIAL)
        except Exception:
            logger.exception("Could not start watching {}", self.board_path)
            self.dispose()
            raise

    def mark_view_ready(self) -> None:
        self.view.mark_ready()

    def _on_document_edit(self, path: Path) -> None:
        if path == self.board_path.resolve():
            self.scheduler.schedule(ChangeReason.DOCUMENT_EDIT)

    def _on_archive_event(self, _path: Path) -> None:
        self.scheduler.schedule(ChangeReason.ARCHIVE_CHANGE)

    def _on_deleted(self) -> None:
        if self._disposed:
            return
        # A queued refresh would only report the deletion a second time.
        self.scheduler.cancel()
        self.coordinator.handle_file_deleted()

    def _forward_notice(self, notice: Notice) -> None:
        self.view.notice(notice.level, notice.message)

    def execute(self, name: str, payload: Optional[dict[str, Any]] = None, *, actor: str = "user") -> CommandOutcome:
        if self._disposed:
            return CommandOutcome(success=False, error="Session is closed", error_type=ERROR_TYPE_VALIDATION)
        self.context.actor = actor
        return execute_command(self.context, name, payload)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self.scheduler.dispose()
        self.board_watcher.stop()
        self.archive_watcher.stop()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        logger.info("Stopped watching {}", self.board_path)

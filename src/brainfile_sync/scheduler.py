"""Debounce and coalesce change notifications into single refreshes."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from loguru import logger

from .clock import Clock, TimerHandle
from .constants import DEFAULT_DOCUMENT_EDIT_DEBOUNCE, DEFAULT_FILE_EVENT_DEBOUNCE


class ChangeReason(str, Enum):
    FILE_CHANGE = "file-change"
    FILE_CREATE = "file-create"
    DOCUMENT_EDIT = "document-edit"
    ARCHIVE_CHANGE = "archive-change"
    INITIAL = "initial"


class RefreshScheduler:
    """Collapse bursts of change events into one refresh call.

    Every event cancels and restarts the pending timer, so only the last
    reason of a burst reaches ``on_refresh`` and it is called exactly once
    after the burst settles.  Editor buffer edits wait longer than file
    system events so a document is not reparsed mid-keystroke.
    """

    def __init__(
        self,
        clock: Clock,
        on_refresh: Callable[[ChangeReason], None],
        *,
        document_edit_debounce: float = DEFAULT_DOCUMENT_EDIT_DEBOUNCE,
        file_event_debounce: float = DEFAULT_FILE_EVENT_DEBOUNCE,
    ) -> None:
        self._clock = clock
        self._on_refresh = on_refresh
        self.document_edit_debounce = document_edit_debounce
        self.file_event_debounce = file_event_debounce
        self._timer: Optional[TimerHandle] = None
        self._pending_reason: Optional[ChangeReason] = None
        self._disposed = False
        self.refresh_count = 0

    @property
    def pending_reason(self) -> Optional[ChangeReason]:
        return self._pending_reason

    @property
    def disposed(self) -> bool:
        return self._disposed

    def debounce_for(self, reason: ChangeReason) -> float:
        if reason == ChangeReason.DOCUMENT_EDIT:
            return self.document_edit_debounce
        return self.file_event_debounce

    def schedule(self, reason: ChangeReason) -> None:
        if self._disposed:
            return
        reason = ChangeReason(reason)
        if self._timer is not None:
            self._timer.cancel()
        self._pending_reason = reason
        self._timer = self._clock.call_later(self.debounce_for(reason), self._fire)

    def flush(self) -> bool:
        """Run a pending refresh now. Returns False when nothing was pending."""
        if self._timer is None or self._disposed:
            return False
        self._timer.cancel()
        self._fire()
        return True

    def cancel(self) -> bool:
        """Drop a pending refresh. Returns False when nothing was pending."""
        if self._timer is None:
            return False
        self._timer.cancel()
        self._timer = None
        self._pending_reason = None
        return True

    def _fire(self) -> None:
        reason = self._pending_reason
        self._timer = None
        self._pending_reason = None
        if self._disposed or reason is None:
            return
        self.refresh_count += 1
        try:
            self._on_refresh(reason)
        except Exception as exc:
            logger.exception("Refresh ({}) failed: {}", reason.value, exc)

    def dispose(self) -> None:
        self._disposed = True
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending_reason = None

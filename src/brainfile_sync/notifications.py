"""User-visible notices (external conflicts, command failures, fixes).

Notices are logged through loguru, kept in a bounded history for the API and
CLI, and forwarded to any subscribed view.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

from loguru import logger

from .constants import MAX_NOTICES
from .utils import _now_iso


@dataclass
class Notice:
    level: str
    message: str
    board: Optional[str] = None
    timestamp: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Optional[str]]:
        return {"level": self.level, "message": self.message, "board": self.board, "timestamp": self.timestamp}


class NotificationCenter:
    """Collect and fan out notices for human attention."""

    def __init__(self, max_notices: int = MAX_NOTICES) -> None:
        self._notices: deque[Notice] = deque(maxlen=max_notices)
        self._listeners: list[Callable[[Notice], None]] = []

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices)

    def subscribe(self, listener: Callable[[Notice], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def info(self, message: str, board: Optional[str] = None) -> Notice:
        return self._emit("info", message, board)

    def warning(self, message: str, board: Optional[str] = None) -> Notice:
        return self._emit("warning", message, board)

    def error(self, message: str, board: Optional[str] = None) -> Notice:
        return self._emit("error", message, board)

    def _emit(self, level: str, message: str, board: Optional[str]) -> Notice:
        notice = Notice(level=level, message=message, board=board)
        self._notices.append(notice)
        logger.log(level.upper(), "{}{}", f"[{board}] " if board else "", message)
        for listener in list(self._listeners):
            listener(notice)
        return notice

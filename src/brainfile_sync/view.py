"""Outbound channel to whatever renders the board.

Protocol (core -> view):
    {"type": "boardUpdate", "board": {...} | null}
    {"type": "parseWarning", "message": str, "lint": {...}}
    {"type": "parseError", "message": str, "lint": {...}, "fixAvailable": bool}
    {"type": "notice", "level": "info" | "warning" | "error", "message": str}

A view that is not ready yet (still loading, or showing the blocking error
surface) cannot take board updates; the latest board is parked in a single
pending slot and delivered by :meth:`BoardView.mark_ready`.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Optional

from .codec import LintResult
from .models import Board
from .task_ids import sort_columns

ViewSink = Callable[[dict[str, Any]], None]

_NOTHING = object()


def _display(board: Optional[Board]) -> Optional[dict[str, Any]]:
    """Board payload with columns in display order."""
    if board is None:
        return None
    return replace(board, columns=sort_columns(board.columns)).to_dict()


class BoardView:
    def __init__(self, sink: ViewSink) -> None:
        self._sink = sink
        self.ready = False
        self._pending: Any = _NOTHING
        self._last_board: Optional[Board] = None

    @property
    def has_pending(self) -> bool:
        return self._pending is not _NOTHING

    @property
    def last_board(self) -> Optional[Board]:
        return self._last_board

    def post_board(self, board: Optional[Board]) -> None:
        self._last_board = board
        if self.ready:
            self._sink({"type": "boardUpdate", "board": _display(board)})
        else:
            self._pending = board

    def mark_ready(self) -> None:
        self.ready = True
        if self.has_pending:
            board, self._pending = self._pending, _NOTHING
            self.post_board(board)
        elif self._last_board is not None:
            self.post_board(self._last_board)

    def warn(self, message: str, lint: LintResult) -> None:
        if not self.ready:
            return
        self._sink({"type": "parseWarning", "message": message, "lint": lint.to_dict()})

    def show_error(self, message: str, lint: LintResult) -> None:
        """Replace the board with the blocking error surface."""
        self.ready = False
        self._pending = _NOTHING
        self._last_board = None
        self._sink(
            {
                "type": "parseError",
                "message": message,
                "lint": lint.to_dict(),
                "fixAvailable": lint.fixable_count > 0,
            }
        )

    def notice(self, level: str, message: str) -> None:
        self._sink({"type": "notice", "level": level, "message": message})

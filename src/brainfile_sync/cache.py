"""Last-valid-board cache and the parse-failure tolerance state machine.

A single malformed keystroke must not blank a working board, but a file that
stays broken must eventually stop being masked by stale data:

    EMPTY  --parse ok-->  VALID  --fail-->  TRANSIENT_ERROR(n)  --K-th fail-->  HARD_ERROR
      ^                     ^                      |                              |
      |                     +------- parse ok -----+------------------------------+
      +------------------------- file deleted (from any state) -------------------+
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from loguru import logger

from .constants import PARSE_ERROR_TOLERANCE
from .models import Board, Task


class CacheState(str, Enum):
    EMPTY = "empty"
    VALID = "valid"
    TRANSIENT_ERROR = "transient_error"
    HARD_ERROR = "hard_error"


@dataclass(frozen=True)
class CacheTransition:
    previous: CacheState
    current: CacheState
    board: Optional[Board]
    failures: int

    @property
    def changed(self) -> bool:
        return self.previous != self.current


class BoardCache:
    """Holds the last successfully parsed board for one open document."""

    def __init__(self, tolerance: int = PARSE_ERROR_TOLERANCE) -> None:
        if tolerance < 1:
            raise ValueError("tolerance must be at least 1")
        self.tolerance = tolerance
        self.state = CacheState.EMPTY
        self.failures = 0
        self._board: Optional[Board] = None

    @property
    def board(self) -> Optional[Board]:
        return self._board

    def _transition(self, state: CacheState) -> CacheTransition:
        previous = self.state
        self.state = state
        if previous != state:
            logger.debug("Board cache {} -> {} (failures={})", previous.value, state.value, self.failures)
        return CacheTransition(previous=previous, current=state, board=self._board, failures=self.failures)

    def record_success(self, board: Board) -> CacheTransition:
        self._board = board
        self.failures = 0
        return self._transition(CacheState.VALID)

    def record_failure(self) -> CacheTransition:
        if self.state in (CacheState.EMPTY, CacheState.HARD_ERROR):
            self._board = None
            self.failures += 1
            return self._transition(CacheState.HARD_ERROR)

        self.failures += 1
        if self.failures < self.tolerance:
            return self._transition(CacheState.TRANSIENT_ERROR)

        logger.warning("Board failed to parse {} times in a row; dropping cached board", self.failures)
        self._board = None
        return self._transition(CacheState.HARD_ERROR)

    def file_deleted(self) -> CacheTransition:
        self._board = None
        self.failures = 0
        return self._transition(CacheState.EMPTY)

    def replace_board(self, board: Board) -> None:
        """Swap the cached board after a successful write (no parse happened)."""
        self._board = board
        self.failures = 0
        self.state = CacheState.VALID

    def merge_archive(self, archive: list[Task]) -> Optional[Board]:
        """Attach archive tasks loaded from the sibling file to the cached board."""
        if self._board is None:
            return None
        self._board = replace(self._board, archive=list(archive))
        return self._board

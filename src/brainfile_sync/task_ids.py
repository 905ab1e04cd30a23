"""Task ID generation and board lookups."""

from __future__ import annotations

import re
from typing import Optional

from .constants import TASK_ID_PREFIX
from .models import Board, Column, Task

_TASK_NUMBER_RE = re.compile(rf"{re.escape(TASK_ID_PREFIX)}(\d+)")
_SUBTASK_NUMBER_RE = re.compile(r"-(\d+)$")


def extract_task_id_number(task_id: str) -> int:
    """Numeric part of ``task-<N>``; anything else counts as 0."""
    match = _TASK_NUMBER_RE.search(str(task_id or ""))
    return int(match.group(1)) if match else 0


def _all_task_ids(board: Board) -> list[str]:
    ids = [task.id for column in board.columns for task in column.tasks]
    ids.extend(task.id for task in board.archive)
    return ids


def get_max_task_id_number(board: Board) -> int:
    return max([0] + [extract_task_id_number(tid) for tid in _all_task_ids(board)])


def generate_next_task_id(board: Board) -> str:
    """Next free id; archived tasks count so retired ids are never reused."""
    return f"{TASK_ID_PREFIX}{get_max_task_id_number(board) + 1}"


def task_id_exists(board: Board, task_id: str) -> bool:
    return task_id in _all_task_ids(board)


def find_column_by_id(board: Board, column_id: str) -> Optional[Column]:
    for column in board.columns:
        if column.id == column_id:
            return column
    return None


def find_task_by_id(board: Board, task_id: str) -> Optional[tuple[Task, Column, int]]:
    """Locate a task in the columns (not the archive)."""
    for column in board.columns:
        for index, task in enumerate(column.tasks):
            if task.id == task_id:
                return task, column, index
    return None


def find_archived_task(board: Board, task_id: str) -> Optional[tuple[Task, int]]:
    for index, task in enumerate(board.archive):
        if task.id == task_id:
            return task, index
    return None


def generate_next_subtask_id(task: Task) -> str:
    highest = 0
    for subtask in task.subtasks:
        match = _SUBTASK_NUMBER_RE.search(subtask.id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{task.id}-{highest + 1}"


def sort_columns(columns: list[Column]) -> list[Column]:
    """Display order: explicit ``order`` first, the rest after, stable."""
    return sorted(columns, key=lambda c: (c.order is None, c.order if c.order is not None else 0))

"""Pure board mutations.

Every function takes a :class:`Board` and returns an :class:`OperationResult`
holding a new board.  The input board is never modified; subtrees that the
operation does not touch may be shared with the result.  Expected failures
(unknown column, task, subtask or rule; bad index; bad priority) are reported
through ``error`` and never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from .constants import COMPLETION_COLUMN_PATTERNS, MAX_STATS_COLUMNS, RULE_TYPES
from .models import Board, Column, Rule, Rules, StatsConfig, Subtask, Task, validate_priority
from .task_ids import (
    find_archived_task,
    find_column_by_id,
    find_task_by_id,
    generate_next_subtask_id,
    generate_next_task_id,
)
from .utils import _is_due_date


@dataclass
class OperationResult:
    success: bool
    board: Optional[Board] = None
    error: Optional[str] = None


def _ok(board: Board) -> OperationResult:
    return OperationResult(success=True, board=board)


def _fail(error: str) -> OperationResult:
    return OperationResult(success=False, error=error)


def _map_column(board: Board, column_id: str, fn: Callable[[Column], Column]) -> Board:
    return replace(board, columns=[fn(c) if c.id == column_id else c for c in board.columns])


def _map_task(column: Column, task_id: str, fn: Callable[[Task], Task]) -> Column:
    return replace(column, tasks=[fn(t) if t.id == task_id else t for t in column.tasks])


def _locate(board: Board, column_id: str, task_id: str) -> tuple[Optional[Column], Optional[str]]:
    column = find_column_by_id(board, column_id)
    if column is None:
        return None, f"Column {column_id} not found"
    if not any(t.id == task_id for t in column.tasks):
        return None, f"Task {task_id} not found in column {column_id}"
    return column, None


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def add_task(
    board: Board,
    column_id: str,
    title: str,
    description: str = "",
    *,
    priority: Any = None,
    tags: Optional[list[str]] = None,
    assignee: Optional[str] = None,
    related_files: Optional[list[str]] = None,
    due_date: Optional[str] = None,
    subtasks: Optional[list[str]] = None,
) -> OperationResult:
    column = find_column_by_id(board, column_id)
    if column is None:
        return _fail(f"Column {column_id} not found")
    if not (title or "").strip():
        return _fail("Task title is required")
    parsed_priority, err = validate_priority(priority)
    if err:
        return _fail(err)
    if due_date and not _is_due_date(due_date):
        return _fail(f"Invalid due date: {due_date}")

    task_id = generate_next_task_id(board)
    task = Task(
        id=task_id,
        title=title.strip(),
        description=(description or "").strip(),
        priority=parsed_priority,
        tags=list(tags or []),
        assignee=assignee or None,
        related_files=list(related_files or []),
        subtasks=[
            Subtask(id=f"{task_id}-{n}", title=text.strip())
            for n, text in enumerate(subtasks or [], start=1)
        ],
        due_date=due_date or None,
    )
    return _ok(_map_column(board, column_id, lambda c: replace(c, tasks=[*c.tasks, task])))


def update_task(board: Board, column_id: str, task_id: str, title: str, description: str) -> OperationResult:
    _, err = _locate(board, column_id, task_id)
    if err:
        return _fail(err)
    return _ok(
        _map_column(
            board,
            column_id,
            lambda c: _map_task(c, task_id, lambda t: replace(t, title=title, description=description)),
        )
    )


def delete_task(board: Board, column_id: str, task_id: str) -> OperationResult:
    _, err = _locate(board, column_id, task_id)
    if err:
        return _fail(err)
    return _ok(
        _map_column(board, column_id, lambda c: replace(c, tasks=[t for t in c.tasks if t.id != task_id]))
    )


def move_task(board: Board, task_id: str, from_column_id: str, to_column_id: str, to_index: int) -> OperationResult:
    source = find_column_by_id(board, from_column_id)
    if source is None:
        return _fail(f"Source column {from_column_id} not found")
    target = find_column_by_id(board, to_column_id)
    if target is None:
        return _fail(f"Target column {to_column_id} not found")
    index = next((i for i, t in enumerate(source.tasks) if t.id == task_id), -1)
    if index == -1:
        return _fail(f"Task {task_id} not found in column {from_column_id}")
    if not isinstance(to_index, int) or isinstance(to_index, bool) or to_index < 0:
        return _fail(f"Invalid target index: {to_index}")

    task = source.tasks[index]
    columns: list[Column] = []
    for column in board.columns:
        if column.id == from_column_id and column.id == to_column_id:
            tasks = list(column.tasks)
            tasks.pop(index)
            tasks.insert(min(to_index, len(tasks)), task)
            columns.append(replace(column, tasks=tasks))
        elif column.id == from_column_id:
            columns.append(replace(column, tasks=[t for t in column.tasks if t.id != task_id]))
        elif column.id == to_column_id:
            tasks = list(column.tasks)
            tasks.insert(min(to_index, len(tasks)), task)
            columns.append(replace(column, tasks=tasks))
        else:
            columns.append(column)
    return _ok(replace(board, columns=columns))


def find_completion_column(board: Board) -> Optional[Column]:
    """First column whose id or title looks like "done", else the last one."""
    if not board.columns:
        return None
    for pattern in COMPLETION_COLUMN_PATTERNS:
        for column in board.columns:
            if pattern in column.id.lower() or pattern in column.title.lower():
                return column
    return board.columns[-1]


def complete_task(board: Board, column_id: str, task_id: str) -> OperationResult:
    target = find_completion_column(board)
    if target is None:
        return _fail("No columns available to complete the task to")
    if target.id == column_id:
        return _fail(f"Task {task_id} is already in the completion column")
    return move_task(board, task_id, column_id, target.id, 0)


def set_task_priority(board: Board, task_id: str, priority: Any) -> OperationResult:
    found = find_task_by_id(board, task_id)
    if found is None:
        return _fail(f"Task {task_id} not found")
    parsed, err = validate_priority(priority)
    if err:
        return _fail(err)
    _, column, _ = found
    return _ok(_map_column(board, column.id, lambda c: _map_task(c, task_id, lambda t: replace(t, priority=parsed))))


_PATCHABLE = {"tags", "assignee", "related_files", "due_date"}


def patch_task(board: Board, task_id: str, changes: dict[str, Any]) -> OperationResult:
    """Update optional task metadata (tags, assignee, related files, due date)."""
    found = find_task_by_id(board, task_id)
    if found is None:
        return _fail(f"Task {task_id} not found")
    unknown = sorted(set(changes) - _PATCHABLE)
    if unknown:
        return _fail(f"Unsupported task fields: {', '.join(unknown)}")
    updates: dict[str, Any] = {}
    for key in ("tags", "related_files"):
        if key in changes:
            value = changes[key]
            if value is not None and not isinstance(value, list):
                return _fail(f"{key} must be a list")
            updates[key] = [str(v) for v in value or []]
    if "assignee" in changes:
        updates["assignee"] = changes["assignee"] or None
    if "due_date" in changes:
        due = changes["due_date"]
        if due and not _is_due_date(due):
            return _fail(f"Invalid due date: {due}")
        updates["due_date"] = due or None
    _, column, _ = found
    return _ok(_map_column(board, column.id, lambda c: _map_task(c, task_id, lambda t: replace(t, **updates))))


# ---------------------------------------------------------------------------
# Subtasks
# ---------------------------------------------------------------------------

def toggle_subtask(board: Board, task_id: str, subtask_id: str) -> OperationResult:
    found = find_task_by_id(board, task_id)
    if found is None:
        return _fail(f"Task {task_id} not found")
    task, column, _ = found
    if not task.subtasks:
        return _fail(f"Task {task_id} has no subtasks")
    if not any(s.id == subtask_id for s in task.subtasks):
        return _fail(f"Subtask {subtask_id} not found")

    def _flip(t: Task) -> Task:
        return replace(
            t,
            subtasks=[replace(s, completed=not s.completed) if s.id == subtask_id else s for s in t.subtasks],
        )

    return _ok(_map_column(board, column.id, lambda c: _map_task(c, task_id, _flip)))


def add_subtask(board: Board, task_id: str, title: str) -> OperationResult:
    found = find_task_by_id(board, task_id)
    if found is None:
        return _fail(f"Task {task_id} not found")
    if not (title or "").strip():
        return _fail("Subtask title is required")
    task, column, _ = found
    subtask = Subtask(id=generate_next_subtask_id(task), title=title.strip())
    return _ok(
        _map_column(
            board,
            column.id,
            lambda c: _map_task(c, task_id, lambda t: replace(t, subtasks=[*t.subtasks, subtask])),
        )
    )


def delete_subtask(board: Board, task_id: str, subtask_id: str) -> OperationResult:
    found = find_task_by_id(board, task_id)
    if found is None:
        return _fail(f"Task {task_id} not found")
    task, column, _ = found
    if not any(s.id == subtask_id for s in task.subtasks):
        return _fail(f"Subtask {subtask_id} not found")
    return _ok(
        _map_column(
            board,
            column.id,
            lambda c: _map_task(
                c, task_id, lambda t: replace(t, subtasks=[s for s in t.subtasks if s.id != subtask_id])
            ),
        )
    )


# ---------------------------------------------------------------------------
# Board-level
# ---------------------------------------------------------------------------

def update_board_title(board: Board, title: str) -> OperationResult:
    return _ok(replace(board, title=title))


def update_stats_config(board: Board, columns: list[str]) -> OperationResult:
    """Keep at most four stat columns; an empty list removes the config."""
    if not columns:
        return _ok(replace(board, stats_config=None))
    return _ok(replace(board, stats_config=StatsConfig(columns=list(columns)[:MAX_STATS_COLUMNS])))


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------

def archive_task(board: Board, column_id: str, task_id: str) -> OperationResult:
    column, err = _locate(board, column_id, task_id)
    if err:
        return _fail(err)
    task = next(t for t in column.tasks if t.id == task_id)
    moved = _map_column(board, column_id, lambda c: replace(c, tasks=[t for t in c.tasks if t.id != task_id]))
    return _ok(replace(moved, archive=[task, *board.archive]))


def restore_task(board: Board, task_id: str, column_id: str) -> OperationResult:
    found = find_archived_task(board, task_id)
    if found is None:
        return _fail(f"Task {task_id} not found in archive")
    if find_column_by_id(board, column_id) is None:
        return _fail(f"Column {column_id} not found")
    task, index = found
    archive = list(board.archive)
    archive.pop(index)
    restored = _map_column(board, column_id, lambda c: replace(c, tasks=[*c.tasks, task]))
    return _ok(replace(restored, archive=archive))


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def _check_rule_type(rule_type: str) -> Optional[str]:
    if rule_type not in RULE_TYPES:
        return f"Unknown rule type: {rule_type}"
    return None


def _with_bucket(board: Board, rule_type: str, rules: list[Rule]) -> Board:
    current = board.rules or Rules()
    return replace(board, rules=replace(current, **{rule_type: rules}))


def _next_rule_id(rules: list[Rule]) -> int:
    numeric = [r.id for r in rules if isinstance(r.id, int)]
    return max([0] + numeric) + 1


def add_rule(board: Board, rule_type: str, text: str) -> OperationResult:
    err = _check_rule_type(rule_type)
    if err:
        return _fail(err)
    if not (text or "").strip():
        return _fail("Rule text is required")
    bucket = board.rules.bucket(rule_type) if board.rules else []
    bucket.append(Rule(id=_next_rule_id(bucket), rule=text.strip()))
    return _ok(_with_bucket(board, rule_type, bucket))


def _rule_index(board: Board, rule_type: str, rule_id: Any) -> tuple[int, Optional[str]]:
    bucket = board.rules.bucket(rule_type) if board.rules else []
    for idx, rule in enumerate(bucket):
        if rule.id == rule_id or str(rule.id) == str(rule_id):
            return idx, None
    return -1, f"Rule {rule_id} not found in {rule_type}"


def update_rule(board: Board, rule_type: str, rule_id: Any, text: str) -> OperationResult:
    err = _check_rule_type(rule_type)
    if err:
        return _fail(err)
    idx, err = _rule_index(board, rule_type, rule_id)
    if err:
        return _fail(err)
    bucket = board.rules.bucket(rule_type)
    bucket[idx] = replace(bucket[idx], rule=(text or "").strip())
    return _ok(_with_bucket(board, rule_type, bucket))


def delete_rule(board: Board, rule_type: str, rule_id: Any) -> OperationResult:
    err = _check_rule_type(rule_type)
    if err:
        return _fail(err)
    idx, err = _rule_index(board, rule_type, rule_id)
    if err:
        return _fail(err)
    bucket = board.rules.bucket(rule_type)
    bucket.pop(idx)
    return _ok(_with_bucket(board, rule_type, bucket))

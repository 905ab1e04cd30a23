"""Named command surface over the board mutations.

Payloads use the camelCase keys the board UI sends, e.g.::

    execute_command(ctx, "moveTask", {"taskId": "task-3", "fromColumn": "todo",
                                      "toColumn": "done", "toIndex": 0})

Every command goes through :meth:`PersistenceCoordinator.execute`, so each one
is a single read-modify-write cycle.  :func:`execute_command` is the outermost
error boundary: whatever goes wrong comes back as a :class:`CommandOutcome`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Optional

from loguru import logger

from . import operations
from .constants import ERROR_TYPE_UNEXPECTED, ERROR_TYPE_VALIDATION, LAST_USED_AGENT_KEY
from .coordinator import CommandOutcome, Operation, PersistenceCoordinator
from .logging_utils import summarize_outcome
from .notifications import NotificationCenter
from .state_store import KeyValueStore, MemoryStateStore

AGENT_ACTOR_PREFIX = "agent:"


class CommandArgumentError(ValueError):
    """A command payload is missing a required argument or has the wrong type."""


@dataclass
class CommandContext:
    """Everything a command handler may touch, passed explicitly."""

    coordinator: PersistenceCoordinator
    notifications: NotificationCenter
    state: KeyValueStore = field(default_factory=MemoryStateStore)
    actor: str = "user"


def _require(payload: dict[str, Any], key: str, kind: type = str) -> Any:
    if key not in payload or payload[key] is None:
        raise CommandArgumentError(f"Missing argument: {key}")
    value = payload[key]
    if kind is int and isinstance(value, bool):
        raise CommandArgumentError(f"{key} must be an integer")
    if not isinstance(value, kind):
        raise CommandArgumentError(f"{key} must be {kind.__name__}, got {type(value).__name__}")
    return value


def _optional_list(payload: dict[str, Any], key: str) -> Optional[list[str]]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise CommandArgumentError(f"{key} must be a list")
    return [str(v) for v in value]


def _rule_id(payload: dict[str, Any]) -> Any:
    if payload.get("ruleId") is None:
        raise CommandArgumentError("Missing argument: ruleId")
    return payload["ruleId"]


# camelCase payload keys -> task fields accepted by ``patch_task``
_PATCH_KEYS = {"relatedFiles": "related_files", "dueDate": "due_date"}


def _add_task(p: dict[str, Any]) -> Operation:
    return partial(
        operations.add_task,
        column_id=_require(p, "columnId"),
        title=_require(p, "title"),
        description=p.get("description") or "",
        priority=p.get("priority"),
        tags=_optional_list(p, "tags"),
        assignee=p.get("assignee"),
        related_files=_optional_list(p, "relatedFiles"),
        due_date=p.get("dueDate"),
        subtasks=_optional_list(p, "subtasks"),
    )


def _update_task(p: dict[str, Any]) -> Operation:
    return partial(
        operations.update_task,
        column_id=_require(p, "columnId"),
        task_id=_require(p, "taskId"),
        title=_require(p, "title"),
        description=p.get("description") or "",
    )


def _delete_task(p: dict[str, Any]) -> Operation:
    return partial(operations.delete_task, column_id=_require(p, "columnId"), task_id=_require(p, "taskId"))


def _move_task(p: dict[str, Any]) -> Operation:
    return partial(
        operations.move_task,
        task_id=_require(p, "taskId"),
        from_column_id=_require(p, "fromColumn"),
        to_column_id=_require(p, "toColumn"),
        to_index=_require(p, "toIndex", int),
    )


def _toggle_subtask(p: dict[str, Any]) -> Operation:
    return partial(operations.toggle_subtask, task_id=_require(p, "taskId"), subtask_id=_require(p, "subtaskId"))


def _archive_task(p: dict[str, Any]) -> Operation:
    return partial(operations.archive_task, column_id=_require(p, "columnId"), task_id=_require(p, "taskId"))


def _restore_task(p: dict[str, Any]) -> Operation:
    return partial(operations.restore_task, task_id=_require(p, "taskId"), column_id=_require(p, "columnId"))


def _update_board_title(p: dict[str, Any]) -> Operation:
    return partial(operations.update_board_title, title=_require(p, "title"))


def _update_stats_config(p: dict[str, Any]) -> Operation:
    return partial(operations.update_stats_config, columns=[str(c) for c in _require(p, "columns", list)])


def _add_rule(p: dict[str, Any]) -> Operation:
    return partial(operations.add_rule, rule_type=_require(p, "ruleType"), text=_require(p, "rule"))


def _update_rule(p: dict[str, Any]) -> Operation:
    return partial(
        operations.update_rule,
        rule_type=_require(p, "ruleType"),
        rule_id=_rule_id(p),
        text=_require(p, "rule"),
    )


def _delete_rule(p: dict[str, Any]) -> Operation:
    return partial(operations.delete_rule, rule_type=_require(p, "ruleType"), rule_id=_rule_id(p))


def _complete_task(p: dict[str, Any]) -> Operation:
    return partial(operations.complete_task, column_id=_require(p, "columnId"), task_id=_require(p, "taskId"))


def _set_priority(p: dict[str, Any]) -> Operation:
    return partial(operations.set_task_priority, task_id=_require(p, "taskId"), priority=p.get("priority"))


def _patch_task(p: dict[str, Any]) -> Operation:
    changes = _require(p, "changes", dict)
    return partial(
        operations.patch_task,
        task_id=_require(p, "taskId"),
        changes={_PATCH_KEYS.get(k, k): v for k, v in changes.items()},
    )


def _add_subtask(p: dict[str, Any]) -> Operation:
    return partial(operations.add_subtask, task_id=_require(p, "taskId"), title=_require(p, "title"))


def _delete_subtask(p: dict[str, Any]) -> Operation:
    return partial(operations.delete_subtask, task_id=_require(p, "taskId"), subtask_id=_require(p, "subtaskId"))


COMMANDS: dict[str, Callable[[dict[str, Any]], Operation]] = {
    "addTask": _add_task,
    "updateTask": _update_task,
    "deleteTask": _delete_task,
    "moveTask": _move_task,
    "toggleSubtask": _toggle_subtask,
    "archiveTask": _archive_task,
    "restoreTask": _restore_task,
    "updateBoardTitle": _update_board_title,
    "updateStatsConfig": _update_stats_config,
    "addRule": _add_rule,
    "updateRule": _update_rule,
    "deleteRule": _delete_rule,
    "completeTask": _complete_task,
    "setPriority": _set_priority,
    "patchTask": _patch_task,
    "addSubtask": _add_subtask,
    "deleteSubtask": _delete_subtask,
}

# Commands whose archive write must land before the main board write.
ARCHIVE_FIRST = frozenset({"archiveTask"})


def last_used_agent(ctx: CommandContext) -> Optional[str]:
    return ctx.state.get(LAST_USED_AGENT_KEY)


def _remember_actor(ctx: CommandContext) -> None:
    if not ctx.actor.startswith(AGENT_ACTOR_PREFIX):
        return
    agent = ctx.actor[len(AGENT_ACTOR_PREFIX):]
    try:
        ctx.state.set(LAST_USED_AGENT_KEY, agent)
    except (OSError, ValueError) as exc:
        logger.warning("Could not persist last used agent {}: {}", agent, exc)


def execute_command(ctx: CommandContext, name: str, payload: Optional[dict[str, Any]] = None) -> CommandOutcome:
    """Run the named command and return its outcome. Never raises."""
    builder = COMMANDS.get(name)
    if builder is None:
        return CommandOutcome(success=False, error=f"Unknown command: {name}", error_type=ERROR_TYPE_VALIDATION)

    try:
        operation = builder(dict(payload or {}))
    except CommandArgumentError as exc:
        return CommandOutcome(success=False, error=str(exc), error_type=ERROR_TYPE_VALIDATION)

    try:
        outcome = ctx.coordinator.execute(name, operation, archive_first=name in ARCHIVE_FIRST)
    except Exception as exc:
        logger.exception("Command {} failed unexpectedly", name)
        ctx.notifications.error(f"{name} failed: {exc}", board=ctx.coordinator.path.name)
        return CommandOutcome(success=False, error=str(exc), error_type=ERROR_TYPE_UNEXPECTED)

    if outcome.success:
        _remember_actor(ctx)
    logger.debug("{} by {} -> {}", name, ctx.actor, summarize_outcome(outcome))
    return outcome

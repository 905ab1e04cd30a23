"""Board document model.

A board is the YAML front matter of a Markdown file.  Every entity keeps the
keys it does not know about in ``extra`` so that a parse/serialize round trip
never drops hand-authored or tool-specific fields.  YAML keys follow the
document's camelCase names; attributes are snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


# ---------------------------------------------------------------------------
# Priority
# ---------------------------------------------------------------------------

class BuiltinPriority(str, Enum):
    """Priority levels understood by every board consumer."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class CustomPriority:
    """A free-form priority label chosen by the board author."""

    label: str

    @property
    def value(self) -> str:
        return self.label


Priority = Union[BuiltinPriority, CustomPriority]


def parse_priority(value: Any) -> Optional[Priority]:
    """Lenient conversion used when reading documents."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return BuiltinPriority(text.lower())
    except ValueError:
        return CustomPriority(text)


def validate_priority(value: Any) -> tuple[Optional[Priority], Optional[str]]:
    """Strict conversion used at the mutation boundary.

    Returns ``(priority, error)``; ``None`` clears the priority.
    """
    if value is None:
        return None, None
    if isinstance(value, (BuiltinPriority, CustomPriority)):
        if isinstance(value, CustomPriority) and not value.label.strip():
            return None, "Custom priority label cannot be empty"
        return value, None
    if not isinstance(value, str):
        return None, f"Priority must be a string, got {type(value).__name__}"
    if not value.strip():
        return None, "Priority label cannot be empty"
    return parse_priority(value), None


def priority_to_str(priority: Optional[Priority]) -> Optional[str]:
    if priority is None:
        return None
    return priority.value


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _extra(data: dict[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in known}


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _rule_id(value: Any) -> Any:
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

@dataclass
class Subtask:
    id: str
    title: str = ""
    completed: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("id", "title", "completed")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title, "completed": self.completed}
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Subtask":
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            completed=bool(data.get("completed", False)),
            extra=_extra(data, cls._KEYS),
        )


@dataclass
class Task:
    id: str
    title: str = ""
    description: str = ""
    priority: Optional[Priority] = None
    tags: list[str] = field(default_factory=list)
    assignee: Optional[str] = None
    related_files: list[str] = field(default_factory=list)
    subtasks: list[Subtask] = field(default_factory=list)
    due_date: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = (
        "id",
        "title",
        "description",
        "priority",
        "tags",
        "assignee",
        "relatedFiles",
        "subtasks",
        "dueDate",
    )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.description:
            data["description"] = self.description
        if self.priority is not None:
            data["priority"] = priority_to_str(self.priority)
        if self.tags:
            data["tags"] = list(self.tags)
        if self.assignee:
            data["assignee"] = self.assignee
        if self.related_files:
            data["relatedFiles"] = list(self.related_files)
        if self.subtasks:
            data["subtasks"] = [s.to_dict() for s in self.subtasks]
        if self.due_date:
            data["dueDate"] = self.due_date
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        subtasks = [Subtask.from_dict(s) for s in list(data.get("subtasks") or []) if isinstance(s, dict)]
        assignee = data.get("assignee")
        due = data.get("dueDate")
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            priority=parse_priority(data.get("priority")),
            tags=_str_list(data.get("tags")),
            assignee=str(assignee) if assignee else None,
            related_files=_str_list(data.get("relatedFiles")),
            subtasks=subtasks,
            due_date=str(due) if due else None,
            extra=_extra(data, cls._KEYS),
        )


@dataclass
class Column:
    id: str
    title: str = ""
    order: Optional[int] = None
    tasks: list[Task] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("id", "title", "order", "tasks")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.order is not None:
            data["order"] = self.order
        data.update(self.extra)
        data["tasks"] = [t.to_dict() for t in self.tasks]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Column":
        order = data.get("order")
        try:
            order = int(order) if order is not None else None
        except (TypeError, ValueError):
            order = None
        tasks = [Task.from_dict(t) for t in list(data.get("tasks") or []) if isinstance(t, dict)]
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            order=order,
            tasks=tasks,
            extra=_extra(data, cls._KEYS),
        )


@dataclass
class Rule:
    id: Any
    rule: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "rule": self.rule}
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rule":
        return cls(
            id=_rule_id(data.get("id")),
            rule=str(data.get("rule") or ""),
            extra=_extra(data, ("id", "rule")),
        )


@dataclass
class Rules:
    always: list[Rule] = field(default_factory=list)
    never: list[Rule] = field(default_factory=list)
    prefer: list[Rule] = field(default_factory=list)
    context: list[Rule] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("always", "never", "prefer", "context")

    def bucket(self, rule_type: str) -> list[Rule]:
        return list(getattr(self, rule_type))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for key in self._KEYS:
            rules = getattr(self, key)
            if rules:
                data[key] = [r.to_dict() for r in rules]
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rules":
        kwargs: dict[str, Any] = {}
        for key in cls._KEYS:
            kwargs[key] = [Rule.from_dict(r) for r in list(data.get(key) or []) if isinstance(r, dict)]
        return cls(**kwargs, extra=_extra(data, cls._KEYS))


@dataclass
class StatsConfig:
    columns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"columns": list(self.columns)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StatsConfig":
        return cls(columns=_str_list(data.get("columns")))


@dataclass
class Board:
    """Root entity of a board document.

    ``body`` is the Markdown that follows the front matter; it is carried
    through untouched.
    """

    title: str = ""
    columns: list[Column] = field(default_factory=list)
    rules: Optional[Rules] = None
    archive: list[Task] = field(default_factory=list)
    stats_config: Optional[StatsConfig] = None
    extra: dict[str, Any] = field(default_factory=dict)
    body: str = ""

    _KEYS = ("title", "columns", "rules", "archive", "statsConfig")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title}
        data.update(self.extra)
        if self.rules is not None:
            data["rules"] = self.rules.to_dict()
        if self.stats_config is not None:
            data["statsConfig"] = self.stats_config.to_dict()
        data["columns"] = [c.to_dict() for c in self.columns]
        if self.archive:
            data["archive"] = [t.to_dict() for t in self.archive]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], body: str = "") -> "Board":
        rules_raw = data.get("rules")
        stats_raw = data.get("statsConfig")
        columns = [Column.from_dict(c) for c in list(data.get("columns") or []) if isinstance(c, dict)]
        archive = [Task.from_dict(t) for t in list(data.get("archive") or []) if isinstance(t, dict)]
        return cls(
            title=str(data.get("title") or ""),
            columns=columns,
            rules=Rules.from_dict(rules_raw) if isinstance(rules_raw, dict) else None,
            archive=archive,
            stats_config=StatsConfig.from_dict(stats_raw) if isinstance(stats_raw, dict) else None,
            extra=_extra(data, cls._KEYS),
            body=body,
        )

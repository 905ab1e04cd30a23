"""Parse, serialize and lint board documents.

A board document is Markdown whose first line is ``---``; everything up to the
next ``---`` line is YAML describing the board, anything after it is free
Markdown that is preserved verbatim.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .constants import TASK_ID_PREFIX
from .models import Board

DELIMITER = "---"
_TASK_ID_RE = re.compile(r"^task-\d+$")
_LIST_ID_RE = re.compile(r"^\s*-\s+id:\s+")
_BARE_DASH_RE = re.compile(r"^\s*-\s*$")


@dataclass
class LintIssue:
    type: str  # "error" | "warning"
    message: str
    line: Optional[int] = None
    fixable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message, "line": self.line, "fixable": self.fixable}


@dataclass
class LintResult:
    valid: bool
    issues: list[LintIssue] = field(default_factory=list)
    fixed_content: Optional[str] = None

    @property
    def fixable_count(self) -> int:
        return sum(1 for issue in self.issues if issue.fixable)

    def first_summary(self) -> str:
        if not self.issues:
            return "Syntax error in board file"
        first = self.issues[0]
        if first.line:
            return f"{first.message} (line {first.line})"
        return first.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "issues": [issue.to_dict() for issue in self.issues],
            "fixed_content": self.fixed_content,
        }


# ---------------------------------------------------------------------------
# Front matter splitting
# ---------------------------------------------------------------------------

def _split_front_matter(text: str) -> Optional[tuple[str, str]]:
    """Return ``(yaml_text, body)`` or None when the delimiters are missing."""
    lines = text.split("\n")
    if not lines or not lines[0].strip().startswith(DELIMITER):
        return None
    for idx in range(1, len(lines)):
        if lines[idx].strip() == DELIMITER:
            return "\n".join(lines[1:idx]), "\n".join(lines[idx + 1:])
    return None


class _Dumper(yaml.SafeDumper):
    """Safe dumper that indents block sequences under their parent key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> Any:
        return super().increase_indent(flow, False)


class DocumentCodec:
    """Text <-> :class:`Board` conversion plus linting."""

    def parse(self, text: str) -> Optional[Board]:
        """Parse a document; ``None`` means the text is not a readable board."""
        split = _split_front_matter(text)
        if split is None:
            return None
        yaml_text, body = split
        try:
            data = yaml.safe_load(yaml_text)
        except yaml.YAMLError:
            return None
        if not isinstance(data, dict):
            return None
        columns = data.get("columns")
        if columns is not None and not isinstance(columns, list):
            return None
        try:
            return Board.from_dict(data, body=body)
        except (TypeError, ValueError, AttributeError):
            return None

    def serialize(self, board: Board) -> str:
        yaml_text = yaml.dump(
            board.to_dict(),
            Dumper=_Dumper,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
            width=10_000,
        )
        return f"{DELIMITER}\n{yaml_text}{DELIMITER}\n{board.body}"

    # -- linting ------------------------------------------------------------

    def lint(self, text: str, auto_fix: bool = False) -> LintResult:
        issues: list[LintIssue] = []
        if not text.strip():
            issues.append(LintIssue("error", "Document is empty"))
            return LintResult(valid=False, issues=issues)

        lines = text.split("\n")
        if not lines[0].strip().startswith(DELIMITER):
            issues.append(LintIssue("error", "Missing YAML front matter start delimiter '---'", line=1))
            return LintResult(valid=False, issues=issues)

        working = text
        closing = next((i for i in range(1, len(lines)) if lines[i].strip() == DELIMITER), None)
        if closing is None:
            issues.append(
                LintIssue("error", "Missing closing '---' for YAML front matter", line=len(lines), fixable=True)
            )
            working = text if text.endswith("\n") else text + "\n"
            working += DELIMITER + "\n"
            lines = working.split("\n")
            closing = next(i for i in range(1, len(lines)) if lines[i].strip() == DELIMITER)

        fixed_lines = list(lines)
        for idx in range(1, closing):
            line = lines[idx]
            stripped = line.lstrip("\t ")
            leading = line[: len(line) - len(stripped)]
            if "\t" in leading:
                issues.append(
                    LintIssue("error", "Tab character used for indentation", line=idx + 1, fixable=True)
                )
                fixed_lines[idx] = leading.replace("\t", "  ") + stripped
        working = "\n".join(fixed_lines)

        issues.extend(self._lint_structure(working, closing))

        fixed_content: Optional[str] = None
        if auto_fix and working != text:
            fixed_content = working
        valid = not any(issue.type == "error" for issue in issues)
        return LintResult(valid=valid, issues=issues, fixed_content=fixed_content)

    def _lint_structure(self, text: str, closing: int) -> list[LintIssue]:
        issues: list[LintIssue] = []
        yaml_text = "\n".join(text.split("\n")[1:closing])
        try:
            data = yaml.safe_load(yaml_text)
        except yaml.YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            # +2: one for 1-based lines, one for the opening delimiter
            line = mark.line + 2 if mark is not None else None
            problem = getattr(exc, "problem", None) or str(exc).splitlines()[0]
            issues.append(LintIssue("error", f"YAML syntax error: {problem}", line=line))
            return issues

        if not isinstance(data, dict):
            issues.append(LintIssue("error", "Front matter must be a YAML mapping"))
            return issues
        if not data.get("title"):
            issues.append(LintIssue("warning", "Board has no title"))
        columns = data.get("columns")
        if columns is None:
            issues.append(LintIssue("error", "Board has no 'columns' list"))
            return issues
        if not isinstance(columns, list):
            issues.append(LintIssue("error", "'columns' must be a list"))
            return issues

        seen_columns: set[str] = set()
        seen_tasks: set[str] = set()
        for pos, column in enumerate(columns, start=1):
            if not isinstance(column, dict):
                issues.append(LintIssue("error", f"Column #{pos} must be a mapping"))
                continue
            col_id = column.get("id")
            if not col_id:
                issues.append(LintIssue("error", f"Column #{pos} has no id"))
            elif col_id in seen_columns:
                issues.append(LintIssue("error", f"Duplicate column id: {col_id}"))
            else:
                seen_columns.add(str(col_id))
            tasks = column.get("tasks") or []
            if not isinstance(tasks, list):
                issues.append(LintIssue("error", f"Column {col_id or pos} 'tasks' must be a list"))
                continue
            for task in tasks:
                issues.extend(self._lint_task(task, seen_tasks, where=f"column {col_id or pos}"))

        archive = data.get("archive") or []
        if isinstance(archive, list):
            for task in archive:
                issues.extend(self._lint_task(task, seen_tasks, where="archive"))
        return issues

    @staticmethod
    def _lint_task(task: Any, seen: set[str], *, where: str) -> list[LintIssue]:
        if not isinstance(task, dict):
            return [LintIssue("error", f"Task in {where} must be a mapping")]
        task_id = task.get("id")
        if not task_id:
            return [LintIssue("error", f"Task in {where} has no id")]
        task_id = str(task_id)
        issues: list[LintIssue] = []
        if task_id in seen:
            issues.append(LintIssue("error", f"Duplicate task id: {task_id}"))
        seen.add(task_id)
        if not _TASK_ID_RE.match(task_id):
            issues.append(LintIssue("warning", f"Task id {task_id} does not follow '{TASK_ID_PREFIX}<N>'"))
        if not task.get("title"):
            issues.append(LintIssue("warning", f"Task {task_id} has no title"))
        return issues

    # -- navigation ---------------------------------------------------------

    @staticmethod
    def find_task_location(text: str, task_id: str) -> Optional[tuple[int, int]]:
        """Return the 1-based ``(line, column)`` where a task entry starts."""
        pattern = re.compile(rf"\bid:\s+['\"]?{re.escape(task_id)}['\"]?\s*$")
        lines = text.split("\n")
        for idx, line in enumerate(lines):
            if not pattern.search(line):
                continue
            if _LIST_ID_RE.match(line):
                return idx + 1, 0
            if idx > 0 and _BARE_DASH_RE.match(lines[idx - 1]):
                return idx, 0
            return idx + 1, 0
        return None

"""Configure loguru and summarize lint results and command outcomes for logs."""

from __future__ import annotations

import json
import sys
from typing import Any, Optional

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{module}</cyan>:<cyan>{line}</cyan> - "
    "{message}"
)


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Install the stderr sink and, optionally, a rotating file sink.

    Args:
        level: Minimum level for the stderr sink.
        log_file: Optional path; receives DEBUG and above, rotated at 1 MB.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT)
    if log_file:
        logger.add(log_file, level="DEBUG", format=_FORMAT, rotation="1 MB", retention=3)


def summarize_lint(lint: Any) -> dict[str, Any]:
    """Render a compact, JSON-friendly summary of a lint result.

    Args:
        lint: ``LintResult`` (or None).

    Returns:
        A dictionary with error/warning/fixable counts and the first issue.
    """
    if lint is None:
        return {"lint": None}
    issues = list(getattr(lint, "issues", []) or [])
    errors = [i for i in issues if i.type == "error"]
    return {
        "valid": bool(getattr(lint, "valid", False)),
        "errors": len(errors),
        "warnings": len(issues) - len(errors),
        "fixable": sum(1 for i in issues if i.fixable),
        "first": lint.first_summary() if issues else None,
    }


def summarize_outcome(outcome: Any) -> dict[str, Any]:
    if outcome is None:
        return {"outcome": None}
    d: dict[str, Any] = {"success": bool(outcome.success)}
    if outcome.error:
        d["error"] = outcome.error
        d["error_type"] = outcome.error_type
    if outcome.conflict:
        d["conflict"] = True
    board = outcome.board
    if board is not None:
        d["columns"] = len(board.columns)
        d["tasks"] = sum(len(c.tasks) for c in board.columns)
        d["archived"] = len(board.archive)
    return d


def pretty(obj: Any, *, indent: int = 2) -> str:
    """Serialize an object as JSON for readable logs.

    Args:
        obj: Object to serialize.
        indent: Indentation level for JSON output.

    Returns:
        A JSON string when possible; otherwise `str(obj)`.
    """
    try:
        return json.dumps(obj, indent=indent, default=str)
    except (TypeError, ValueError):
        return str(obj)

"""Pydantic models for API requests and responses."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class CommandRequest(BaseModel):
    """Arguments for one board command."""

    payload: dict[str, Any] = Field(default_factory=dict)
    actor: str = "user"


class LintIssueInfo(BaseModel):
    type: str
    message: str
    line: Optional[int] = None
    fixable: bool = False


class LintResponse(BaseModel):
    """Lint result for the board document."""

    valid: bool
    issues: list[LintIssueInfo] = Field(default_factory=list)
    fixed_content: Optional[str] = None


class BoardStateResponse(BaseModel):
    """Cached board and parse state."""

    path: str
    state: str
    failures: int = 0
    board: Optional[dict[str, Any]] = None


class NoticeInfo(BaseModel):
    level: str
    message: str
    board: Optional[str] = None
    timestamp: str

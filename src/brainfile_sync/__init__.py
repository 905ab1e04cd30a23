"""Provide the public `brainfile_sync` package exports."""

from __future__ import annotations

from .codec import DocumentCodec, LintIssue, LintResult
from .commands import COMMANDS, CommandContext, execute_command
from .coordinator import CommandOutcome, PersistenceCoordinator
from .models import Board, Column, Rule, Rules, StatsConfig, Subtask, Task
from .session import BoardSession

__all__ = [
    "Board",
    "BoardSession",
    "COMMANDS",
    "Column",
    "CommandContext",
    "CommandOutcome",
    "DocumentCodec",
    "LintIssue",
    "LintResult",
    "PersistenceCoordinator",
    "Rule",
    "Rules",
    "StatsConfig",
    "Subtask",
    "Task",
    "execute_command",
]

"""Shared board fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from brainfile_sync.codec import DocumentCodec  # noqa: E402
from brainfile_sync.models import Board  # noqa: E402

SAMPLE_BOARD = """---
title: Demo Board
columns:
  - id: todo
    title: To Do
    tasks:
      - id: task-1
        title: Write docs
        priority: high
        subtasks:
          - id: task-1-1
            title: Outline
            completed: false
      - id: task-2
        title: Fix bug
  - id: in-progress
    title: In Progress
    tasks:
      - id: task-3
        title: Refactor
  - id: done
    title: Done
    tasks: []
rules:
  always:
    - id: 1
      rule: Write tests
---

# Notes
Free text.
"""

BROKEN_BOARD = """---
title: Demo Board
columns:
  - id: todo
    tasks: [
---
"""


@pytest.fixture
def codec() -> DocumentCodec:
    return DocumentCodec()


@pytest.fixture
def board(codec: DocumentCodec) -> Board:
    parsed = codec.parse(SAMPLE_BOARD)
    assert parsed is not None
    return parsed


@pytest.fixture
def board_file(tmp_path: Path) -> Path:
    path = tmp_path / "brainfile.md"
    path.write_text(SAMPLE_BOARD, encoding="utf-8")
    return path

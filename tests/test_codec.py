"""Tests for parsing, serializing and linting board documents."""

from __future__ import annotations

from conftest import BROKEN_BOARD, SAMPLE_BOARD

from brainfile_sync.codec import DocumentCodec
from brainfile_sync.models import BuiltinPriority


class TestParse:
    def test_parse_sample(self, codec: DocumentCodec) -> None:
        board = codec.parse(SAMPLE_BOARD)
        assert board is not None
        assert board.title == "Demo Board"
        assert [c.id for c in board.columns] == ["todo", "in-progress", "done"]
        assert board.columns[0].tasks[0].priority == BuiltinPriority.HIGH
        assert board.columns[0].tasks[0].subtasks[0].id == "task-1-1"
        assert board.rules.always[0].rule == "Write tests"
        assert board.body == "\n# Notes\nFree text.\n"

    def test_parse_rejects_unreadable_documents(self, codec: DocumentCodec) -> None:
        assert codec.parse("") is None
        assert codec.parse("title: no delimiters\n") is None
        assert codec.parse("---\ntitle: unterminated\n") is None
        assert codec.parse("---\n- just\n- a list\n---\n") is None
        assert codec.parse("---\ntitle: x\ncolumns: nope\n---\n") is None
        assert codec.parse(BROKEN_BOARD) is None


class TestSerialize:
    def test_round_trip(self, codec: DocumentCodec) -> None:
        board = codec.parse(SAMPLE_BOARD)
        text = codec.serialize(board)
        assert text.startswith("---\ntitle: Demo Board\n")
        assert text.endswith("---\n\n# Notes\nFree text.\n")
        assert codec.parse(text) == board

    def test_unknown_fields_survive(self, codec: DocumentCodec) -> None:
        text = SAMPLE_BOARD.replace(
            "title: Demo Board\n",
            "title: Demo Board\nagentContext:\n  owner: team-a\n",
        ).replace("        title: Fix bug\n", "        title: Fix bug\n        effort: 3\n")
        board = codec.parse(text)
        assert board.extra == {"agentContext": {"owner": "team-a"}}
        assert board.columns[0].tasks[1].extra == {"effort": 3}

        again = codec.parse(codec.serialize(board))
        assert again.extra == {"agentContext": {"owner": "team-a"}}
        assert again.columns[0].tasks[1].extra == {"effort": 3}


class TestLint:
    def test_valid_document(self, codec: DocumentCodec) -> None:
        result = codec.lint(SAMPLE_BOARD)
        assert result.valid
        assert result.issues == []
        assert result.fixed_content is None

    def test_empty_and_missing_start(self, codec: DocumentCodec) -> None:
        assert codec.lint("  \n").issues[0].message == "Document is empty"
        result = codec.lint("title: x\n")
        assert not result.valid
        assert result.issues[0].line == 1

    def test_missing_closing_delimiter_is_fixable(self, codec: DocumentCodec) -> None:
        text = "---\ntitle: x\ncolumns: []\n"
        result = codec.lint(text)
        assert not result.valid
        assert result.issues[0].fixable
        assert result.fixed_content is None

        fixed = codec.lint(text, auto_fix=True)
        assert fixed.fixed_content == text + "---\n"
        assert codec.parse(fixed.fixed_content) is not None

    def test_tabs_are_fixable(self, codec: DocumentCodec) -> None:
        text = "---\ntitle: x\ncolumns:\n\t- id: todo\n\t  title: To Do\n---\n"
        result = codec.lint(text, auto_fix=True)
        tab_issues = [i for i in result.issues if "Tab" in i.message]
        assert [i.line for i in tab_issues] == [4, 5]
        assert result.fixable_count >= 2
        assert "\t" not in result.fixed_content
        board = codec.parse(result.fixed_content)
        assert board is not None
        assert board.columns[0].id == "todo"

    def test_yaml_error_has_a_line(self, codec: DocumentCodec) -> None:
        result = codec.lint(BROKEN_BOARD)
        assert not result.valid
        assert result.issues[0].message.startswith("YAML syntax error")
        assert result.issues[0].line is not None
        assert result.fixable_count == 0

    def test_structural_problems(self, codec: DocumentCodec) -> None:
        text = """---
columns:
  - id: todo
    tasks:
      - id: task-1
        title: A
      - id: task-1
      - id: custom
        title: C
  - id: todo
archive:
  - id: task-1
    title: Old
---
"""
        result = codec.lint(text)
        messages = [(i.type, i.message) for i in result.issues]
        assert ("warning", "Board has no title") in messages
        assert ("error", "Duplicate column id: todo") in messages
        assert [m for m in messages if m == ("error", "Duplicate task id: task-1")] == [
            ("error", "Duplicate task id: task-1"),
            ("error", "Duplicate task id: task-1"),
        ]
        assert ("warning", "Task task-1 has no title") in messages
        assert ("warning", "Task id custom does not follow 'task-<N>'") in messages
        assert not result.valid

    def test_missing_columns(self, codec: DocumentCodec) -> None:
        result = codec.lint("---\ntitle: x\n---\n")
        assert [i.message for i in result.issues] == ["Board has no 'columns' list"]


class TestFindTaskLocation:
    def test_finds_list_item_line(self) -> None:
        assert DocumentCodec.find_task_location(SAMPLE_BOARD, "task-1") == (7, 0)
        assert DocumentCodec.find_task_location(SAMPLE_BOARD, "task-3") == (19, 0)

    def test_does_not_match_prefixes(self) -> None:
        assert DocumentCodec.find_task_location(SAMPLE_BOARD, "task-1-1") == (11, 0)
        assert DocumentCodec.find_task_location(SAMPLE_BOARD, "task-4") is None

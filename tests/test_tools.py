"""Tests for the memory tools exposed to the agent."""

from __future__ import annotations

import pytest
from pathlib import Path
from unittest.mock import patch

from pimem.config import build_config
from pimem.memory.store import MemoryStore, today_str
from pimem.tools.base import ToolDefinition, ToolResult

from pimem.tools.memory_tools import get_memory_tools

SESSION = "12950572-aaaa-bbbb-cccc"


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    return MemoryStore(build_config({"PI_MEMORY_DIR": str(tmp_path / "memory")}))


@pytest.fixture
def tools(store: MemoryStore) -> dict[str, ToolDefinition]:
    return {t.name: t for t in get_memory_tools(store)}


class TestToolBase:
    def test_error_result(self):
        result = ToolResult.error("boom")
        assert result.text == "Error: boom"
        assert result.details == {"error": "boom"}

    def test_to_content(self):
        assert ToolResult("hi", {"a": 1}).to_content() == {
            "content": [{"type": "text", "text": "hi"}],
            "details": {"a": 1},
        }

    def test_definitions(self, tools: dict[str, ToolDefinition]):
        assert sorted(tools) == ["memory_read", "memory_search", "memory_write", "scratchpad"]
        for tool in tools.values():
            assert tool.parameters["type"] == "object"
            assert tool.label
            assert tool.description
        assert tools["memory_write"].parameters["required"] == ["target", "content"]


class TestMemoryWrite:
    def test_long_term_append(self, tools, store: MemoryStore):
        result = tools["memory_write"]({"target": "long_term", "content": "Likes tabs"}, SESSION)

        assert result.text == "Appended to MEMORY.md\n\nMEMORY.md was empty."
        assert result.details["target"] == "long_term"
        assert result.details["mode"] == "append"
        assert result.details["sessionId"] == "12950572"
        assert result.details["path"] == str(store.config.memory_file)
        assert store.read_long_term().endswith("Likes tabs")

    def test_long_term_overwrite_shows_previous(self, tools, store: MemoryStore):
        tools["memory_write"]({"target": "long_term", "content": "old fact"}, SESSION)
        result = tools["memory_write"](
            {"target": "long_term", "content": "new fact", "mode": "overwrite"}, SESSION
        )

        assert result.text.startswith("Overwrote MEMORY.md\n\nExisting MEMORY.md content:\n")
        assert "old fact" in result.text
        assert "old fact" not in store.read_long_term()

    def test_daily(self, tools, store: MemoryStore):
        first = tools["memory_write"]({"target": "daily", "content": "morning"}, SESSION)
        second = tools["memory_write"](
            {"target": "daily", "content": "evening", "mode": "overwrite"}, SESSION
        )

        path = store.daily_path()
        assert first.text == f"Appended to daily log: {path}\n\nDaily log was empty."
        assert second.text.startswith(f"Appended to daily log: {path}\n\nExisting daily log content:")
        assert second.details["mode"] == "append"
        content = store.read_daily()
        assert "morning" in content and "evening" in content

    def test_note(self, tools, store: MemoryStore):
        result = tools["memory_write"](
            {"target": "note", "content": "lesson", "filename": "sub/lessons.md"}, SESSION
        )
        assert result.text == "Appended to notes/lessons.md"
        assert store.read_note("lessons.md").endswith("lesson")

        result = tools["memory_write"](
            {"target": "note", "content": "x", "filename": "lessons.md", "mode": "overwrite"},
            SESSION,
        )
        assert result.text == "Wrote notes/lessons.md"

    @pytest.mark.parametrize(
        "params,message",
        [
            ({"target": "note", "content": "x"}, "Error: 'filename' is required for target 'note'."),
            ({"target": "note", "content": "x", "filename": ".."}, "Error: 'filename' is required"),
            ({"target": "long_term"}, "Error: 'content' is required."),
            ({"target": "elsewhere", "content": "x"}, "Error: Unknown target: elsewhere"),
        ],
    )
    def test_invalid_params(self, tools, params: dict, message: str):
        result = tools["memory_write"](params, SESSION)
        assert result.text.startswith(message)
        assert "error" in result.details


class TestMemoryRead:
    def test_missing_files(self, tools):
        read = tools["memory_read"]
        assert read({"target": "long_term"}, SESSION).text == "MEMORY.md is empty or does not exist."
        assert read({"target": "scratchpad"}, SESSION).text == (
            "SCRATCHPAD.md is empty or does not exist."
        )
        assert read({"target": "daily", "date": "2020-01-01"}, SESSION).text == (
            "No daily log for 2020-01-01."
        )
        assert read({"target": "file", "filename": "SOUL.md"}, SESSION).text == (
            "File not found: SOUL.md"
        )
        assert read({"target": "note", "filename": "x.md"}, SESSION).text == (
            "Note not found: notes/x.md"
        )
        assert read({"target": "list"}, SESSION).text == "Memory directory is empty."

    def test_reads_existing(self, tools, store: MemoryStore):
        store.ensure_dirs()
        store.config.memory_file.write_text("facts")
        (store.config.memory_dir / "SOUL.md").write_text("soul")
        (store.config.notes_dir / "n.md").write_text("note")
        store.daily_path().write_text("today")
        read = tools["memory_read"]

        assert read({"target": "long_term"}, SESSION).text == "facts"
        assert read({"target": "file", "filename": "SOUL.md"}, SESSION).text == "soul"
        note = read({"target": "note", "filename": "n.md"}, SESSION)
        assert note.text == "note"
        assert note.details["filename"] == "notes/n.md"
        daily = read({"target": "daily"}, SESSION)
        assert daily.text == "today"
        assert daily.details["date"] == today_str()

    def test_list(self, tools, store: MemoryStore):
        store.ensure_dirs()
        store.config.memory_file.write_text("m")
        (store.config.notes_dir / "n.md").write_text("n")
        for day in range(1, 13):
            (store.config.daily_dir / f"2026-01-{day:02d}.md").write_text("d")

        text = tools["memory_read"]({"target": "list"}, SESSION).text

        assert text.startswith("Files:\n- MEMORY.md\n\nNotes:\n- notes/n.md\n\nDaily logs (12):\n")
        assert "- daily/2026-01-12.md" in text
        assert "- daily/2026-01-02.md" not in text
        assert text.endswith("  ... and 2 more")

    @pytest.mark.parametrize("date", ["../MEMORY", "2026-02-30", "20260218", "today"])
    def test_daily_rejects_invalid_date(self, tools, store: MemoryStore, date: str):
        store.ensure_dirs()
        store.config.memory_file.write_text("secret facts")

        result = tools["memory_read"]({"target": "daily", "date": date}, SESSION)

        assert result.text == f"Error: 'date' must be YYYY-MM-DD, got: {date}"
        assert "secret facts" not in result.text

    def test_requires_filename(self, tools):
        result = tools["memory_read"]({"target": "file"}, SESSION)
        assert result.text == "Error: 'filename' is required for target 'file'."


class TestMemorySearch:
    def test_results(self, tools, store: MemoryStore):
        store.ensure_dirs()
        store.config.memory_file.write_text("Uses pytest\nnothing")
        (store.config.notes_dir / "pytest-tips.md").write_text("fixtures")

        result = tools["memory_search"]({"query": "PYTEST"}, SESSION)

        assert result.text == (
            'Files matching "PYTEST":\n- notes/pytest-tips.md\n\n'
            "Content matches:\nMEMORY.md:1: Uses pytest"
        )
        assert result.details == {"query": "PYTEST", "fileMatches": 1, "lineMatches": 1}

    def test_no_results(self, tools):
        assert tools["memory_search"]({"query": "zzz"}, SESSION).text == 'No results for "zzz".'

    def test_query_required(self, tools):
        assert tools["memory_search"]({}, SESSION).text == "Error: 'query' is required."

    @pytest.mark.parametrize("limit", ["lots", -1, 2.5, True])
    def test_invalid_max_results(self, tools, limit):
        result = tools["memory_search"]({"query": "hit", "max_results": limit}, SESSION)
        assert result.text == "Error: 'max_results' must be a non-negative integer."
        assert "error" in result.details

    def test_max_results_zero_is_kept(self, tools, store: MemoryStore):
        store.ensure_dirs()
        store.config.memory_file.write_text("\n".join(["hit"] * 30))

        assert tools["memory_search"]({"query": "hit", "max_results": 0}, SESSION).text == (
            'No results for "hit".'
        )
        result = tools["memory_search"]({"query": "hit", "max_results": None}, SESSION)
        assert result.details["lineMatches"] == 20


class TestScratchpad:
    def test_add_done_undo_clear(self, tools, store: MemoryStore):
        pad = tools["scratchpad"]
        with patch("pimem.tools.memory_tools.now_timestamp", return_value="2026-02-18 10:00:00"):
            added = pad({"action": "add", "text": "Fix flaky test"}, SESSION)
            pad({"action": "add", "text": "Update docs"}, SESSION)

        assert added.text.startswith("Added: - [ ] Fix flaky test\n\n# Scratchpad")
        assert added.details == {
            "action": "add", "sessionId": "12950572", "timestamp": "2026-02-18 10:00:00",
        }
        assert store.read_scratchpad() == (
            "# Scratchpad\n\n"
            "<!-- 2026-02-18 10:00:00 [12950572] -->\n- [ ] Fix flaky test\n"
            "<!-- 2026-02-18 10:00:00 [12950572] -->\n- [ ] Update docs\n"
        )

        done = pad({"action": "done", "text": "FLAKY"}, SESSION)
        assert done.text.startswith("Updated.")
        assert "- [x] Fix flaky test" in store.read_scratchpad()

        missing = pad({"action": "done", "text": "flaky"}, SESSION)
        assert missing.text == 'No matching open item found for: "flaky"'

        pad({"action": "undo", "text": "flaky"}, SESSION)
        assert "- [ ] Fix flaky test" in store.read_scratchpad()
        assert pad({"action": "undo", "text": "docs"}, SESSION).text == (
            'No matching done item found for: "docs"'
        )

        pad({"action": "done", "text": "docs"}, SESSION)
        cleared = pad({"action": "clear_done"}, SESSION)
        assert cleared.text.startswith("Cleared 1 done item(s).")
        assert cleared.details["removed"] == 1
        assert "Update docs" not in store.read_scratchpad()

    def test_done_marks_first_match_only(self, tools, store: MemoryStore):
        pad = tools["scratchpad"]
        pad({"action": "add", "text": "write test A"}, SESSION)
        pad({"action": "add", "text": "write test B"}, SESSION)

        pad({"action": "done", "text": "write test"}, SESSION)

        items = store.load_scratchpad()
        assert [i.done for i in items] == [True, False]

    def test_list(self, tools):
        pad = tools["scratchpad"]
        assert pad({"action": "list"}, SESSION).text == "Scratchpad is empty."
        pad({"action": "add", "text": "a"}, SESSION)
        listed = pad({"action": "list"}, SESSION)
        assert "- [ ] a" in listed.text
        assert listed.details == {"count": 1, "open": 1}

    @pytest.mark.parametrize("action", ["add", "done", "undo"])
    def test_text_required(self, tools, action: str):
        assert tools["scratchpad"]({"action": action}, SESSION).text == (
            f"Error: 'text' is required for {action}."
        )

    def test_unknown_action(self, tools):
        assert tools["scratchpad"]({"action": "nuke"}, SESSION).text == "Error: Unknown action: nuke"

"""Memory tools exposed to the agent: write, read, search, scratchpad.

Missing or invalid parameters come back as an error ToolResult rather than
an exception, so the agent can correct itself and retry.
"""

from __future__ import annotations

from datetime import date as Date
from typing import TYPE_CHECKING, Any

from pimem.memory import scratchpad
from pimem.memory.search import DEFAULT_MAX_RESULTS, search_memory
from pimem.memory.store import now_timestamp, short_session_id, today_str
from pimem.tools.base import ToolDefinition, ToolResult, object_schema, string_enum

if TYPE_CHECKING:
    from pimem.memory.store import MemoryStore, WriteResult

DAILY_LIST_LIMIT = 10


def _existing_snippet(label: str, previous: str, empty: str) -> str:
    if previous.strip():
        return f"\n\nExisting {label} content:\n{previous.strip()}"
    return f"\n\n{empty}"


def _write_details(result: WriteResult) -> dict[str, Any]:
    return {
        "path": str(result.path),
        "target": result.target,
        "mode": result.mode,
        "sessionId": result.session_id,
        "timestamp": result.timestamp,
    }


def _is_iso_date(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        return Date.fromisoformat(value).isoformat() == value
    except ValueError:
        return False


def _mode(params: dict[str, Any]) -> str:
    return "overwrite" if params.get("mode") == "overwrite" else "append"


def get_memory_tools(store: MemoryStore) -> list[ToolDefinition]:
    """Return the memory tools bound to `store`."""

    # ── memory_write ─────────────────────────────────────────

    def memory_write(params: dict[str, Any], session_id: str) -> ToolResult:
        target = params.get("target")
        content = params.get("content")
        if content is None:
            return ToolResult.error("'content' is required.")
        mode = _mode(params)

        if target == "note":
            filename = params.get("filename")
            if not filename or not store.note_name(filename):
                return ToolResult.error("'filename' is required for target 'note'.")
            result = store.write_note(filename, content, session_id, mode=mode)
            verb = "Wrote" if mode == "overwrite" else "Appended to"
            return ToolResult(f"{verb} notes/{result.path.name}", _write_details(result))

        if target == "daily":
            result = store.append_daily(content, session_id)
            return ToolResult(
                f"Appended to daily log: {result.path}"
                + _existing_snippet("daily log", result.previous, "Daily log was empty."),
                _write_details(result),
            )

        if target == "long_term":
            result = store.write_long_term(content, session_id, mode=mode)
            verb = "Overwrote" if mode == "overwrite" else "Appended to"
            snippet = _existing_snippet("MEMORY.md", result.previous, "MEMORY.md was empty.")
            return ToolResult(f"{verb} MEMORY.md{snippet}", _write_details(result))

        return ToolResult.error(f"Unknown target: {target}")

    # ── memory_read ──────────────────────────────────────────

    def memory_read(params: dict[str, Any], session_id: str) -> ToolResult:
        store.ensure_dirs()
        target = params.get("target")
        filename = params.get("filename")

        if target == "list":
            return _list_files()

        if target in ("file", "note"):
            if not filename or not store.note_name(filename):
                return ToolResult.error(f"'filename' is required for target '{target}'.")
            safe = store.note_name(filename)
            if target == "file":
                content = store.read_root_file(safe)
                display, path = safe, store.config.memory_dir / safe
                missing = f"File not found: {safe}"
            else:
                content = store.read_note(safe)
                display, path = f"notes/{safe}", store.config.notes_dir / safe
                missing = f"Note not found: notes/{safe}"
            if not content:
                return ToolResult(missing)
            return ToolResult(content, {"path": str(path), "filename": display})

        if target == "daily":
            date = params.get("date") or today_str()
            if not _is_iso_date(date):
                return ToolResult.error(f"'date' must be YYYY-MM-DD, got: {date}")
            content = store.read_daily(date)
            if not content:
                return ToolResult(f"No daily log for {date}.")
            return ToolResult(content, {"path": str(store.daily_path(date)), "date": date})

        if target == "scratchpad":
            content = store.read_scratchpad()
            if not content or not content.strip():
                return ToolResult("SCRATCHPAD.md is empty or does not exist.")
            return ToolResult(content, {"path": str(store.config.scratchpad_file)})

        if target == "long_term":
            content = store.read_long_term()
            if not content:
                return ToolResult("MEMORY.md is empty or does not exist.")
            return ToolResult(content, {"path": str(store.config.memory_file)})

        return ToolResult.error(f"Unknown target: {target}")

    def _list_files() -> ToolResult:
        files = store.list_files()
        sections = []
        if files["root"]:
            sections.append("Files:\n" + "\n".join(f"- {f}" for f in files["root"]))
        if files["notes"]:
            sections.append("Notes:\n" + "\n".join(f"- notes/{f}" for f in files["notes"]))
        daily = files["daily"]
        if daily:
            listing = "\n".join(f"- daily/{f}" for f in daily[:DAILY_LIST_LIMIT])
            more = len(daily) - DAILY_LIST_LIMIT
            if more > 0:
                listing += f"\n  ... and {more} more"
            sections.append(f"Daily logs ({len(daily)}):\n{listing}")
        if not sections:
            return ToolResult("Memory directory is empty.")
        return ToolResult("\n\n".join(sections))

    # ── memory_search ────────────────────────────────────────

    def memory_search(params: dict[str, Any], session_id: str) -> ToolResult:
        query = params.get("query")
        if not query:
            return ToolResult.error("'query' is required.")
        limit = params.get("max_results")
        if limit is None:
            limit = DEFAULT_MAX_RESULTS
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            return ToolResult.error("'max_results' must be a non-negative integer.")
        store.ensure_dirs()
        result = search_memory(store.config, query, limit)

        if result.empty:
            return ToolResult(f'No results for "{query}".')

        parts = []
        if result.file_matches:
            parts.append(
                f'Files matching "{query}":\n' + "\n".join(f"- {f}" for f in result.file_matches)
            )
        if result.line_results:
            parts.append(
                "Content matches:\n"
                + "\n".join(f"{r.file}:{r.line}: {r.text}" for r in result.line_results)
            )
        return ToolResult(
            "\n\n".join(parts),
            {
                "query": query,
                "fileMatches": len(result.file_matches),
                "lineMatches": len(result.line_results),
            },
        )

    # ── scratchpad ───────────────────────────────────────────

    def scratchpad_tool(params: dict[str, Any], session_id: str) -> ToolResult:
        action = params.get("action")
        text = params.get("text")
        sid = short_session_id(session_id)
        ts = now_timestamp()
        items = store.load_scratchpad()

        if action == "list":
            if not items:
                return ToolResult("Scratchpad is empty.")
            return ToolResult(
                scratchpad.serialize(items),
                {"count": len(items), "open": len(scratchpad.open_items(items))},
            )

        if action == "add":
            if not text:
                return ToolResult.error("'text' is required for add.")
            items.append(
                scratchpad.ChecklistItem(done=False, text=text, meta=scratchpad.stamp(ts, sid))
            )
            written = store.save_scratchpad(items, "scratchpad: add")
            return ToolResult(
                f"Added: - [ ] {text}\n\n{written}",
                {"action": action, "sessionId": sid, "timestamp": ts},
            )

        if action in ("done", "undo"):
            if not text:
                return ToolResult.error(f"'text' is required for {action}.")
            target_done = action == "done"
            needle = text.lower()
            match = next(
                (i for i in items if i.done != target_done and needle in i.text.lower()), None
            )
            if match is None:
                state = "open" if target_done else "done"
                return ToolResult(f'No matching {state} item found for: "{text}"')
            match.done = target_done
            written = store.save_scratchpad(items, f"scratchpad: {action}")
            return ToolResult(
                f"Updated.\n\n{written}", {"action": action, "sessionId": sid, "timestamp": ts}
            )

        if action == "clear_done":
            remaining = scratchpad.open_items(items)
            removed = len(items) - len(remaining)
            written = store.save_scratchpad(remaining, "scratchpad: clear_done")
            return ToolResult(
                f"Cleared {removed} done item(s).\n\n{written}",
                {"action": action, "removed": removed},
            )

        return ToolResult.error(f"Unknown action: {action}")

    return [
        ToolDefinition(
            name="memory_write",
            label="Memory Write",
            description=(
                "Write to memory files. Three targets:\n"
                "- 'long_term': Write to MEMORY.md (curated durable facts, decisions, "
                "preferences). Mode: 'append' or 'overwrite'.\n"
                "- 'daily': Append to today's daily log (daily/<YYYY-MM-DD>.md). Always appends.\n"
                "- 'note': Create or update a file in notes/ (e.g. lessons.md). Pass filename. "
                "Mode: 'append' or 'overwrite'.\n"
                "Use this when the user asks you to remember something, or when you learn "
                "important preferences/decisions."
            ),
            parameters=object_schema(
                {
                    "target": string_enum(
                        ["long_term", "daily", "note"],
                        "Where to write: 'long_term' for MEMORY.md, 'daily' for today's "
                        "daily log, 'note' for notes/<filename>",
                    ),
                    "content": {"type": "string", "description": "Content to write (Markdown)"},
                    "mode": string_enum(
                        ["append", "overwrite"],
                        "Write mode. Default: 'append'. Daily always appends.",
                    ),
                    "filename": {
                        "type": "string",
                        "description": "Filename for 'note' target (e.g. 'lessons.md')",
                    },
                },
                required=["target", "content"],
            ),
            handler=memory_write,
        ),
        ToolDefinition(
            name="memory_read",
            label="Memory Read",
            description=(
                "Read a memory file. Targets:\n"
                "- 'long_term': Read MEMORY.md\n"
                "- 'scratchpad': Read SCRATCHPAD.md\n"
                "- 'daily': Read a specific day's log (default: today). Pass date as YYYY-MM-DD.\n"
                "- 'file': Read any file by name (e.g. 'SOUL.md'). Pass filename.\n"
                "- 'note': Read a file from notes/ (e.g. 'lessons.md'). Pass filename.\n"
                "- 'list': List all files in the memory directory."
            ),
            parameters=object_schema(
                {
                    "target": string_enum(
                        ["long_term", "scratchpad", "daily", "file", "note", "list"],
                        "What to read",
                    ),
                    "date": {
                        "type": "string",
                        "description": "Date for daily log (YYYY-MM-DD). Default: today.",
                    },
                    "filename": {
                        "type": "string",
                        "description": "Filename for 'file' or 'note' target",
                    },
                },
                required=["target"],
            ),
            handler=memory_read,
        ),
        ToolDefinition(
            name="memory_search",
            label="Memory Search",
            description=(
                "Search across all memory files (MEMORY.md, SCRATCHPAD.md, daily logs, notes/, "
                "and any other .md files).\n"
                "Matches filenames and file contents. Case-insensitive keyword search.\n"
                "Returns matching files and lines with paths."
            ),
            parameters=object_schema(
                {
                    "query": {
                        "type": "string",
                        "description": "Search query (case-insensitive substring match)",
                    },
                    "max_results": {
                        "type": "integer",
                        "description": "Maximum results to return (default: 20)",
                        "default": DEFAULT_MAX_RESULTS,
                    },
                },
                required=["query"],
            ),
            handler=memory_search,
        ),
        ToolDefinition(
            name="scratchpad",
            label="Scratchpad",
            description=(
                "Manage a checklist of things to fix later or keep in mind. Actions:\n"
                "- 'add': Add a new unchecked item (- [ ] text)\n"
                "- 'done': Mark an item as done (- [x] text). Match by substring.\n"
                "- 'undo': Uncheck a done item back to open. Match by substring.\n"
                "- 'clear_done': Remove all checked items from the list.\n"
                "- 'list': Show all items."
            ),
            parameters=object_schema(
                {
                    "action": string_enum(
                        ["add", "done", "undo", "clear_done", "list"], "What to do"
                    ),
                    "text": {
                        "type": "string",
                        "description": "Item text for add, or substring to match for done/undo",
                    },
                },
                required=["action"],
            ),
            handler=scratchpad_tool,
        ),
    ]

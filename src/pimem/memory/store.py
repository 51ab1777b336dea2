"""Plain-Markdown memory store — context assembly + stamped writes.

Markdown files on disk are the only source of truth. Nothing is cached in
memory: every read loads the current file content and every write goes
straight to disk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Literal

from pimem.config import MemoryConfig
from pimem.git import Committer, NullCommitter, safe_commit
from pimem.memory import scratchpad
from pimem.memory.scratchpad import ChecklistItem

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n---\n\n"
CONTEXT_HEADING = "# Memory"

WriteMode = Literal["append", "overwrite"]


# ── Date/time helpers ─────────────────────────────────────────


def _utcnow(now: datetime | None) -> datetime:
    return now.astimezone(timezone.utc) if now else datetime.now(timezone.utc)


def today_str(now: datetime | None = None) -> str:
    return _utcnow(now).date().isoformat()


def yesterday_str(now: datetime | None = None) -> str:
    return (_utcnow(now) - timedelta(days=1)).date().isoformat()


def now_timestamp(now: datetime | None = None) -> str:
    """UTC timestamp used in write stamps, e.g. ``2026-02-18 10:00:00``."""
    return _utcnow(now).strftime("%Y-%m-%d %H:%M:%S")


def short_session_id(session_id: str) -> str:
    """First 8 characters, verbatim. Shorter ids pass through unchanged."""
    return session_id[:8]


# ── File helpers ──────────────────────────────────────────────


def read_file_safe(path: Path) -> str | None:
    """Read a UTF-8 file; missing or unreadable files read as None."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


def daily_path(daily_dir: Path, date: str) -> Path:
    return daily_dir / f"{date}.md"


def ensure_dirs(config: MemoryConfig) -> None:
    """Create memory root, daily and notes directories. Idempotent."""
    for d in (config.memory_dir, config.daily_dir, config.notes_dir):
        d.mkdir(parents=True, exist_ok=True)


@dataclass
class WriteResult:
    """Outcome of a stamped write."""

    path: Path
    target: str
    mode: WriteMode
    session_id: str
    timestamp: str
    previous: str = ""


class MemoryStore:
    """Read/write access to the memory files described by a MemoryConfig."""

    def __init__(self, config: MemoryConfig, committer: Committer | None = None) -> None:
        self.config = config
        self.committer = committer or NullCommitter()

    def ensure_dirs(self) -> None:
        ensure_dirs(self.config)

    def daily_path(self, date: str | None = None) -> Path:
        return daily_path(self.config.daily_dir, date or today_str())

    # ── Context assembly ──────────────────────────────────────

    def build_context(self, now: datetime | None = None) -> str:
        """Assemble the memory bundle injected before each agent turn.

        Order: configured context files, MEMORY.md, open scratchpad items,
        today's daily log, yesterday's daily log. Returns "" when nothing
        qualifies.
        """
        self.ensure_dirs()
        sections: list[str] = []

        for file_name in self.config.context_files:
            content = read_file_safe(self.config.memory_dir / file_name)
            if content and content.strip():
                sections.append(f"## {file_name}\n\n{content.strip()}")

        long_term = read_file_safe(self.config.memory_file)
        if long_term and long_term.strip():
            sections.append(f"## MEMORY.md (long-term)\n\n{long_term.strip()}")

        pad = read_file_safe(self.config.scratchpad_file)
        if pad and pad.strip():
            items = scratchpad.open_items(scratchpad.parse(pad))
            if items:
                sections.append(
                    f"## SCRATCHPAD.md (working context)\n\n{scratchpad.serialize(items)}"
                )

        for date, label in ((today_str(now), "today"), (yesterday_str(now), "yesterday")):
            content = read_file_safe(self.daily_path(date))
            if content and content.strip():
                sections.append(f"## Daily log: {date} ({label})\n\n{content.strip()}")

        if not sections:
            return ""
        return f"{CONTEXT_HEADING}\n\n{SECTION_SEPARATOR.join(sections)}"

    # ── Stamped writes ────────────────────────────────────────

    def _write_stamped(
        self,
        path: Path,
        content: str,
        *,
        target: str,
        session_id: str,
        mode: WriteMode,
        commit_message: str,
        now: datetime | None,
    ) -> WriteResult:
        self.ensure_dirs()
        sid = short_session_id(session_id)
        ts = now_timestamp(now)
        existing = read_file_safe(path) or ""

        if mode == "overwrite":
            text = f"<!-- last updated: {ts} [{sid}] -->\n{content}"
        else:
            separator = "\n\n" if existing.strip() else ""
            text = f"{existing}{separator}<!-- {ts} [{sid}] -->\n{content}"

        path.write_text(text, encoding="utf-8")
        logger.info("Wrote %s (%s, %d chars)", path.name, mode, len(content))
        safe_commit(self.committer, commit_message)
        return WriteResult(
            path=path, target=target, mode=mode, session_id=sid, timestamp=ts, previous=existing
        )

    def write_long_term(
        self,
        content: str,
        session_id: str,
        mode: WriteMode = "append",
        now: datetime | None = None,
    ) -> WriteResult:
        """Append to or overwrite MEMORY.md."""
        return self._write_stamped(
            self.config.memory_file,
            content,
            target="long_term",
            session_id=session_id,
            mode=mode,
            commit_message=f"memory: {mode}",
            now=now,
        )

    def append_daily(
        self, content: str, session_id: str, now: datetime | None = None
    ) -> WriteResult:
        """Append to today's daily log. Daily logs are never overwritten."""
        date = today_str(now)
        return self._write_stamped(
            self.daily_path(date),
            content,
            target="daily",
            session_id=session_id,
            mode="append",
            commit_message=f"daily: {date}",
            now=now,
        )

    def write_note(
        self,
        filename: str,
        content: str,
        session_id: str,
        mode: WriteMode = "append",
        now: datetime | None = None,
    ) -> WriteResult:
        """Append to or overwrite notes/<filename>. Only the base name is used."""
        safe = self.note_name(filename)
        if not safe:
            raise ValueError(f"Invalid note filename: {filename!r}")
        return self._write_stamped(
            self.config.notes_dir / safe,
            content,
            target="note",
            session_id=session_id,
            mode=mode,
            commit_message=f"note: {safe}",
            now=now,
        )

    @staticmethod
    def note_name(filename: str) -> str:
        """Strip any directory part so writes stay inside the target directory.

        Returns "" when nothing usable remains (e.g. "..").
        """
        name = Path(filename.replace("\\", "/")).name
        return "" if name in (".", "..") else name

    # ── Reads ─────────────────────────────────────────────────

    def read_long_term(self) -> str | None:
        return read_file_safe(self.config.memory_file)

    def read_scratchpad(self) -> str | None:
        return read_file_safe(self.config.scratchpad_file)

    def read_daily(self, date: str | None = None) -> str | None:
        return read_file_safe(self.daily_path(date))

    def read_note(self, filename: str) -> str | None:
        return read_file_safe(self.config.notes_dir / self.note_name(filename))

    def read_root_file(self, filename: str) -> str | None:
        """Read any file directly under the memory root (e.g. SOUL.md)."""
        return read_file_safe(self.config.memory_dir / self.note_name(filename))

    def list_files(self) -> dict[str, list[str]]:
        """Root .md/.json files, note files, and daily logs (newest first)."""
        return {
            "root": self._list_dir(self.config.memory_dir, (".md", ".json")),
            "notes": self._list_dir(self.config.notes_dir, (".md",)),
            "daily": self._list_dir(self.config.daily_dir, (".md",), reverse=True),
        }

    @staticmethod
    def _list_dir(directory: Path, suffixes: tuple[str, ...], reverse: bool = False) -> list[str]:
        try:
            names = [p.name for p in directory.iterdir() if p.is_file() and p.suffix in suffixes]
        except OSError:
            return []
        return sorted(names, reverse=reverse)

    # ── Scratchpad items ──────────────────────────────────────

    def load_scratchpad(self) -> list[ChecklistItem]:
        return scratchpad.parse(self.read_scratchpad() or "")

    def save_scratchpad(self, items: list[ChecklistItem], commit_message: str) -> str:
        """Serialize and write the checklist. Returns the written text."""
        self.ensure_dirs()
        text = scratchpad.serialize(items)
        self.config.scratchpad_file.write_text(text, encoding="utf-8")
        logger.info("Updated SCRATCHPAD.md (%d items)", len(items))
        safe_commit(self.committer, commit_message)
        return text

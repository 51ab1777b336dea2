"""Collect recent sessions and turn them into the dashboard summary."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from pimem.sessions.scanner import LOOKBACK, SessionRecord, scan_session

if TYPE_CHECKING:
    from pimem.engines.base import TextEngine

logger = logging.getLogger(__name__)

# Session directories are named after the encoded working directory ("--home-u-proj--").
SESSION_DIR_PREFIX = "--"
EXCLUDED_DIR_MARKERS = ("-T-pi-",)
SESSION_SUFFIX = ".jsonl"

# Listing annotations sent to the engine
COST_ANNOTATION_THRESHOLD = 0.05

# Housekeeping titles: sessions spent maintaining the memory files themselves.
# Matched against the lower-cased title.
HOUSEKEEPING_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^(clear|review|read)\s+(done|scratchpad|today|daily)"),
    re.compile(r"^-\s+(no done|scratchpad|cleared|reviewed|task is)"),
    re.compile(r"^scratchpad\s+(content|management|maintenance|reviewed|items)"),
    re.compile(r"^\(untitled\)$"),
    re.compile(r"^/\w+$"),
    re.compile(r"^write daily log"),
]

SUMMARY_SYSTEM_PROMPT = """\
You are summarizing a developer's last 24 hours of coding sessions for a dashboard.
Write a concise grouped summary in markdown. Rules:

- Group by TOPIC (not time). 3-7 groups. Short bold header per group (2-4 words).
- Under each header, write 1-3 bullet points summarizing WHAT WAS ACCOMPLISHED.
  Synthesize multiple related sessions into a single clear statement.
- Be specific about outcomes: fixes applied, features built, bugs found, tools created.
- Collapse repetitive runs (eval runs, debugging attempts) into one line with the count.
- Mention sub-agent counts where relevant, it shows parallel work.
- Keep total output under 25 lines. Dense and useful, not a laundry list.
- Order: oldest topic first, most recent topic last.
- Do NOT include a header line, the caller adds that.
- Do NOT repeat session titles verbatim. Summarize.
"""


@dataclass
class CollectedSessions:
    """Recent sessions split into roots and per-parent child counts."""

    roots: list[SessionRecord] = field(default_factory=list)
    child_counts: dict[str, int] = field(default_factory=dict)
    total_cost: float = 0.0


def is_housekeeping(title: str) -> bool:
    lower = title.lower()
    return any(p.search(lower) for p in HOUSEKEEPING_PATTERNS)


def find_recent_session_files(sessions_dir: Path, now: datetime | None = None) -> list[Path]:
    """Session logs under matching subdirectories, modified within the lookback."""
    cutoff = (now or datetime.now(timezone.utc)).timestamp() - LOOKBACK.total_seconds()
    try:
        dirs = sorted(
            d
            for d in sessions_dir.iterdir()
            if d.is_dir()
            and d.name.startswith(SESSION_DIR_PREFIX)
            and not any(m in d.name for m in EXCLUDED_DIR_MARKERS)
        )
    except OSError:
        return []

    recent: list[Path] = []
    for d in dirs:
        try:
            candidates = sorted(d.iterdir())
        except OSError:
            continue
        for path in candidates:
            if not path.name.endswith(SESSION_SUFFIX):
                continue
            try:
                if path.stat().st_mtime >= cutoff:
                    recent.append(path)
            except OSError:
                continue
    return recent


async def collect_sessions(sessions_dir: Path, now: datetime | None = None) -> CollectedSessions:
    """Scan every recent session log concurrently and aggregate the results."""
    files = find_recent_session_files(sessions_dir, now)
    if not files:
        return CollectedSessions()

    results = await asyncio.gather(*(asyncio.to_thread(scan_session, f, now) for f in files))
    sessions = [s for s in results if s is not None]

    collected = CollectedSessions(
        roots=[s for s in sessions if not s.is_child],
        total_cost=sum(s.cost for s in sessions),
    )
    for child in sessions:
        if child.is_child and child.parent_session:
            collected.child_counts[child.parent_session] = (
                collected.child_counts.get(child.parent_session, 0) + 1
            )
    logger.debug(
        "Scanned %d session files: %d roots, %d children",
        len(files),
        len(collected.roots),
        len(sessions) - len(collected.roots),
    )
    return collected


def format_listing(sessions: list[SessionRecord], child_counts: dict[str, int]) -> str:
    """One line per session with sub-agent and cost annotations, for the engine."""
    lines = []
    for s in sessions:
        parts = [s.title]
        children = child_counts.get(s.file, 0)
        if children > 0:
            parts.append(f"[{children} sub-agents]")
        if s.cost > COST_ANNOTATION_THRESHOLD:
            parts.append(f"[${s.cost:.2f}]")
        lines.append(" ".join(parts))
    return "\n".join(lines)


def format_fallback(sessions: list[SessionRecord], child_counts: dict[str, int]) -> str:
    """Deterministic bullet list used when no narrative is available."""
    lines = []
    for s in sessions:
        children = child_counts.get(s.file, 0)
        child_tag = f" (+{children} sub-agents)" if children > 0 else ""
        lines.append(f"- {s.title}{child_tag}")
    return "\n".join(lines)


async def summarize_with_engine(
    engine: TextEngine,
    sessions: list[SessionRecord],
    child_counts: dict[str, int],
    total_cost: float,
) -> str:
    """Ask the engine for a grouped narrative. Raises on engine failure."""
    message = (
        f"{len(sessions)} sessions, ${total_cost:.2f} total cost:\n\n"
        f"{format_listing(sessions, child_counts)}"
    )
    return (await engine.complete(SUMMARY_SYSTEM_PROMPT, message)).strip()


async def build_session_summary(
    collected: CollectedSessions, engine: TextEngine | None = None
) -> str:
    """Dashboard markdown for the collected sessions, or "" if nothing worth showing."""
    sessions = sorted(
        (s for s in collected.roots if not is_housekeeping(s.title)),
        key=lambda s: s.timestamp,
    )
    if not sessions:
        return ""

    header = f"## Last 24h: {len(sessions)} sessions, ${collected.total_cost:.2f}"

    if engine is not None:
        try:
            narrative = await summarize_with_engine(
                engine, sessions, collected.child_counts, collected.total_cost
            )
            if narrative:
                return f"{header}\n\n{narrative}"
            logger.info("Summary engine %s returned no text, using fallback", engine.name)
        except Exception as e:
            logger.warning("Summary engine %s failed: %s", engine.name, e)

    return f"{header}\n\n{format_fallback(sessions, collected.child_counts)}"


async def summarize_recent_sessions(
    sessions_dir: Path, engine: TextEngine | None = None, now: datetime | None = None
) -> str:
    """collect_sessions + build_session_summary."""
    return await build_session_summary(await collect_sessions(sessions_dir, now), engine)

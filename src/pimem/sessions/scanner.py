"""Session log scanner — one JSONL file per agent session.

Line 1 is the session header (``timestamp``, ``cwd``, optional
``parentSession``). Later lines are independent entries; the ones that
matter here are ``session_info`` (explicit session name) and ``message``
(user/assistant turns, assistant turns carrying ``usage.cost.total``).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

LOOKBACK = timedelta(hours=24)
TITLE_MAX_CHARS = 80
UNTITLED = "(untitled)"


@dataclass
class SessionRecord:
    """Facts extracted from one recent session log."""

    file: str
    timestamp: str
    title: str
    is_child: bool
    cwd: str
    cost: float
    parent_session: str | None = None


# ── Line decoding ─────────────────────────────────────────────


class HeaderStatus(Enum):
    OK = "ok"
    UNPARSEABLE = "unparseable"
    MISSING_TIMESTAMP = "missing_timestamp"
    STALE = "stale"


@dataclass
class HeaderDecode:
    status: HeaderStatus
    header: dict[str, Any] | None = None


def decode_entry(line: str) -> dict[str, Any] | None:
    """Decode one JSONL line. Anything that is not a JSON object is None."""
    try:
        data = json.loads(line)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def parse_timestamp(value: Any) -> datetime | None:
    """ISO-8601 string or epoch milliseconds -> aware UTC datetime."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def record_timestamp(value: Any) -> str:
    """Header timestamp as stored on a SessionRecord.

    Strings are kept verbatim. Epoch milliseconds become ISO-8601 UTC
    (``2026-02-18T10:00:00.000Z``) so records sort chronologically by string.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        when = parse_timestamp(value)
        if when is not None:
            return when.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return str(value)


def decode_header(line: str, cutoff: datetime) -> HeaderDecode:
    """Classify the first line of a session log.

    A timestamp that cannot be read as a date is not considered stale.
    """
    header = decode_entry(line)
    if header is None:
        return HeaderDecode(HeaderStatus.UNPARSEABLE)
    timestamp = header.get("timestamp")
    if not timestamp:
        return HeaderDecode(HeaderStatus.MISSING_TIMESTAMP, header)
    when = parse_timestamp(timestamp)
    if when is not None and when < cutoff:
        return HeaderDecode(HeaderStatus.STALE, header)
    return HeaderDecode(HeaderStatus.OK, header)


def _message(entry: dict[str, Any], role: str) -> dict[str, Any] | None:
    if entry.get("type") != "message":
        return None
    message = entry.get("message")
    if not isinstance(message, dict) or message.get("role") != role:
        return None
    return message


def entry_name(entry: dict[str, Any]) -> str | None:
    """Explicit session name from a ``session_info`` entry."""
    if entry.get("type") == "session_info":
        name = entry.get("name")
        if name and isinstance(name, str):
            return name
    return None


def entry_cost(entry: dict[str, Any]) -> float:
    """``usage.cost.total`` of an assistant message, else 0."""
    message = _message(entry, "assistant")
    if message is None:
        return 0.0
    usage = message.get("usage")
    cost = usage.get("cost") if isinstance(usage, dict) else None
    total = cost.get("total") if isinstance(cost, dict) else None
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        return 0.0
    return float(total)


def user_text(entry: dict[str, Any]) -> str | None:
    """Text of a user message: the string payload or its first text part.

    Returns "" for a user message without usable text, None for other entries.
    """
    message = _message(entry, "user")
    if message is None:
        return None
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for part in content:
            if isinstance(part, dict) and part.get("type") == "text":
                text = part.get("text")
                return text if isinstance(text, str) else ""
    return ""


# ── Scanning ──────────────────────────────────────────────────


def _lines(path: Path) -> Iterator[str]:
    with path.open(encoding="utf-8", errors="replace") as f:
        for line in f:
            yield line.rstrip("\r\n")


def _first_user_title(path: Path) -> str:
    for line in _lines(path):
        entry = decode_entry(line)
        if entry is None:
            continue
        text = user_text(entry)
        if text is not None:
            return text[:TITLE_MAX_CHARS]
    return ""


def scan_session(path: Path, now: datetime | None = None) -> SessionRecord | None:
    """Extract a SessionRecord from a session log, or None if it does not apply.

    None covers: unreadable file, unparseable header, header without a
    timestamp, and sessions older than the 24h lookback window.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    cutoff = now - LOOKBACK
    try:
        lines = _lines(path)
        first = next(lines, None)
        if first is None:
            return None
        decoded = decode_header(first, cutoff)
        if decoded.status is not HeaderStatus.OK:
            logger.debug("Skipping %s: header %s", path.name, decoded.status.value)
            lines.close()
            return None
        header = decoded.header

        title = ""
        cost = 0.0
        for line in lines:
            entry = decode_entry(line)
            if entry is None:
                continue
            title = entry_name(entry) or title
            cost += entry_cost(entry)

        if not title:
            title = _first_user_title(path)
    except Exception as e:
        logger.debug("Failed to scan %s: %s", path, e)
        return None

    parent = header.get("parentSession") or None
    cwd = header.get("cwd") or ""
    return SessionRecord(
        file=str(path),
        timestamp=record_timestamp(header["timestamp"]),
        title=title or UNTITLED,
        is_child=bool(parent),
        parent_session=str(parent) if parent else None,
        cwd=str(cwd),
        cost=cost,
    )

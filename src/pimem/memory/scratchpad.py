"""SCRATCHPAD.md checklist format — parse/serialize (no I/O).

Format::

    # Scratchpad

    <!-- 2026-02-16 18:16:01 [12950572] -->
    - [ ] Open item
    - [x] Done item

A full-line HTML comment directly above an item is that item's meta line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

HEADER = "# Scratchpad"

# Line syntax tables
ITEM_PATTERN = re.compile(r"^- \[([ xX])\] (.+)$")
META_PATTERN = re.compile(r"^<!--.*-->$")
DONE_MARKS = frozenset("xX")


@dataclass
class ChecklistItem:
    """One checklist entry."""

    done: bool
    text: str
    meta: str = ""


def parse(content: str) -> list[ChecklistItem]:
    """Parse scratchpad content into items, in line order. Non-item lines are ignored."""
    items: list[ChecklistItem] = []
    previous: str | None = None
    for line in content.split("\n"):
        match = ITEM_PATTERN.match(line)
        if match:
            meta = previous if previous is not None and META_PATTERN.match(previous) else ""
            items.append(
                ChecklistItem(done=match.group(1) in DONE_MARKS, text=match.group(2), meta=meta)
            )
        previous = line
    return items


def serialize(items: list[ChecklistItem]) -> str:
    """Render items back to scratchpad text. Always ends with a single newline."""
    lines = [HEADER, ""]
    for item in items:
        if item.meta:
            lines.append(item.meta)
        checkbox = "[x]" if item.done else "[ ]"
        lines.append(f"- {checkbox} {item.text}")
    return "\n".join(lines) + "\n"


def open_items(items: list[ChecklistItem]) -> list[ChecklistItem]:
    return [item for item in items if not item.done]


def stamp(timestamp: str, session: str) -> str:
    """Meta comment line attached to newly added items."""
    return f"<!-- {timestamp} [{session}] -->"

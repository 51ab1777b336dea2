"""Case-insensitive keyword search over the Markdown memory files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pimem.config import MemoryConfig
from pimem.memory.store import read_file_safe

DEFAULT_MAX_RESULTS = 20
SEARCH_SUFFIX = ".md"


@dataclass
class LineMatch:
    file: str
    line: int
    text: str


@dataclass
class SearchResult:
    file_matches: list[str] = field(default_factory=list)
    line_results: list[LineMatch] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.file_matches and not self.line_results


def _markdown_files(directory: Path) -> list[Path]:
    try:
        return sorted(
            (p for p in directory.iterdir() if p.is_file() and p.name.endswith(SEARCH_SUFFIX)),
            key=lambda p: p.name,
        )
    except OSError:
        return []


def search_memory(
    config: MemoryConfig, query: str, max_results: int = DEFAULT_MAX_RESULTS
) -> SearchResult:
    """Match `query` against file names and lines of every memory .md file.

    Directories are visited in order: memory root (non-recursive), daily/,
    notes/. Line matching stops everywhere once `max_results` lines are found.
    """
    needle = query.lower()
    result = SearchResult()

    def search_file(path: Path, display_name: str) -> None:
        if needle in display_name.lower() and display_name not in result.file_matches:
            result.file_matches.append(display_name)
        content = read_file_safe(path)
        if not content:
            return
        for number, line in enumerate(content.split("\n"), start=1):
            if len(result.line_results) >= max_results:
                break
            if needle in line.lower():
                result.line_results.append(LineMatch(display_name, number, line.rstrip()))

    for directory, prefix in (
        (config.memory_dir, ""),
        (config.daily_dir, "daily"),
        (config.notes_dir, "notes"),
    ):
        for path in _markdown_files(directory):
            if len(result.line_results) >= max_results:
                break
            search_file(path, f"{prefix}/{path.name}" if prefix else path.name)

    return result

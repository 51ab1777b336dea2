"""Entry point: python -m pimem [context|dashboard|search <query>]

- No args / "context": Print the memory bundle injected before each agent turn
- "dashboard":         Print the "last 24h" session dashboard (cached)
- "search <query>":    Search the memory files
"""

from __future__ import annotations

import asyncio
import logging
import sys

from pimem.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_context() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from pimem.memory.store import MemoryStore

    context = MemoryStore(config.memory).build_context()
    print(context or "(no memory context)")


def _run_dashboard() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from pimem.core import MemoryExtension, render_dashboard

    ext = MemoryExtension(config)
    summary = asyncio.run(ext.summary_cache.get())
    print(render_dashboard(summary, ext.store.read_scratchpad()) or "(empty dashboard)")


def _run_search(query: str) -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from pimem.memory.store import MemoryStore
    from pimem.tools.memory_tools import get_memory_tools

    tools = {t.name: t for t in get_memory_tools(MemoryStore(config.memory))}
    print(tools["memory_search"]({"query": query}, "cli").text)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "context"

    if cmd == "context":
        _run_context()
    elif cmd == "dashboard":
        _run_dashboard()
    elif cmd == "search" and len(sys.argv) > 2:
        _run_search(" ".join(sys.argv[2:]))
    else:
        print("Usage: python -m pimem [context|dashboard|search <query>]")
        print("  context           Print the injected memory context (default)")
        print("  dashboard         Print the session dashboard")
        print("  search <query>    Search memory files")
        sys.exit(1)


if __name__ == "__main__":
    main()

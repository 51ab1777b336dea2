"""Memory extension — glue between the host runtime and the memory files.

Responsibilities:
1. Context injection: append the assembled memory bundle to the system prompt
2. Dashboard: show the cached "last 24h" summary + open scratchpad items
3. Background refresh of the dashboard summary
4. Tool registration (memory_write, memory_read, memory_search, scratchpad)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pimem import host
from pimem.config import PimemConfig
from pimem.engines.base import TextEngine, resolve_engine
from pimem.git import make_committer
from pimem.memory import scratchpad
from pimem.memory.store import SECTION_SEPARATOR, MemoryStore
from pimem.scheduler.jobs import DashboardRefresher
from pimem.sessions.cache import SummaryCacheStore
from pimem.sessions.summary import summarize_recent_sessions
from pimem.tools.memory_tools import get_memory_tools

if TYPE_CHECKING:
    from pimem.host import ExtensionHost, SessionContext

logger = logging.getLogger(__name__)

DASHBOARD_WIDGET = "memory-dashboard"

MEMORY_INSTRUCTIONS = """

## Memory
The following memory files have been loaded. Use the memory_write tool to persist important information.
- Decisions, preferences, and durable facts -> MEMORY.md
- Day-to-day notes and running context -> daily/<YYYY-MM-DD>.md
- Things to fix later or keep in mind -> scratchpad tool
- If someone says "remember this," write it immediately.
"""

COMPACT_NOTICE = (
    "Memory files available. Consider persisting important context before compaction."
)


def render_dashboard(summary: str, scratchpad_content: str | None) -> str:
    """Dashboard markdown: session summary, then open scratchpad items."""
    sections: list[str] = []
    if summary:
        sections.append(summary)
    if scratchpad_content and scratchpad_content.strip():
        items = scratchpad.open_items(scratchpad.parse(scratchpad_content))
        if items:
            lines = "\n".join(f"[ ] {item.text}" for item in items)
            sections.append(f"## Scratchpad\n\n{lines}")
    return SECTION_SEPARATOR.join(sections)


class MemoryExtension:
    """Registers memory handlers and tools on a host runtime."""

    def __init__(self, config: PimemConfig, engine: TextEngine | None = None) -> None:
        self.config = config
        self.store = MemoryStore(
            config.memory,
            committer=make_committer(config.memory.memory_dir, config.memory.autocommit),
        )
        self.engine = engine if engine is not None else resolve_engine(config.engine)
        self.summary_cache = SummaryCacheStore(
            config.dashboard.cache_file,
            self._build_summary,
            interval_ms=config.dashboard.rebuild_interval * 1000,
        )
        self.refresher = DashboardRefresher(
            self.summary_cache, interval=config.dashboard.rebuild_interval
        )
        self.tools = get_memory_tools(self.store)

    async def _build_summary(self) -> str:
        return await summarize_recent_sessions(self.config.dashboard.sessions_dir, self.engine)

    # ── Registration ─────────────────────────────────────────

    def register(self, runtime: ExtensionHost) -> None:
        runtime.on(host.SESSION_START, self.on_session_start)
        runtime.on(host.SESSION_SWITCH, self.on_session_switch)
        runtime.on(host.AGENT_START, self.on_agent_start)
        runtime.on(host.BEFORE_AGENT_START, self.on_before_agent_start)
        runtime.on(host.BEFORE_COMPACT, self.on_before_compact)
        runtime.on(host.SESSION_SHUTDOWN, self.on_session_shutdown)
        for tool in self.tools:
            runtime.register_tool(tool)
        logger.info("Registered memory extension (%d tools)", len(self.tools))

    # ── Dashboard ────────────────────────────────────────────

    async def show_dashboard(self, ctx: SessionContext) -> None:
        if not ctx.has_ui:
            return
        summary = await self.summary_cache.get()
        markdown = render_dashboard(summary, self.store.read_scratchpad())
        if markdown:
            ctx.set_widget(DASHBOARD_WIDGET, markdown)

    # ── Event handlers ───────────────────────────────────────

    async def on_session_start(self, event: dict[str, Any], ctx: SessionContext) -> None:
        await self.show_dashboard(ctx)
        self.refresher.start()

    async def on_session_switch(self, event: dict[str, Any], ctx: SessionContext) -> None:
        await self.show_dashboard(ctx)

    async def on_agent_start(self, event: dict[str, Any], ctx: SessionContext) -> None:
        if ctx.has_ui:
            ctx.set_widget(DASHBOARD_WIDGET, None)

    async def on_before_agent_start(
        self, event: dict[str, Any], ctx: SessionContext
    ) -> dict[str, str] | None:
        """Append memory instructions + context to the system prompt, if any."""
        system_prompt = self.inject(event.get("systemPrompt", ""))
        if system_prompt is None:
            return None
        return {"systemPrompt": system_prompt}

    def inject(self, system_prompt: str) -> str | None:
        context = self.store.build_context()
        if not context:
            return None
        return f"{system_prompt}{MEMORY_INSTRUCTIONS}\n{context}"

    async def on_before_compact(self, event: dict[str, Any], ctx: SessionContext) -> None:
        if self.store.build_context():
            ctx.notify(COMPACT_NOTICE, "info")

    async def on_session_shutdown(self, event: dict[str, Any], ctx: SessionContext) -> None:
        await self.refresher.stop()

"""Tests for the memory extension host glue."""

from __future__ import annotations

import asyncio
import pytest
from pathlib import Path
from unittest.mock import AsyncMock

from pimem import host
from pimem.config import DashboardConfig, EngineConfig, PimemConfig, build_config
from pimem.core import DASHBOARD_WIDGET, MEMORY_INSTRUCTIONS, MemoryExtension, render_dashboard
from pimem.host import ExtensionHost, SessionContext
from pimem.scheduler.jobs import DashboardRefresher
from pimem.sessions.cache import SummaryCache, SummaryCacheStore


class MockHost:
    def __init__(self):
        self.handlers: dict[str, object] = {}
        self.tools = []

    def on(self, event, handler):
        self.handlers[event] = handler

    def register_tool(self, tool):
        self.tools.append(tool)


class MockContext:
    def __init__(self, has_ui: bool = True, session_id: str = "12950572-xyz"):
        self.has_ui = has_ui
        self.session_id = session_id
        self.widgets: dict[str, str | None] = {}
        self.notifications: list[tuple[str, str]] = []

    def set_widget(self, key, markdown):
        self.widgets[key] = markdown

    def notify(self, message, level="info"):
        self.notifications.append((message, level))


@pytest.fixture
def config(tmp_path: Path) -> PimemConfig:
    memory = build_config({"PI_MEMORY_DIR": str(tmp_path / "memory")})
    return PimemConfig(
        memory=memory,
        engine=EngineConfig(name="none"),
        dashboard=DashboardConfig(
            sessions_dir=tmp_path / "sessions",
            cache_file=memory.daily_dir / "cache.json",
        ),
    )


@pytest.fixture
def ext(config: PimemConfig) -> MemoryExtension:
    return MemoryExtension(config)


class TestRenderDashboard:
    def test_summary_and_open_items(self):
        pad = "# Scratchpad\n\n- [ ] fix it\n- [x] shipped\n- [ ] docs\n"
        assert render_dashboard("## Last 24h: 1 sessions, $0.00", pad) == (
            "## Last 24h: 1 sessions, $0.00\n\n---\n\n## Scratchpad\n\n[ ] fix it\n[ ] docs"
        )

    def test_scratchpad_only(self):
        assert render_dashboard("", "- [ ] a\n") == "## Scratchpad\n\n[ ] a"

    def test_nothing(self):
        assert render_dashboard("", None) == ""
        assert render_dashboard("", "# Scratchpad\n\n- [x] done\n") == ""


class TestRegistration:
    def test_protocols(self):
        assert isinstance(MockHost(), ExtensionHost)
        assert isinstance(MockContext(), SessionContext)

    def test_registers_events_and_tools(self, ext: MemoryExtension):
        runtime = MockHost()
        ext.register(runtime)

        assert set(runtime.handlers) == {
            host.SESSION_START,
            host.SESSION_SWITCH,
            host.AGENT_START,
            host.BEFORE_AGENT_START,
            host.BEFORE_COMPACT,
            host.SESSION_SHUTDOWN,
        }
        assert [t.name for t in runtime.tools] == [
            "memory_write", "memory_read", "memory_search", "scratchpad",
        ]

    def test_no_engine_without_key(self, ext: MemoryExtension):
        assert ext.engine is None


class TestContextInjection:
    @pytest.mark.asyncio
    async def test_empty_memory_returns_none(self, ext: MemoryExtension):
        result = await ext.on_before_agent_start({"systemPrompt": "base"}, MockContext())
        assert result is None

    @pytest.mark.asyncio
    async def test_appends_instructions_and_context(self, ext: MemoryExtension):
        ext.store.write_long_term("Prefers tabs", "s")

        result = await ext.on_before_agent_start({"systemPrompt": "base"}, MockContext())

        prompt = result["systemPrompt"]
        assert prompt.startswith("base" + MEMORY_INSTRUCTIONS)
        assert "## MEMORY.md (long-term)" in prompt
        assert prompt.endswith("Prefers tabs")

    @pytest.mark.asyncio
    async def test_before_compact_notifies(self, ext: MemoryExtension):
        ctx = MockContext()
        await ext.on_before_compact({}, ctx)
        assert ctx.notifications == []

        ext.store.append_daily("today", "s")
        await ext.on_before_compact({}, ctx)
        assert len(ctx.notifications) == 1
        assert "before compaction" in ctx.notifications[0][0]


class TestDashboard:
    @pytest.fixture
    def cached(self, ext: MemoryExtension) -> MemoryExtension:
        ext.summary_cache._rebuild = AsyncMock(return_value="## Last 24h: 2 sessions, $1.00")
        return ext

    @pytest.mark.asyncio
    async def test_session_start_shows_widget(self, cached: MemoryExtension):
        ctx = MockContext()
        cached.store.ensure_dirs()
        cached.store.config.scratchpad_file.write_text("- [ ] follow up\n")

        await cached.on_session_start({}, ctx)
        try:
            assert ctx.widgets[DASHBOARD_WIDGET] == (
                "## Last 24h: 2 sessions, $1.00\n\n---\n\n## Scratchpad\n\n[ ] follow up"
            )
            assert cached.refresher.running
        finally:
            await cached.on_session_shutdown({}, ctx)
        assert not cached.refresher.running

    @pytest.mark.asyncio
    async def test_no_ui_skips_widget(self, cached: MemoryExtension):
        ctx = MockContext(has_ui=False)
        await cached.on_session_switch({}, ctx)
        assert ctx.widgets == {}
        cached.summary_cache._rebuild.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_dashboard_sets_nothing(self, ext: MemoryExtension):
        ctx = MockContext()
        await ext.on_session_switch({}, ctx)
        assert ctx.widgets == {}

    @pytest.mark.asyncio
    async def test_agent_start_clears_widget(self, cached: MemoryExtension):
        ctx = MockContext()
        await cached.on_session_switch({}, ctx)
        await cached.on_agent_start({}, ctx)
        assert ctx.widgets[DASHBOARD_WIDGET] is None


class TestDashboardRefresher:
    @pytest.mark.asyncio
    async def test_refreshes_until_shutdown(self, tmp_path: Path):
        cache = SummaryCacheStore(tmp_path / "cache.json", AsyncMock(return_value="s"))
        refresher = DashboardRefresher(cache, interval=0.01)

        refresher.start()
        refresher.start()  # second start is a no-op
        await asyncio.sleep(0.05)
        await refresher.stop()

        assert cache._rebuild.await_count >= 1
        assert cache.current.summary == "s"
        assert not refresher.running

    @pytest.mark.asyncio
    async def test_refresh_errors_do_not_stop_loop(self, tmp_path: Path):
        rebuild = AsyncMock(side_effect=[RuntimeError("boom"), "ok", "ok", "ok", "ok", "ok"])
        cache = SummaryCacheStore(tmp_path / "cache.json", rebuild)
        refresher = DashboardRefresher(cache, interval=0.01)

        refresher.start()
        for _ in range(100):
            if cache.current == SummaryCache("ok", cache.current.timestamp):
                break
            await asyncio.sleep(0.01)
        await refresher.stop()

        assert cache.current.summary == "ok"

    @pytest.mark.asyncio
    async def test_stop_cancels_rebuild_in_flight(self, tmp_path: Path):
        started = asyncio.Event()

        async def slow_rebuild() -> str:
            started.set()
            await asyncio.sleep(5)
            return "late"

        cache = SummaryCacheStore(tmp_path / "cache.json", slow_rebuild)
        refresher = DashboardRefresher(cache, interval=0.01)

        refresher.start()
        await asyncio.wait_for(started.wait(), timeout=1)
        loop = asyncio.get_running_loop()
        begin = loop.time()
        await refresher.stop()

        assert loop.time() - begin < 0.5
        assert not refresher.running
        assert cache.current.summary == ""

    @pytest.mark.asyncio
    async def test_stop_before_start(self, tmp_path: Path):
        cache = SummaryCacheStore(tmp_path / "cache.json", AsyncMock(return_value="s"))
        await DashboardRefresher(cache, interval=60).stop()

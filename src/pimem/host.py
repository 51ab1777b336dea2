"""Host runtime protocols — what the extension needs from the coding agent."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Literal, Protocol, runtime_checkable

from pimem.tools.base import ToolDefinition

NotifyLevel = Literal["info", "warning", "error"]

# Lifecycle events the extension subscribes to
SESSION_START = "session_start"
SESSION_SWITCH = "session_switch"
AGENT_START = "agent_start"
BEFORE_AGENT_START = "before_agent_start"
BEFORE_COMPACT = "session_before_compact"
SESSION_SHUTDOWN = "session_shutdown"

EventHandler = Callable[[dict[str, Any], "SessionContext"], Awaitable[Any]]


@runtime_checkable
class SessionContext(Protocol):
    """Per-event view of the current host session."""

    @property
    def session_id(self) -> str: ...

    @property
    def has_ui(self) -> bool: ...

    def set_widget(self, key: str, markdown: str | None) -> None:
        """Show markdown in a named widget, or remove it with None."""
        ...

    def notify(self, message: str, level: NotifyLevel = "info") -> None: ...


@runtime_checkable
class ExtensionHost(Protocol):
    """Registration surface of the host runtime."""

    def on(self, event: str, handler: EventHandler) -> None: ...

    def register_tool(self, tool: ToolDefinition) -> None: ...

"""Text engine protocol and resolution."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pimem.config import EngineConfig

logger = logging.getLogger(__name__)


class UnknownEngineError(ValueError):
    """Configured engine name is not supported."""


@runtime_checkable
class TextEngine(Protocol):
    """Capability to turn a system instruction + one user message into text.

    `complete` may raise for any reason (auth, network, timeout). Callers
    must treat a failure as "no text" and fall back.
    """

    @property
    def name(self) -> str: ...

    async def complete(self, system_prompt: str, message: str) -> str:
        """Return the generated text content."""
        ...


def build_engine(config: EngineConfig) -> TextEngine:
    """Instantiate the configured engine. Raises if it cannot be built."""
    if config.name == "anthropic_api":
        from pimem.engines.anthropic_api import AnthropicAPIEngine

        return AnthropicAPIEngine(
            model=config.model,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
            api_key=config.api_key,
        )
    raise UnknownEngineError(f"Unknown engine: {config.name}")


def resolve_engine(config: EngineConfig) -> TextEngine | None:
    """Like build_engine, but an unavailable engine resolves to None."""
    if config.name == "none":
        return None
    if not config.api_key:
        logger.debug("No API key for %s, narrative summary disabled", config.name)
        return None
    try:
        return build_engine(config)
    except Exception as e:
        logger.warning("Summary engine %s unavailable: %s", config.name, e)
        return None

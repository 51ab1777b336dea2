"""Anthropic API engine — lightweight, no tool use."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class AnthropicAPIEngine:
    """Direct Anthropic API via the `anthropic` SDK. Single-turn completion."""

    model: str = "claude-haiku-4-5"
    max_tokens: int = 1024
    timeout: int = 60
    api_key: str | None = None

    def __post_init__(self) -> None:
        try:
            import anthropic

            self._client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout)
        except ImportError:
            raise ImportError("anthropic package required. Install with: pip install anthropic")

    @property
    def name(self) -> str:
        return "anthropic_api"

    async def complete(self, system_prompt: str, message: str) -> str:
        response = await asyncio.to_thread(
            self._client.messages.create,
            model=self.model,
            max_tokens=self.max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": message}],
        )
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        logger.debug("Anthropic completion: %d chars (model=%s)", len(text), response.model)
        return text.strip()

"""Tool definition and result types shared with the host."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

# handler(params, session_id) -> ToolResult
ToolHandler = Callable[[dict[str, Any], str], "ToolResult"]


@dataclass
class ToolResult:
    """Human-readable text plus structured details for the host."""

    text: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(text=f"Error: {message}", details={"error": message})

    def to_content(self) -> dict[str, Any]:
        """Host wire shape: text content blocks + details mapping."""
        return {"content": [{"type": "text", "text": self.text}], "details": self.details}


@dataclass
class ToolDefinition:
    """Custom tool the agent can call, handled within pimem."""

    name: str
    label: str
    description: str
    parameters: dict[str, Any]
    handler: ToolHandler

    def __call__(self, params: dict[str, Any], session_id: str) -> ToolResult:
        return self.handler(params, session_id)


def string_enum(values: list[str], description: str) -> dict[str, Any]:
    return {"type": "string", "enum": values, "description": description}


def object_schema(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }

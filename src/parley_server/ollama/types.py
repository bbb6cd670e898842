"""Type definitions for the Ollama model adapter.

This module contains the normalized chunk types yielded by the adapter and the
helpers that translate role-tagged conversation turns into Ollama's chat format.

Conversation turns use the generate-content shape shared by the rest of the
server::

    {"role": "user" | "model", "parts": [{"text": ...},
                                         {"functionCall": {"name", "args"}},
                                         {"functionResponse": {"name", "response"}}]}
"""

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class FunctionCall:
    """A tool invocation requested by the model."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class NormalizedChunk:
    """One streamed fragment from the model.

    A chunk carries either a text fragment, a function call, or both.
    """

    text: str | None = None
    function_call: FunctionCall | None = None


@dataclass
class GenerationConfig:
    """Generation parameters forwarded to the model.

    Attributes:
        temperature: Sampling temperature
        max_tokens: Maximum number of tokens to generate
        tools: Function declarations ({"name", "description", "parameters"})
            the model may call
    """

    temperature: float | None = None
    max_tokens: int | None = None
    tools: list[dict[str, Any]] | None = None

    def to_options(self) -> dict[str, Any] | None:
        """Get the Ollama options dict for this config, or None if empty."""
        options: dict[str, Any] = {}
        if self.temperature is not None:
            options["temperature"] = self.temperature
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        return options or None

    def to_ollama_tools(self) -> list[dict[str, Any]] | None:
        """Convert function declarations to Ollama's tool schema."""
        if not self.tools:
            return None
        return [
            {
                "type": "function",
                "function": {
                    "name": declaration["name"],
                    "description": declaration.get("description", ""),
                    "parameters": declaration.get("parameters") or {"type": "object"},
                },
            }
            for declaration in self.tools
        ]


def contents_to_ollama_messages(
    contents: list[dict[str, Any]],
    system_prompt: str | None = None,
) -> list[dict[str, Any]]:
    """Convert role-tagged turns into Ollama chat messages.

    Model turns become assistant messages (with tool_calls for functionCall
    parts). Each functionResponse part becomes its own tool message, in order.

    Args:
        contents: Ordered conversation turns
        system_prompt: Optional system prompt sent as a leading system message

    Returns:
        List of message dicts in Ollama format
    """
    messages: list[dict[str, Any]] = []

    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})

    for turn in contents:
        parts = turn.get("parts") or []
        text = "".join(part["text"] for part in parts if part.get("text"))

        if turn.get("role") == "model":
            message: dict[str, Any] = {"role": "assistant", "content": text}
            tool_calls = [
                {
                    "function": {
                        "name": part["functionCall"]["name"],
                        "arguments": part["functionCall"].get("args") or {},
                    }
                }
                for part in parts
                if part.get("functionCall")
            ]
            if tool_calls:
                message["tool_calls"] = tool_calls
            messages.append(message)
            continue

        responses = [part["functionResponse"] for part in parts if part.get("functionResponse")]
        if responses:
            for response in responses:
                messages.append(
                    {
                        "role": "tool",
                        "tool_name": response["name"],
                        "content": json.dumps(response.get("response"), ensure_ascii=False),
                    }
                )
            continue

        messages.append({"role": "user", "content": text})

    return messages

"""Data types for the conversation engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ToolCallStatus(str, Enum):
    """Lifecycle of a tool call within one exchange."""

    PENDING = "pending"
    EXECUTED = "executed"
    ERROR = "error"
    REJECTED = "rejected"


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: str | None = None
    error: str | None = None

    def to_part(self) -> dict[str, Any]:
        """Render as a functionCall part of a model turn."""
        return {"functionCall": {"name": self.name, "args": self.args}}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "args": self.args,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
        }


@dataclass
class ToolResponse:
    """The outcome of one tool call, sent back to the model.

    response is {"result": ...} on success and {"error": ...} otherwise.
    """

    name: str
    response: dict[str, Any]

    def to_part(self) -> dict[str, Any]:
        """Render as a functionResponse part."""
        return {"functionResponse": {"name": self.name, "response": self.response}}


@dataclass
class StreamChunk:
    """One item of the conversation handler's output sequence.

    Attributes:
        text: Text fragment (empty for tool-call and terminal chunks)
        done: True only on the final chunk
        tool_calls: Pending tool calls, when the model requested any
        truncated: On the final chunk, True if the tool-call loop hit its
            turn limit before the model stopped calling tools
    """

    text: str
    done: bool
    tool_calls: list[ToolCall] | None = None
    truncated: bool = False

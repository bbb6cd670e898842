"""Pydantic models for chat API requests and SSE events."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Request body for POST /api/v1/chat/{session_id}/stream."""

    message: str = Field(..., min_length=1, description="The user message to send")
    model: str | None = Field(
        default=None,
        description="Model to use; defaults to the server's default model",
    )
    system_prompt: str | None = Field(default=None, description="Optional system prompt")
    temperature: float | None = Field(default=None, description="Sampling temperature")
    max_tokens: int | None = Field(
        default=None, ge=1, description="Maximum number of tokens to generate"
    )
    approved_tools: list[str] = Field(
        default_factory=list,
        description="Qualified tool names approved for this exchange when their permission is 'ask'",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "message": "What files are in my project?",
                    "approved_tools": ["files:list_directory"],
                },
            ]
        }
    )


class ContentDeltaEvent(BaseModel):
    """SSE event carrying one text fragment."""

    content: str


class ToolCallInfo(BaseModel):
    """A tool call requested by the model."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    status: str


class ToolCallsEvent(BaseModel):
    """SSE event carrying the tool calls the model requested."""

    tool_calls: list[ToolCallInfo]


class DoneEvent(BaseModel):
    """SSE event sent once the exchange is committed and saved."""

    session_id: str
    truncated: bool = Field(
        default=False,
        description="True if the tool call loop hit its turn limit",
    )


class ErrorEvent(BaseModel):
    """SSE event sent when the exchange fails."""

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)

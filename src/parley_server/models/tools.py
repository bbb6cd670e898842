"""Pydantic models for tool source API requests and responses."""

from typing import Any

from pydantic import BaseModel, Field

from parley_server.models.health import ToolSourceStats
from parley_server.tools.types import ToolSourceConfig


class ToolSourceConfigModel(BaseModel):
    """Configuration for one MCP tool source.

    Set exactly one of command (stdio), url (SSE) or http_url (streamable HTTP).
    """

    command: str | None = None
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str | None = None
    url: str | None = None
    http_url: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float | None = Field(None, gt=0, description="Request timeout in seconds")
    trust: bool = Field(False, description="Skip confirmation for this source's tools")
    description: str | None = None
    include_tools: list[str] | None = None
    exclude_tools: list[str] | None = None

    def to_config(self) -> ToolSourceConfig:
        return ToolSourceConfig(**self.model_dump())


class AddToolSourceRequest(BaseModel):
    """Request body for adding a tool source."""

    id: str = Field(..., min_length=1, pattern=r"^[^:]+$", description="Tool source id")
    config: ToolSourceConfigModel


class ToolInfo(BaseModel):
    """A tool in the aggregated catalog."""

    qualified_name: str
    name: str
    source_id: str
    description: str
    parameters: dict[str, Any]
    trusted: bool


class ToolListResponse(BaseModel):
    tools: list[ToolInfo]


class PromptInfo(BaseModel):
    """A prompt in the aggregated catalog."""

    qualified_name: str
    name: str
    source_id: str
    description: str
    arguments: list[dict[str, Any]]


class PromptListResponse(BaseModel):
    prompts: list[PromptInfo]


class ToolSourceInfo(BaseModel):
    """A configured tool source and its connection state."""

    id: str
    transport: str | None
    status: str
    discovery_state: str
    tool_count: int
    prompt_count: int


class ToolSourceListResponse(BaseModel):
    servers: list[ToolSourceInfo]
    stats: ToolSourceStats

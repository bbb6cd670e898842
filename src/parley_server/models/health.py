"""Health check response model."""

from pydantic import BaseModel, Field


class ToolSourceStats(BaseModel):
    """Counts of tool source connections by status."""

    total: int = Field(0, description="Number of live tool source connections")
    connected: int = Field(0, description="Connections ready for use")
    disconnected: int = Field(0, description="Connections that have closed")
    discovering: int = Field(0, description="Connections that are connecting or disconnecting")


class HealthResponse(BaseModel):
    """Response model for the health check endpoint.

    Attributes:
        status: Health status indicator ("ok" or "error").
        version: The version of parley-server.
        ollama_connected: Whether the Ollama server answered the connectivity check.
        ollama_host: The Ollama host URL.
        tool_sources: Tool source connection statistics.
    """

    status: str = Field(..., description="Health status of the service")
    version: str = Field(..., description="Version of parley-server")
    ollama_connected: bool | None = Field(
        default=None,
        description="Whether Ollama is connected",
    )
    ollama_host: str | None = Field(
        default=None,
        description="Ollama host URL",
    )
    tool_sources: ToolSourceStats | None = Field(
        default=None,
        description="Tool source connection statistics",
    )

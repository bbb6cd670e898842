"""Data types for tool sources.

This module defines connection state enums, the per-source configuration,
the discovered tool/prompt records and the helpers for qualified
(namespaced) names.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

QUALIFIED_NAME_SEPARATOR = ":"


class ToolSourceStatus(str, Enum):
    """Connection status of a tool source."""

    DISCONNECTED = "disconnected"
    DISCONNECTING = "disconnecting"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class DiscoveryState(str, Enum):
    """Discovery progress of a connected tool source."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"


# Called as listener(source_id, status) on every status transition
StatusChangeListener = Callable[[str, ToolSourceStatus], None]


@dataclass
class ToolSourceConfig:
    """Configuration for one MCP tool source.

    Exactly one of command (stdio), url (SSE) or http_url (streamable HTTP)
    selects the transport.
    """

    # stdio transport
    command: str | None = None
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    cwd: str | None = None
    # SSE transport
    url: str | None = None
    # Streamable HTTP transport
    http_url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    # Common
    timeout: float | None = None
    trust: bool = False
    description: str | None = None
    include_tools: list[str] | None = None
    exclude_tools: list[str] | None = None

    @property
    def transport(self) -> str | None:
        """Name of the transport this config selects, or None."""
        if self.command:
            return "stdio"
        if self.url:
            return "sse"
        if self.http_url:
            return "http"
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolSourceConfig":
        """Create a config from its JSON representation."""
        return cls(
            command=data.get("command"),
            args=list(data.get("args") or []),
            env=dict(data.get("env") or {}),
            cwd=data.get("cwd"),
            url=data.get("url"),
            http_url=data.get("httpUrl"),
            headers=dict(data.get("headers") or {}),
            timeout=data.get("timeout"),
            trust=bool(data.get("trust", False)),
            description=data.get("description"),
            include_tools=data.get("includeTools"),
            exclude_tools=data.get("excludeTools"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the config to its JSON representation, omitting unset keys."""
        data: dict[str, Any] = {
            "command": self.command,
            "args": self.args or None,
            "env": self.env or None,
            "cwd": self.cwd,
            "url": self.url,
            "httpUrl": self.http_url,
            "headers": self.headers or None,
            "timeout": self.timeout,
            "trust": self.trust or None,
            "description": self.description,
            "includeTools": self.include_tools,
            "excludeTools": self.exclude_tools,
        }
        return {key: value for key, value in data.items() if value is not None}

    def allows_tool(self, name: str) -> bool:
        """Check a tool name against the include/exclude filters."""
        if self.include_tools is not None and name not in self.include_tools:
            return False
        if self.exclude_tools is not None and name in self.exclude_tools:
            return False
        return True


@dataclass
class DiscoveredTool:
    """A tool exposed by a tool source.

    Attributes:
        name: Name of the tool on its source
        description: Human-readable description
        parameter_schema: JSON schema of the tool's arguments
        source_id: Id of the owning tool source
        trusted: Whether calls may skip confirmation
    """

    name: str
    description: str
    parameter_schema: dict[str, Any]
    source_id: str
    trusted: bool = False

    @classmethod
    def from_mcp_tool(cls, tool: Any, source_id: str, trusted: bool = False) -> "DiscoveredTool":
        """Create a DiscoveredTool from an MCP tool listing entry."""
        return cls(
            name=tool.name,
            description=tool.description or "",
            parameter_schema=dict(tool.inputSchema or {}),
            source_id=source_id,
            trusted=trusted,
        )

    @property
    def qualified_name(self) -> str:
        return qualify_name(self.source_id, self.name)

    def to_function_declaration(self) -> dict[str, Any]:
        """Render the tool as a model function declaration under its qualified name."""
        return {
            "name": self.qualified_name,
            "description": self.get_description(),
            "parameters": self.parameter_schema,
        }

    def requires_confirmation(self) -> bool:
        return not self.trusted

    def get_description(self) -> str:
        return f"{self.description} (from {self.source_id})"


@dataclass
class DiscoveredPrompt:
    """A prompt template exposed by a tool source."""

    name: str
    description: str
    arguments: list[dict[str, Any]]
    source_id: str

    @classmethod
    def from_mcp_prompt(cls, prompt: Any, source_id: str) -> "DiscoveredPrompt":
        """Create a DiscoveredPrompt from an MCP prompt listing entry."""
        arguments = [
            {
                "name": argument.name,
                "description": argument.description or "",
                "required": bool(argument.required),
            }
            for argument in (prompt.arguments or [])
        ]
        return cls(
            name=prompt.name,
            description=prompt.description or "",
            arguments=arguments,
            source_id=source_id,
        )


def qualify_name(source_id: str, name: str) -> str:
    """Build the catalog key for a tool or prompt owned by source_id."""
    return f"{source_id}{QUALIFIED_NAME_SEPARATOR}{name}"


def split_qualified_name(qualified_name: str) -> tuple[str, str]:
    """Split a catalog key into (source_id, local_name) on the first separator.

    Raises:
        ValueError: If the name is not qualified
    """
    source_id, separator, name = qualified_name.partition(QUALIFIED_NAME_SEPARATOR)
    if not separator or not source_id or not name:
        raise ValueError(f"Not a qualified tool name: {qualified_name!r}")
    return source_id, name

"""Connection to a single MCP tool source.

This module provides ToolSourceConnection, which owns one MCP client session
and its lifecycle:

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTING -> DISCONNECTED

The MCP transports are async context managers bound to the task that opened
them, so each connection runs its session inside a dedicated background task
and connect()/disconnect() only signal that task. This lets a connection be
opened by one request and closed by another.
"""

import asyncio
import json
import logging
from contextlib import AsyncExitStack
from datetime import timedelta
from typing import Any

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from mcp.types import METHOD_NOT_FOUND, Implementation

from parley_server.exceptions import ToolSourceError
from parley_server.tools.types import (
    DiscoveredPrompt,
    DiscoveredTool,
    DiscoveryState,
    StatusChangeListener,
    ToolSourceConfig,
    ToolSourceStatus,
)

logger = logging.getLogger(__name__)

CLIENT_INFO = Implementation(name="parley-server", version="0.1.0")


def _format_tool_result(result: Any) -> str:
    """Flatten an MCP CallToolResult into a single string."""
    content = getattr(result, "content", None)
    if not content:
        return json.dumps(result.model_dump(mode="json")) if hasattr(result, "model_dump") else str(result)

    parts: list[str] = []
    for item in content:
        if item.type == "text":
            parts.append(item.text)
        elif item.type == "image":
            parts.append(f"[Image: {item.mimeType or 'unknown type'}]")
        else:
            parts.append(json.dumps(item.model_dump(mode="json")))
    return "\n".join(parts)


class ToolSourceConnection:
    """A live connection to one MCP server.

    Attributes:
        source_id: Id of the configured tool source
        config: The source configuration
    """

    def __init__(self, source_id: str, config: ToolSourceConfig) -> None:
        self.source_id = source_id
        self.config = config
        self._status = ToolSourceStatus.DISCONNECTED
        self._discovery_state = DiscoveryState.NOT_STARTED
        self._tools: dict[str, DiscoveredTool] = {}
        self._prompts: dict[str, DiscoveredPrompt] = {}
        self._listeners: list[StatusChangeListener] = []

        self._session: ClientSession | None = None
        self._runner: asyncio.Task | None = None
        self._ready: asyncio.Event | None = None
        self._closing: asyncio.Event | None = None
        self._connect_error: BaseException | None = None

    # --- State ---

    def get_status(self) -> ToolSourceStatus:
        return self._status

    def get_discovery_state(self) -> DiscoveryState:
        return self._discovery_state

    def get_tools(self) -> dict[str, DiscoveredTool]:
        return self._tools

    def get_prompts(self) -> dict[str, DiscoveredPrompt]:
        return self._prompts

    def add_status_change_listener(self, listener: StatusChangeListener) -> None:
        self._listeners.append(listener)

    def remove_status_change_listener(self, listener: StatusChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_status(self, status: ToolSourceStatus) -> None:
        if self._status == status:
            return
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(self.source_id, status)
            except Exception as e:
                logger.error(f"Status listener failed for {self.source_id}: {e}")

    # --- Lifecycle ---

    async def connect(self) -> None:
        """Open the MCP session.

        Raises:
            ToolSourceError: If the source is misconfigured or its command
                cannot be started
            Exception: Any transport or protocol error from the MCP client
        """
        if self._status in (ToolSourceStatus.CONNECTED, ToolSourceStatus.CONNECTING):
            return

        if self.config.transport is None:
            raise ToolSourceError(
                f"No transport configuration found for tool source '{self.source_id}'",
                source_id=self.source_id,
            )

        self._set_status(ToolSourceStatus.CONNECTING)
        self._ready = asyncio.Event()
        self._closing = asyncio.Event()
        self._connect_error = None
        self._runner = asyncio.create_task(
            self._run_session(), name=f"tool-source:{self.source_id}"
        )

        await self._ready.wait()

        if self._session is None:
            error = self._connect_error
            self._runner = None
            self._set_status(ToolSourceStatus.DISCONNECTED)
            if isinstance(error, FileNotFoundError):
                raise ToolSourceError(
                    f"Failed to start tool source '{self.source_id}': command not found. "
                    f"The executable ({self.config.command}) is not available on PATH; "
                    f"try using the full path to the executable. Original error: {error}",
                    source_id=self.source_id,
                ) from error
            if error is not None:
                raise error
            raise ToolSourceError(
                f"Tool source '{self.source_id}' closed during startup",
                source_id=self.source_id,
            )

        self._set_status(ToolSourceStatus.CONNECTED)
        logger.info(f"Connected to tool source {self.source_id} ({self.config.transport})")

    async def _open_transport(self, stack: AsyncExitStack) -> tuple[Any, Any]:
        """Enter the transport selected by the config and return its streams."""
        if self.config.command:
            params = StdioServerParameters(
                command=self.config.command,
                args=self.config.args,
                env=self.config.env or None,
                cwd=self.config.cwd,
            )
            logger.debug(f"Starting stdio tool source {self.source_id}: {params.command} {params.args}")
            read, write = await stack.enter_async_context(stdio_client(params))
            return read, write

        if self.config.url:
            logger.debug(f"Opening SSE tool source {self.source_id}: {self.config.url}")
            read, write = await stack.enter_async_context(
                sse_client(self.config.url, headers=self.config.headers or None)
            )
            return read, write

        logger.debug(f"Opening HTTP tool source {self.source_id}: {self.config.http_url}")
        read, write, _ = await stack.enter_async_context(
            streamablehttp_client(self.config.http_url, headers=self.config.headers or None)
        )
        return read, write

    async def _run_session(self) -> None:
        """Own the transport and session until disconnect() is requested."""
        assert self._ready is not None and self._closing is not None
        try:
            async with AsyncExitStack() as stack:
                read, write = await self._open_transport(stack)
                read_timeout = (
                    timedelta(seconds=self.config.timeout) if self.config.timeout else None
                )
                session = await stack.enter_async_context(
                    ClientSession(
                        read,
                        write,
                        read_timeout_seconds=read_timeout,
                        client_info=CLIENT_INFO,
                    )
                )
                await session.initialize()
                self._session = session
                self._ready.set()
                await self._closing.wait()
        except Exception as e:
            if self._session is None:
                self._connect_error = e
            else:
                logger.error(f"Tool source {self.source_id} session failed: {e}")
        finally:
            lost = self._session is not None and not self._closing.is_set()
            self._session = None
            self._ready.set()
            if lost:
                logger.warning(f"Tool source {self.source_id} closed unexpectedly")
                self._tools.clear()
                self._prompts.clear()
                self._discovery_state = DiscoveryState.NOT_STARTED
                self._set_status(ToolSourceStatus.DISCONNECTED)

    async def disconnect(self) -> None:
        """Close the MCP session and forget discovered tools and prompts."""
        if self._status == ToolSourceStatus.DISCONNECTED:
            return

        self._set_status(ToolSourceStatus.DISCONNECTING)

        if self._closing is not None:
            self._closing.set()
        if self._runner is not None:
            try:
                await self._runner
            except Exception as e:
                logger.error(f"Error disconnecting from {self.source_id}: {e}")
            self._runner = None

        self._tools.clear()
        self._prompts.clear()
        self._discovery_state = DiscoveryState.NOT_STARTED
        self._set_status(ToolSourceStatus.DISCONNECTED)
        logger.info(f"Disconnected from tool source {self.source_id}")

    # --- Discovery ---

    def _require_session(self) -> ClientSession:
        if self._session is None or self._status != ToolSourceStatus.CONNECTED:
            raise ToolSourceError(
                f"Tool source '{self.source_id}' is not connected",
                source_id=self.source_id,
            )
        return self._session

    async def discover_tools(self) -> None:
        """List the source's tools, applying the include/exclude filters."""
        session = self._require_session()
        self._discovery_state = DiscoveryState.IN_PROGRESS

        try:
            result = await session.list_tools()
        except Exception:
            self._discovery_state = DiscoveryState.ERROR
            raise

        self._tools = {
            tool.name: DiscoveredTool.from_mcp_tool(tool, self.source_id, self.config.trust)
            for tool in result.tools
            if self.config.allows_tool(tool.name)
        }
        self._discovery_state = DiscoveryState.COMPLETED
        logger.debug(f"Discovered {len(self._tools)} tools from {self.source_id}")

    async def discover_prompts(self) -> None:
        """List the source's prompts. Sources without prompt support yield none."""
        session = self._require_session()

        try:
            result = await session.list_prompts()
        except McpError as e:
            if e.error.code == METHOD_NOT_FOUND:
                logger.debug(f"Tool source {self.source_id} does not support prompts")
            else:
                logger.error(f"Error discovering prompts from {self.source_id}: {e}")
            self._prompts = {}
            return

        self._prompts = {
            prompt.name: DiscoveredPrompt.from_mcp_prompt(prompt, self.source_id)
            for prompt in result.prompts
        }
        logger.debug(f"Discovered {len(self._prompts)} prompts from {self.source_id}")

    async def discover_all(self) -> None:
        await self.discover_tools()
        await self.discover_prompts()

    # --- Invocation ---

    async def call_tool(self, name: str, args: dict[str, Any]) -> str:
        """Invoke a tool on this source and return its flattened text result.

        Raises:
            ToolSourceError: If not connected, the tool is unknown, or the
                source reports a tool error
        """
        session = self._require_session()
        if name not in self._tools:
            raise ToolSourceError(
                f"Tool '{name}' not found on source '{self.source_id}'",
                source_id=self.source_id,
            )

        result = await session.call_tool(name, arguments=args)
        text = _format_tool_result(result)
        if getattr(result, "isError", False):
            raise ToolSourceError(text or f"Tool '{name}' failed", source_id=self.source_id)
        return text

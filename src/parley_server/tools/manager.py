"""ToolSourceManager: one namespaced catalog over many tool sources.

This module provides the ToolSourceManager class which handles:
- Connecting to and discovering every configured tool source
- Registering discovered tools/prompts under "{source_id}:{name}"
- Adding, removing and reconfiguring sources at runtime
- Routing tool calls to the owning connection
- Reporting per-source status and aggregate statistics
"""

import asyncio
import logging
from typing import Any, Callable

from parley_server.exceptions import ToolSourceError
from parley_server.tools.connection import ToolSourceConnection
from parley_server.tools.types import (
    QUALIFIED_NAME_SEPARATOR,
    DiscoveredPrompt,
    DiscoveredTool,
    DiscoveryState,
    ToolSourceConfig,
    ToolSourceStatus,
    qualify_name,
    split_qualified_name,
)

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[str, ToolSourceConfig], ToolSourceConnection]


def _check_source_id(source_id: str) -> None:
    if not source_id or QUALIFIED_NAME_SEPARATOR in source_id:
        raise ValueError(
            f"Tool source id must be non-empty and must not contain "
            f"'{QUALIFIED_NAME_SEPARATOR}': {source_id!r}"
        )


class ToolSourceManager:
    """Aggregates the tools and prompts of all configured tool sources.

    The catalog is never cached: get_all_tools() and get_all_prompts()
    are recomputed from the live connections on each call.
    """

    def __init__(
        self,
        servers: dict[str, ToolSourceConfig] | None = None,
        connection_factory: ConnectionFactory = ToolSourceConnection,
    ) -> None:
        """Initialize the ToolSourceManager.

        Args:
            servers: Configured tool sources keyed by source id
            connection_factory: Builds a connection for (source_id, config)
        """
        self.servers: dict[str, ToolSourceConfig] = dict(servers or {})
        self._connection_factory = connection_factory
        self._clients: dict[str, ToolSourceConnection] = {}

    # --- Lookups ---

    def get_client(self, source_id: str) -> ToolSourceConnection | None:
        return self._clients.get(source_id)

    def get_all_clients(self) -> dict[str, ToolSourceConnection]:
        return dict(self._clients)

    def get_server_status(self, source_id: str) -> ToolSourceStatus:
        client = self._clients.get(source_id)
        return client.get_status() if client else ToolSourceStatus.DISCONNECTED

    def get_server_discovery_state(self, source_id: str) -> DiscoveryState:
        client = self._clients.get(source_id)
        return client.get_discovery_state() if client else DiscoveryState.NOT_STARTED

    def get_all_tools(self) -> dict[str, DiscoveredTool]:
        """Get every discovered tool keyed by its qualified name."""
        return {
            qualify_name(source_id, name): tool
            for source_id, client in self._clients.items()
            for name, tool in client.get_tools().items()
        }

    def get_all_prompts(self) -> dict[str, DiscoveredPrompt]:
        """Get every discovered prompt keyed by its qualified name."""
        return {
            qualify_name(source_id, name): prompt
            for source_id, client in self._clients.items()
            for name, prompt in client.get_prompts().items()
        }

    def get_tool(self, qualified_name: str) -> DiscoveredTool | None:
        try:
            source_id, name = split_qualified_name(qualified_name)
        except ValueError:
            return None
        client = self._clients.get(source_id)
        return client.get_tools().get(name) if client else None

    def get_function_declarations(self) -> list[dict[str, Any]]:
        """Get model function declarations for the whole catalog."""
        return [tool.to_function_declaration() for tool in self.get_all_tools().values()]

    # --- Discovery ---

    async def discover_all(self) -> None:
        """Discover every configured source. A failing source never blocks the others."""
        logger.info(f"Discovering {len(self.servers)} tool sources")

        source_ids = list(self.servers)
        results = await asyncio.gather(
            *(self.discover_server(source_id, self.servers[source_id]) for source_id in source_ids),
            return_exceptions=True,
        )

        for source_id, result in zip(source_ids, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to discover tool source {source_id}: {result}")

        logger.info(f"Discovered {len(self.get_all_tools())} tools from {len(self._clients)} sources")

    async def discover_server(self, source_id: str, config: ToolSourceConfig) -> None:
        """Connect to one source, discover it and register its catalog.

        Any existing connection for source_id is replaced.

        Raises:
            ValueError: If the source id contains the namespace separator
            ToolSourceError: If the source cannot be started or is not connected
            Exception: Any transport or protocol error, propagated to the caller
        """
        _check_source_id(source_id)
        logger.debug(f"Discovering tool source: {source_id}")

        client = self._connection_factory(source_id, config)
        client.add_status_change_listener(self.on_status_change)

        try:
            await client.connect()
            await client.discover_all()
        except Exception as e:
            logger.error(f"Failed to discover tool source {source_id}: {e}")
            client.remove_status_change_listener(self.on_status_change)
            await client.disconnect()
            raise

        previous = self._clients.get(source_id)
        if previous is not None and previous is not client:
            await self._close(source_id, previous)

        self._clients[source_id] = client

        for name in client.get_tools():
            logger.debug(f"Registered tool: {qualify_name(source_id, name)}")
        for name in client.get_prompts():
            logger.debug(f"Registered prompt: {qualify_name(source_id, name)}")

        logger.info(
            f"Discovered tool source {source_id}: "
            f"{len(client.get_tools())} tools, {len(client.get_prompts())} prompts"
        )

    # --- Configuration changes ---

    async def add_server(self, source_id: str, config: ToolSourceConfig) -> None:
        """Add (or replace) a source and discover it.

        Raises:
            ValueError: If the source id contains the namespace separator
        """
        _check_source_id(source_id)
        self.servers[source_id] = config
        await self.discover_server(source_id, config)

    async def remove_server(self, source_id: str) -> None:
        await self.disconnect_server(source_id)
        self.servers.pop(source_id, None)

    async def update_server_config(self, source_id: str, config: ToolSourceConfig) -> None:
        """Reconnect a source with a new configuration.

        The old connection is closed before the new one is opened.
        """
        await self.disconnect_server(source_id)
        self.servers[source_id] = config
        await self.discover_server(source_id, config)

    async def replace_servers(self, servers: dict[str, ToolSourceConfig]) -> None:
        """Drop every current source and discover a new set of sources."""
        await self.disconnect_all()
        self.servers = dict(servers)
        if self.servers:
            await self.discover_all()

    # --- Teardown ---

    async def _close(self, source_id: str, client: ToolSourceConnection) -> None:
        await client.disconnect()
        client.remove_status_change_listener(self.on_status_change)
        logger.debug(f"Closed tool source connection: {source_id}")

    async def disconnect_server(self, source_id: str) -> None:
        client = self._clients.pop(source_id, None)
        if client is not None:
            await self._close(source_id, client)

    async def disconnect_all(self) -> None:
        """Disconnect every source concurrently and wait for all of them."""
        logger.debug("Disconnecting from all tool sources")

        source_ids = list(self._clients)
        results = await asyncio.gather(
            *(self.disconnect_server(source_id) for source_id in source_ids),
            return_exceptions=True,
        )

        for source_id, result in zip(source_ids, results):
            if isinstance(result, Exception):
                logger.error(f"Error disconnecting tool source {source_id}: {result}")

        logger.info("Disconnected from all tool sources")

    # --- Invocation ---

    async def call_tool(self, qualified_name: str, args: dict[str, Any]) -> str:
        """Invoke a catalog tool by its qualified name.

        Raises:
            ToolSourceError: If the name is not in the catalog or the call fails
        """
        try:
            source_id, name = split_qualified_name(qualified_name)
        except ValueError as e:
            raise ToolSourceError(str(e)) from e

        client = self._clients.get(source_id)
        if client is None:
            raise ToolSourceError(f"Tool source '{source_id}' is not connected", source_id=source_id)

        return await client.call_tool(name, args)

    # --- Status ---

    def on_status_change(self, source_id: str, status: ToolSourceStatus) -> None:
        """Listener registered on every connection."""
        logger.debug(f"Tool source {source_id} status changed to: {status.value}")

        if status == ToolSourceStatus.DISCONNECTED:
            # No automatic reconnection.
            logger.info(f"Tool source {source_id} is disconnected")

    def get_server_stats(self) -> dict[str, int]:
        """Count live connections by status."""
        connected = disconnected = discovering = 0

        for client in self._clients.values():
            status = client.get_status()
            if status == ToolSourceStatus.CONNECTED:
                connected += 1
            elif status == ToolSourceStatus.DISCONNECTED:
                disconnected += 1
            else:
                discovering += 1

        return {
            "total": len(self._clients),
            "connected": connected,
            "disconnected": disconnected,
            "discovering": discovering,
        }

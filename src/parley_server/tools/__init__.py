"""Tool source discovery and aggregation layer.

This package connects to external MCP tool sources, discovers their tools and
prompts, and exposes them as one catalog namespaced by source id.
"""

from parley_server.tools.config_store import ToolSourceConfigStore
from parley_server.tools.connection import ToolSourceConnection
from parley_server.tools.manager import ToolSourceManager
from parley_server.tools.types import (
    DiscoveredPrompt,
    DiscoveredTool,
    DiscoveryState,
    ToolSourceConfig,
    ToolSourceStatus,
    qualify_name,
    split_qualified_name,
)

__all__ = [
    # Core classes
    "ToolSourceConnection",
    "ToolSourceManager",
    "ToolSourceConfigStore",
    # Types
    "DiscoveredPrompt",
    "DiscoveredTool",
    "DiscoveryState",
    "ToolSourceConfig",
    "ToolSourceStatus",
    # Naming
    "qualify_name",
    "split_qualified_name",
]

"""parley-server: Headless chat server with MCP tool calling via Ollama.

This package provides a REST API and SSE streaming interface for archived
chat sessions, a model/tool conversation loop and a namespaced catalog of
tools gathered from MCP servers.
"""

from parley_server.app import create_app

__version__ = "0.1.0"

__all__ = ["create_app", "__version__"]

"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from parley_server.config import ParleyServerSettings
from parley_server.ollama import OllamaClient
from parley_server.routers import chat, health, sessions, tools
from parley_server.tools import ToolSourceConfigStore, ToolSourceManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    The Ollama client, the tool source configuration and the tool source
    manager are created once at startup and stored in app.state. On
    shutdown every tool source is disconnected before the Ollama client
    is closed.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: ParleyServerSettings = app.state.settings
    app.state.ollama_client = OllamaClient(host=settings.ollama_host)
    logger.info(f"Initialized Ollama client with host: {settings.ollama_host}")

    connected = await app.state.ollama_client.check_connection()
    if connected:
        logger.info("Successfully connected to Ollama")
    else:
        logger.warning("Could not connect to Ollama - check if server is running")

    config_store = ToolSourceConfigStore(settings.resolved_tool_sources_path)
    servers = config_store.load()
    app.state.tool_config_store = config_store
    app.state.tool_manager = ToolSourceManager(servers)

    if settings.discover_tools_on_startup and servers:
        await app.state.tool_manager.discover_all()

    yield

    if hasattr(app.state, "tool_manager"):
        await app.state.tool_manager.disconnect_all()

    if hasattr(app.state, "ollama_client"):
        await app.state.ollama_client.close()
        logger.info("Ollama client closed")


def create_app(settings: ParleyServerSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional ParleyServerSettings instance. If not provided,
                  settings will be loaded from environment variables.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from parley_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="parley-server",
        description="Headless chat server with MCP tool calling via Ollama",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(sessions.router)
    app.include_router(chat.router)
    app.include_router(tools.router)

    return app

"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject common dependencies like settings and services.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from parley_server.config import ParleyServerSettings
from parley_server.ollama import OllamaClient
from parley_server.sessions import ChatHistoryStore
from parley_server.tools import ToolSourceConfigStore, ToolSourceManager


@lru_cache
def get_settings() -> ParleyServerSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the PARLEY_ prefix.

    Returns:
        ParleyServerSettings: The application configuration settings.
    """
    return ParleyServerSettings()


def get_ollama_client(request: Request) -> OllamaClient:
    """Get the Ollama client from app state.

    Raises:
        HTTPException: If the Ollama client is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "ollama_client"):
        raise HTTPException(
            status_code=503,
            detail="Ollama client not initialized",
        )
    return request.app.state.ollama_client


def get_tool_manager(request: Request) -> ToolSourceManager:
    """Get the ToolSourceManager created at startup.

    Raises:
        HTTPException: If the tool manager is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "tool_manager"):
        raise HTTPException(
            status_code=503,
            detail="Tool manager not initialized",
        )
    return request.app.state.tool_manager


def get_tool_config_store(request: Request) -> ToolSourceConfigStore:
    """Get the persisted tool source configuration.

    Raises:
        HTTPException: If the config store is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "tool_config_store"):
        raise HTTPException(
            status_code=503,
            detail="Tool configuration not initialized",
        )
    return request.app.state.tool_config_store


def get_history_store(request: Request) -> ChatHistoryStore:
    """Get a ChatHistoryStore with its manifest loaded.

    A new store is created for each request, so changes made to the
    files on disk between requests are picked up.

    Args:
        request: The FastAPI request object.

    Returns:
        ChatHistoryStore: A store bound to the configured data directory.
    """
    # Use settings from app.state instead of cached get_settings()
    # This ensures tests can use their own isolated settings
    settings = request.app.state.settings

    store = ChatHistoryStore(
        manifest_path=settings.resolved_manifest_path,
        histories_dir=settings.resolved_histories_dir,
    )
    store.load_manifest()
    return store

"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from parley_server.models.chat import ChatRequest
from parley_server.models.health import HealthResponse, ToolSourceStats
from parley_server.models.sessions import (
    CreateHistoryRequest,
    HistoryDetailResponse,
    HistoryListResponse,
)
from parley_server.models.tools import AddToolSourceRequest, ToolSourceConfigModel

__all__ = [
    "AddToolSourceRequest",
    "ChatRequest",
    "CreateHistoryRequest",
    "HealthResponse",
    "HistoryDetailResponse",
    "HistoryListResponse",
    "ToolSourceConfigModel",
    "ToolSourceStats",
]

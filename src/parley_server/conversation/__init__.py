"""Agentic conversation engine.

This package contains the conversation handler that drives the bounded
request / tool / response loop, the in-memory context history it commits to,
and the tool executor that applies the tool permission policy.
"""

from parley_server.conversation.executor import ToolExecutor
from parley_server.conversation.handler import ConversationHandler
from parley_server.conversation.history import ContextHistory
from parley_server.conversation.types import (
    StreamChunk,
    ToolCall,
    ToolCallStatus,
    ToolResponse,
)

__all__ = [
    "ContextHistory",
    "ConversationHandler",
    "StreamChunk",
    "ToolCall",
    "ToolCallStatus",
    "ToolExecutor",
    "ToolResponse",
]

"""Chat history archive for parley-server.

This package provides durable storage of complete conversations as a manifest
plus one JSON file per session, with age-based eviction.
"""

from parley_server.sessions.store import ChatHistoryStore
from parley_server.sessions.types import ChatHistory, HistoryManifest, HistorySummary

__all__ = [
    "ChatHistory",
    "ChatHistoryStore",
    "HistoryManifest",
    "HistorySummary",
]

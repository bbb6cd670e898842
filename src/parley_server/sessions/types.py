"""Data types for the chat history archive.

This module defines archived sessions, their manifest summaries and the
manifest itself. Timestamps are integer epoch milliseconds and JSON keys use
camelCase (createdAt, modifiedAt).
"""

from dataclasses import dataclass, field
from typing import Any

MANIFEST_VERSION = "1.0"


@dataclass
class HistorySummary:
    """Manifest entry for one archived session."""

    id: str
    name: str
    created_at: int
    modified_at: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistorySummary":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            created_at=int(data.get("createdAt", 0)),
            modified_at=int(data.get("modifiedAt", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "modifiedAt": self.modified_at,
        }


@dataclass
class ChatHistory:
    """A complete archived conversation.

    Attributes:
        id: Session id ("chat-<epoch ms>-<7 base36 chars>")
        name: Display name
        created_at: Creation time (epoch ms)
        modified_at: Last modification time (epoch ms)
        contents: Ordered role-tagged conversation turns
    """

    id: str
    name: str
    created_at: int
    modified_at: int
    contents: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatHistory":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            created_at=int(data.get("createdAt", 0)),
            modified_at=int(data.get("modifiedAt", 0)),
            contents=list(data.get("contents") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "modifiedAt": self.modified_at,
            "contents": self.contents,
        }

    def to_summary(self) -> HistorySummary:
        return HistorySummary(
            id=self.id,
            name=self.name,
            created_at=self.created_at,
            modified_at=self.modified_at,
        )


@dataclass
class HistoryManifest:
    """Index of all archived sessions."""

    version: str = MANIFEST_VERSION
    histories: list[HistorySummary] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryManifest":
        return cls(
            version=data.get("version", ""),
            histories=[HistorySummary.from_dict(entry) for entry in data.get("histories", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "histories": [entry.to_dict() for entry in self.histories],
            "version": self.version,
        }

    def find(self, history_id: str) -> HistorySummary | None:
        for entry in self.histories:
            if entry.id == history_id:
                return entry
        return None

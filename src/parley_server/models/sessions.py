"""Pydantic models for chat history API requests and responses."""

from typing import Any

from pydantic import BaseModel, Field


class CreateHistoryRequest(BaseModel):
    """Request body for archiving a new session."""

    name: str | None = Field(
        None, description="Display name; defaults to the current date and time"
    )
    contents: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Conversation turns in {role, parts} form",
    )


class UpdateHistoryRequest(BaseModel):
    """Request body for replacing a session's contents."""

    contents: list[dict[str, Any]] = Field(..., description="New conversation turns")


class RenameHistoryRequest(BaseModel):
    """Request body for renaming a session."""

    name: str = Field(..., min_length=1, description="New display name")


class CleanupRequest(BaseModel):
    """Request body for evicting old sessions."""

    max_count: int = Field(..., ge=0, description="Number of sessions to keep")


class HistorySummaryResponse(BaseModel):
    """A session entry in the list response."""

    id: str
    name: str
    created_at: int = Field(description="Creation time (epoch ms)")
    modified_at: int = Field(description="Last modification time (epoch ms)")


class HistoryListResponse(BaseModel):
    """Response model for listing sessions, most recently modified first."""

    histories: list[HistorySummaryResponse]
    count: int


class HistoryDetailResponse(HistorySummaryResponse):
    """Response model for a session with its full contents."""

    contents: list[dict[str, Any]]


class CleanupResponse(BaseModel):
    """Response model for session eviction."""

    deleted: int = Field(description="Number of sessions deleted")
    remaining: int = Field(description="Number of sessions left")


class RepairResponse(BaseModel):
    """Response model for manifest repair."""

    removed: int = Field(description="Manifest entries removed because their file was missing")

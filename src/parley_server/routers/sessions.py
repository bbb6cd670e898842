"""Sessions router for archived chat history operations.

This module provides REST API endpoints for:
- Listing archived sessions, most recently modified first
- Creating, reading, replacing, renaming and deleting sessions
- Evicting old sessions and repairing the manifest
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from parley_server.dependencies import get_history_store
from parley_server.models.sessions import (
    CleanupRequest,
    CleanupResponse,
    CreateHistoryRequest,
    HistoryDetailResponse,
    HistoryListResponse,
    HistorySummaryResponse,
    RenameHistoryRequest,
    RepairResponse,
    UpdateHistoryRequest,
)
from parley_server.sessions import ChatHistory, ChatHistoryStore, HistorySummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])

HistoryStoreDep = Annotated[ChatHistoryStore, Depends(get_history_store)]


def _not_found(session_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": {
                "code": "session_not_found",
                "message": f"Session {session_id} not found",
                "details": {"session_id": session_id},
            }
        },
    )


def _storage_error(action: str, e: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": {
                "code": "session_save_error",
                "message": f"Failed to {action} session: {str(e)}",
                "details": {},
            }
        },
    )


def _summary(entry: HistorySummary) -> HistorySummaryResponse:
    return HistorySummaryResponse(
        id=entry.id,
        name=entry.name,
        created_at=entry.created_at,
        modified_at=entry.modified_at,
    )


def _detail(history: ChatHistory) -> HistoryDetailResponse:
    return HistoryDetailResponse(
        id=history.id,
        name=history.name,
        created_at=history.created_at,
        modified_at=history.modified_at,
        contents=history.contents,
    )


@router.get("", response_model=HistoryListResponse, summary="List sessions")
async def list_sessions(store: HistoryStoreDep) -> HistoryListResponse:
    histories = [_summary(entry) for entry in store.get_all_histories()]
    return HistoryListResponse(histories=histories, count=len(histories))


@router.post(
    "",
    response_model=HistoryDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new session",
)
async def create_session(
    request: CreateHistoryRequest,
    store: HistoryStoreDep,
) -> HistoryDetailResponse:
    """Archive a new session.

    Without a name, the session is named after the current date and time.

    Raises:
        HTTPException: 500 if the session cannot be written
    """
    try:
        history = store.create_history(request.name, request.contents)
    except OSError as e:
        logger.error(f"Failed to create session: {e}")
        raise _storage_error("create", e)

    return _detail(history)


@router.post("/cleanup", response_model=CleanupResponse, summary="Delete old sessions")
async def cleanup_sessions(
    request: CleanupRequest,
    store: HistoryStoreDep,
) -> CleanupResponse:
    """Delete the least recently modified sessions beyond max_count."""
    try:
        deleted = store.cleanup_old_histories(request.max_count)
    except OSError as e:
        logger.error(f"Failed to clean up sessions: {e}")
        raise _storage_error("clean up", e)

    return CleanupResponse(deleted=deleted, remaining=store.get_history_count())


@router.post("/repair", response_model=RepairResponse, summary="Repair the session manifest")
async def repair_sessions(store: HistoryStoreDep) -> RepairResponse:
    try:
        removed = store.repair_manifest()
    except OSError as e:
        logger.error(f"Failed to repair session manifest: {e}")
        raise _storage_error("repair", e)

    return RepairResponse(removed=removed)


@router.get("/{session_id}", response_model=HistoryDetailResponse, summary="Get a session")
async def get_session(session_id: str, store: HistoryStoreDep) -> HistoryDetailResponse:
    history = store.get_history(session_id)
    if history is None:
        raise _not_found(session_id)
    return _detail(history)


@router.put("/{session_id}", response_model=HistoryDetailResponse, summary="Replace session contents")
async def update_session(
    session_id: str,
    request: UpdateHistoryRequest,
    store: HistoryStoreDep,
) -> HistoryDetailResponse:
    try:
        updated = store.update_history(session_id, request.contents)
    except OSError as e:
        logger.error(f"Failed to update session {session_id}: {e}")
        raise _storage_error("update", e)

    if not updated:
        raise _not_found(session_id)

    history = store.get_history(session_id)
    if history is None:
        raise _not_found(session_id)
    return _detail(history)


@router.patch("/{session_id}", response_model=HistoryDetailResponse, summary="Rename a session")
async def rename_session(
    session_id: str,
    request: RenameHistoryRequest,
    store: HistoryStoreDep,
) -> HistoryDetailResponse:
    if not request.name.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": {
                    "code": "invalid_name",
                    "message": "Session name must not be blank",
                    "details": {},
                }
            },
        )

    try:
        renamed = store.rename_history(session_id, request.name)
    except OSError as e:
        logger.error(f"Failed to rename session {session_id}: {e}")
        raise _storage_error("rename", e)

    if not renamed:
        raise _not_found(session_id)

    history = store.get_history(session_id)
    if history is None:
        raise _not_found(session_id)
    return _detail(history)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a session",
)
async def delete_session(session_id: str, store: HistoryStoreDep) -> None:
    """Delete a session and its manifest entry.

    Raises:
        HTTPException: 404 if the session is not in the manifest
    """
    try:
        deleted = store.delete_history(session_id)
    except OSError as e:
        logger.error(f"Failed to delete session {session_id}: {e}")
        raise _storage_error("delete", e)

    if not deleted:
        raise _not_found(session_id)

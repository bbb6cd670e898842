"""Chat API endpoints.

This module provides the streaming chat endpoint. Each request runs one
exchange of the conversation loop against an archived session and streams
its output via SSE.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from parley_server.conversation import ContextHistory, ConversationHandler, ToolExecutor
from parley_server.dependencies import get_history_store, get_ollama_client, get_tool_manager
from parley_server.exceptions import ProviderError
from parley_server.models.chat import (
    ChatRequest,
    ContentDeltaEvent,
    DoneEvent,
    ErrorEvent,
    ToolCallInfo,
    ToolCallsEvent,
)
from parley_server.ollama import GenerationConfig, OllamaClient
from parley_server.sessions import ChatHistoryStore
from parley_server.tools import ToolSourceManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


def _error_event(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, str]:
    event = ErrorEvent(code=code, message=message, details=details or {})
    return {"event": "error", "data": event.model_dump_json()}


@router.post("/{session_id}/stream")
async def chat_streaming(
    session_id: str,
    request_body: ChatRequest,
    request: Request,
    ollama_client: Annotated[OllamaClient, Depends(get_ollama_client)],
    tool_manager: Annotated[ToolSourceManager, Depends(get_tool_manager)],
    store: Annotated[ChatHistoryStore, Depends(get_history_store)],
) -> EventSourceResponse:
    """Stream one exchange with the model via Server-Sent Events (SSE).

    The session contents are loaded as the committed context. Text is
    streamed as it is generated; tool calls requested by the model are
    executed under the configured permissions. Once the exchange has
    finished, the user message and the model response are saved to the
    session and sessions beyond max_histories are evicted.

    SSE Events:
        - content_delta: Each text chunk from the model
        - tool_calls: The tool calls the model asked for
        - error: If the exchange or the save fails (nothing is saved)
        - done: The exchange is saved

    Raises:
        HTTPException: 404 if session not found
        HTTPException: 500 if the tool permissions are misconfigured
    """
    # Get settings from app.state to ensure test isolation
    settings = request.app.state.settings

    history = store.get_history(session_id)
    if history is None:
        raise HTTPException(
            status_code=404,
            detail={
                "error": {
                    "code": "session_not_found",
                    "message": f"Session {session_id} not found",
                    "details": {"session_id": session_id},
                }
            },
        )

    approved_tools = set(request_body.approved_tools)

    async def approve(tool_name: str, args: dict[str, Any]) -> bool:
        return tool_name in approved_tools

    try:
        executor = ToolExecutor(
            tool_manager,
            permissions=settings.tool_permissions,
            default_permission=settings.default_tool_permission,
            approval_handler=approve,
        )
    except ValueError as e:
        logger.error(f"Invalid tool permission configuration: {e}")
        raise HTTPException(
            status_code=500,
            detail={
                "error": {
                    "code": "invalid_tool_permissions",
                    "message": str(e),
                    "details": {},
                }
            },
        )

    context = ContextHistory(history.contents)
    handler = ConversationHandler(
        ollama_client,
        context,
        executor,
        max_turns=settings.max_tool_turns,
        tool_declarations=tool_manager.get_function_declarations,
    )
    model = request_body.model or settings.default_model
    config = GenerationConfig(
        temperature=request_body.temperature,
        max_tokens=request_body.max_tokens,
    )

    logger.info(f"Starting streaming chat for session {session_id} with model {model}")

    async def event_generator():
        """Generate SSE events from the conversation loop."""
        truncated = False

        try:
            async for chunk in handler.handle_conversation(
                model,
                request_body.message,
                system_prompt=request_body.system_prompt,
                config=config,
            ):
                if await request.is_disconnected():
                    logger.warning(
                        f"Client disconnected during streaming for session {session_id}"
                    )
                    return

                if chunk.done:
                    truncated = chunk.truncated
                elif chunk.tool_calls:
                    event = ToolCallsEvent(
                        tool_calls=[
                            ToolCallInfo(
                                name=tool_call.name,
                                args=tool_call.args,
                                status=tool_call.status.value,
                            )
                            for tool_call in chunk.tool_calls
                        ]
                    )
                    yield {"event": "tool_calls", "data": event.model_dump_json()}
                elif chunk.text:
                    event = ContentDeltaEvent(content=chunk.text)
                    yield {"event": "content_delta", "data": event.model_dump_json()}

        except ProviderError as e:
            logger.error(f"Model request failed for session {session_id}: {e}")
            yield _error_event(
                "ollama_error",
                f"Failed to generate response: {str(e)}",
                {"session_id": session_id},
            )
            return
        except Exception as e:
            logger.error(f"Error during streaming for session {session_id}: {e}")
            yield _error_event("chat_error", str(e), {"session_id": session_id})
            return

        try:
            store.update_history(session_id, context.contents)
            store.cleanup_old_histories(settings.max_histories)
            logger.debug(f"Saved session {session_id} after streaming")
        except OSError as e:
            logger.error(f"Failed to save session {session_id}: {e}")
            yield _error_event("session_save_error", f"Failed to save session: {str(e)}")
            return

        done_event = DoneEvent(session_id=session_id, truncated=truncated)
        yield {"event": "done", "data": done_event.model_dump_json()}

    return EventSourceResponse(event_generator())

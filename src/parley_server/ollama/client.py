"""Async Ollama client wrapper.

This module provides the model adapter used by the conversation handler. It
wraps ollama.AsyncClient, translates role-tagged conversation turns into
Ollama chat messages and normalizes the streamed response into text fragments
and function calls.
"""

import logging
from typing import Any, AsyncIterator

import ollama

from parley_server.exceptions import ProviderError
from parley_server.ollama.types import (
    FunctionCall,
    GenerationConfig,
    NormalizedChunk,
    contents_to_ollama_messages,
)

logger = logging.getLogger(__name__)


def _to_dict(chunk: Any) -> dict[str, Any]:
    """Convert an Ollama response object to a plain dict."""
    if hasattr(chunk, "model_dump"):
        return chunk.model_dump()
    if isinstance(chunk, dict):
        return chunk
    return vars(chunk)


class OllamaClient:
    """Async model adapter for the Ollama API.

    The client is created once at startup and reused. All generation goes
    through the streaming chat API.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(self, host: str) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
        """
        self.host = host
        self._client = ollama.AsyncClient(host=host)
        self._initialized = False
        logger.info(f"OllamaClient initialized with host: {host}")

    async def initialize(self) -> None:
        """Prepare the adapter for generation. Safe to call repeatedly."""
        if self._initialized:
            return
        self._initialized = True
        logger.debug("OllamaClient ready")

    async def refresh_token_if_needed(self) -> None:
        """Refresh credentials before a request.

        A local Ollama server is unauthenticated, so there is nothing to refresh.
        """
        return None

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def stream_generate_content(
        self,
        model: str,
        contents: list[dict[str, Any]],
        config: GenerationConfig | None = None,
        system_prompt: str | None = None,
    ) -> AsyncIterator[NormalizedChunk]:
        """Stream a model response for the given conversation turns.

        Args:
            model: The model name to use
            contents: Role-tagged conversation turns
            config: Optional generation parameters and tool declarations
            system_prompt: Optional system prompt

        Yields:
            NormalizedChunk: A text fragment and/or a function call, in the
                order they arrive

        Raises:
            ProviderError: If the Ollama API request fails
        """
        config = config or GenerationConfig()
        messages = contents_to_ollama_messages(contents, system_prompt)

        logger.debug(f"Starting generation with model: {model}")
        logger.debug(f"Message count: {len(messages)}")

        try:
            async for chunk in await self._client.chat(
                model=model,
                messages=messages,
                tools=config.to_ollama_tools(),
                stream=True,
                options=config.to_options(),
            ):
                chunk_dict = _to_dict(chunk)
                message = chunk_dict.get("message") or {}

                content = message.get("content") or ""
                if content:
                    yield NormalizedChunk(text=content)

                for tool_call in message.get("tool_calls") or []:
                    function = _to_dict(tool_call).get("function") or {}
                    function = _to_dict(function)
                    logger.debug(f"Model requested tool: {function.get('name')}")
                    yield NormalizedChunk(
                        function_call=FunctionCall(
                            name=function.get("name", ""),
                            args=dict(function.get("arguments") or {}),
                        )
                    )

                if chunk_dict.get("done"):
                    break

            logger.debug("Generation stream completed")

        except Exception as e:
            logger.error(f"Generation stream failed: {e}")
            raise ProviderError(f"Model request failed: {e}") from e

    async def close(self) -> None:
        """Close the client and clean up resources.

        ollama.AsyncClient uses httpx internally which handles cleanup.
        """
        logger.debug("OllamaClient closed")

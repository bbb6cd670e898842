"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures that replace the
Ollama client with a mock and help read SSE responses.
"""

from unittest.mock import AsyncMock, patch

import pytest

from parley_server.ollama import FunctionCall, NormalizedChunk


@pytest.fixture(autouse=True)
def mock_ollama_client():
    """Mock OllamaClient for all integration tests.

    This fixture patches the OllamaClient class before the app is created,
    ensuring the lifespan uses our mock instead of creating a real client.
    """
    with patch("parley_server.app.OllamaClient") as mock_client_class:
        mock_instance = AsyncMock()
        mock_instance.host = "http://localhost:11434"
        mock_instance.check_connection.return_value = True

        mock_client_class.return_value = mock_instance

        yield mock_instance


@pytest.fixture
def script_model(mock_ollama_client):
    """Make the mocked adapter stream one scripted response per call.

    Each response is a list of str (text) or FunctionCall items. The
    contents sent with every call are recorded in mock_ollama_client.requests.
    """

    def script(*responses):
        remaining = list(responses)
        mock_ollama_client.requests = []

        async def stream_generate_content(model, contents, config=None, system_prompt=None):
            mock_ollama_client.requests.append(
                {"model": model, "contents": contents, "config": config}
            )
            for item in remaining.pop(0):
                if isinstance(item, FunctionCall):
                    yield NormalizedChunk(function_call=item)
                else:
                    yield NormalizedChunk(text=item)

        mock_ollama_client.stream_generate_content = stream_generate_content

    return script


@pytest.fixture
def parse_sse():
    """Split an SSE response body into (event, data) pairs."""

    def parse(text: str) -> list[tuple[str | None, str | None]]:
        events = []
        # Normalize line endings and split by double newline
        normalized_text = text.replace("\r\n", "\n")
        for block in normalized_text.strip().split("\n\n"):
            if not block.strip():
                continue
            event_type = None
            event_data = None
            for line in block.split("\n"):
                if line.startswith("event:"):
                    event_type = line[len("event:"):].strip()
                elif line.startswith("data:"):
                    event_data = line[len("data:"):].strip()
            events.append((event_type, event_data))
        return events

    return parse

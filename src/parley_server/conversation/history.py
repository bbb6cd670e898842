"""In-memory conversation context.

ContextHistory holds the committed turns of the active conversation in the
role-tagged format sent to the model and stored in the session archive.
"""

import copy
import logging
from typing import Any

from parley_server.conversation.types import ToolCall, ToolResponse

logger = logging.getLogger(__name__)


class ContextHistory:
    """Append-only list of committed conversation turns."""

    def __init__(self, contents: list[dict[str, Any]] | None = None) -> None:
        self._contents: list[dict[str, Any]] = copy.deepcopy(contents or [])

    @property
    def contents(self) -> list[dict[str, Any]]:
        """A copy of the committed turns."""
        return copy.deepcopy(self._contents)

    def __len__(self) -> int:
        return len(self._contents)

    def serialize_for_api(self) -> list[dict[str, Any]]:
        """Get the committed turns for a model request.

        Each call returns fresh copies, so callers may extend the result.
        """
        return copy.deepcopy(self._contents)

    def add_user_message(self, text: str) -> None:
        self._contents.append({"role": "user", "parts": [{"text": text}]})

    def add_model_response(self, text: str, tool_calls: list[ToolCall] | None = None) -> None:
        """Append a model turn: the text part (if any), then one part per tool call."""
        parts: list[dict[str, Any]] = []
        if text:
            parts.append({"text": text})
        parts.extend(tool_call.to_part() for tool_call in tool_calls or [])

        if not parts:
            logger.debug("Model response was empty")
            parts.append({"text": ""})

        self._contents.append({"role": "model", "parts": parts})

    def add_tool_responses(self, responses: list[ToolResponse]) -> None:
        if not responses:
            return
        self._contents.append(
            {"role": "user", "parts": [response.to_part() for response in responses]}
        )

    def load(self, contents: list[dict[str, Any]]) -> None:
        """Replace the committed turns, e.g. with an archived session."""
        self._contents = copy.deepcopy(contents)

    def clear(self) -> None:
        self._contents = []

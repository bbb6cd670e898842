"""Conversation handler: the request / tool / response loop.

ConversationHandler drives one exchange at a time:

1. Send the committed context plus the new user message to the model and
   stream the reply.
2. While the model asks for tools (at most max_turns times), execute them and
   send a follow-up request made of the context, the user message, the model
   turn with its functionCall parts and one turn with the matching
   functionResponse parts.
3. Commit the user message and the final model response to the history.

Nothing is committed until the loop has finished, so an error from the model
leaves the history exactly as it was.
"""

import dataclasses
import logging
from typing import Any, AsyncIterator, Callable

from parley_server.conversation.executor import ToolExecutor
from parley_server.conversation.history import ContextHistory
from parley_server.conversation.types import StreamChunk, ToolCall
from parley_server.ollama.types import GenerationConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_TURNS = 10


def _user_turn(text: str) -> dict[str, Any]:
    return {"role": "user", "parts": [{"text": text}]}


def _model_turn(text: str, tool_calls: list[ToolCall]) -> dict[str, Any]:
    parts: list[dict[str, Any]] = [{"text": text}] if text else []
    parts.extend(tool_call.to_part() for tool_call in tool_calls)
    return {"role": "model", "parts": parts}


class ConversationHandler:
    """Runs exchanges between the user, the model and the tool executor.

    Attributes:
        adapter: The model adapter (see OllamaClient)
        history: Committed context of the conversation
        executor: Executes requested tool calls
        max_turns: Maximum number of follow-up requests per exchange
    """

    def __init__(
        self,
        adapter: Any,
        history: ContextHistory,
        executor: ToolExecutor,
        max_turns: int = DEFAULT_MAX_TOOL_TURNS,
        tool_declarations: Callable[[], list[dict[str, Any]]] | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            adapter: Model adapter providing initialize(),
                refresh_token_if_needed() and stream_generate_content()
            history: Context history to read from and commit to
            executor: Tool executor for requested calls
            max_turns: Maximum number of follow-up requests per exchange
            tool_declarations: Supplies function declarations when the
                generation config does not carry its own
        """
        self.adapter = adapter
        self.history = history
        self.executor = executor
        self.max_turns = max_turns
        self.tool_declarations = tool_declarations

    def _request_prefix(self, user_message: str) -> list[dict[str, Any]]:
        """Committed context followed by the user turn.

        The user turn is not repeated when the context already ends with the
        same user message.
        """
        contents = self.history.serialize_for_api()
        last = contents[-1] if contents else None
        if last and last.get("role") == "user":
            parts = last.get("parts") or []
            if parts and parts[0].get("text") == user_message:
                logger.debug("User message already at end of context, not repeating it")
                return contents
        contents.append(_user_turn(user_message))
        return contents

    def _resolve_config(self, config: GenerationConfig | None) -> GenerationConfig:
        config = config or GenerationConfig()
        if config.tools is None and self.tool_declarations is not None:
            declarations = self.tool_declarations()
            if declarations:
                config = dataclasses.replace(config, tools=declarations)
        return config

    async def _stream_turn(
        self,
        model: str,
        contents: list[dict[str, Any]],
        config: GenerationConfig,
        system_prompt: str | None,
        tool_calls: list[ToolCall],
    ) -> AsyncIterator[str]:
        """Stream one model response, yielding text and collecting tool calls."""
        async for chunk in self.adapter.stream_generate_content(
            model, contents, config, system_prompt=system_prompt
        ):
            if chunk.text:
                yield chunk.text
            if chunk.function_call:
                tool_calls.append(
                    ToolCall(name=chunk.function_call.name, args=chunk.function_call.args)
                )

    async def handle_conversation(
        self,
        model: str,
        user_message: str,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Run one exchange and stream its output.

        Args:
            model: Model name
            user_message: The new user message
            system_prompt: Optional system prompt for every request
            config: Optional generation config

        Yields:
            StreamChunk: text fragments as they arrive, one chunk carrying the
                first batch of tool calls (if any), then a final chunk with
                done=True

        Raises:
            ProviderError: If a model request fails; nothing is committed
        """
        await self.adapter.initialize()
        await self.adapter.refresh_token_if_needed()

        config = self._resolve_config(config)

        accumulated_text = ""
        tool_calls: list[ToolCall] = []
        async for text in self._stream_turn(
            model, self._request_prefix(user_message), config, system_prompt, tool_calls
        ):
            accumulated_text += text
            yield StreamChunk(text=text, done=False)

        final_tool_calls = tool_calls
        truncated = False

        if tool_calls:
            yield StreamChunk(text="", done=False, tool_calls=list(tool_calls))

            current_tool_calls = tool_calls
            previous_text = accumulated_text
            previous_tool_calls = tool_calls

            for turn in range(1, self.max_turns + 1):
                logger.debug(f"Turn {turn}: executing {len(current_tool_calls)} tool calls")
                responses = await self.executor.execute_tools_with_approval(current_tool_calls)

                follow_up = self._request_prefix(user_message)
                follow_up.append(_model_turn(previous_text, previous_tool_calls))
                follow_up.append(
                    {"role": "user", "parts": [response.to_part() for response in responses]}
                )

                turn_text = ""
                new_tool_calls: list[ToolCall] = []
                async for text in self._stream_turn(
                    model, follow_up, config, system_prompt, new_tool_calls
                ):
                    turn_text += text
                    yield StreamChunk(text=text, done=False)

                accumulated_text += turn_text

                if not new_tool_calls:
                    break

                previous_text = turn_text
                previous_tool_calls = new_tool_calls
                current_tool_calls = new_tool_calls
                final_tool_calls = new_tool_calls
            else:
                truncated = True
                logger.warning(
                    f"Tool call loop stopped after {self.max_turns} turns without a final answer"
                )

        self.history.add_user_message(user_message)
        self.history.add_model_response(accumulated_text, final_tool_calls)

        yield StreamChunk(text="", done=True, truncated=truncated)

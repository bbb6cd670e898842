"""Tool execution with a per-tool permission policy.

The ToolExecutor turns a batch of pending tool calls into ToolResponses.
Each call is first checked against its permission:

- "always": run without asking
- "never": reject
- "ask": run if the tool source is trusted, otherwise defer to the approval
  handler (reject when none is installed)

Approved calls of one batch run concurrently. Failures never raise; they are
reported to the model as {"error": ...} responses.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

from parley_server.conversation.types import ToolCall, ToolCallStatus, ToolResponse
from parley_server.tools.types import DiscoveredTool

logger = logging.getLogger(__name__)

PERMISSION_ASK = "ask"
PERMISSION_ALWAYS = "always"
PERMISSION_NEVER = "never"
TOOL_PERMISSIONS = (PERMISSION_ASK, PERMISSION_ALWAYS, PERMISSION_NEVER)

REJECTED_MESSAGE = "User rejected tool execution"

# Called as approval_handler(tool_name, args); returns whether to run the tool
ApprovalHandler = Callable[[str, dict[str, Any]], Awaitable[bool]]


class ToolRunner(Protocol):
    """What the executor needs from the tool catalog."""

    def get_tool(self, qualified_name: str) -> DiscoveredTool | None: ...

    async def call_tool(self, qualified_name: str, args: dict[str, Any]) -> str: ...


class ToolExecutor:
    """Executes model-requested tool calls through the tool catalog."""

    def __init__(
        self,
        runner: ToolRunner,
        permissions: dict[str, str] | None = None,
        default_permission: str = PERMISSION_ASK,
        approval_handler: ApprovalHandler | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            runner: Resolves and invokes tools by qualified name
            permissions: Permission per qualified tool name
            default_permission: Permission for tools without an entry
            approval_handler: Asked for "ask" tools from untrusted sources

        Raises:
            ValueError: If a permission value is unknown
        """
        for value in [default_permission, *(permissions or {}).values()]:
            if value not in TOOL_PERMISSIONS:
                raise ValueError(f"Unknown tool permission: {value!r}")

        self.runner = runner
        self.permissions = dict(permissions or {})
        self.default_permission = default_permission
        self.approval_handler = approval_handler

    def get_permission(self, tool_name: str) -> str:
        return self.permissions.get(tool_name, self.default_permission)

    async def _is_approved(self, tool_call: ToolCall, tool: DiscoveredTool) -> bool:
        permission = self.get_permission(tool_call.name)
        logger.debug(f"Tool permission for {tool_call.name}: {permission}")

        if permission == PERMISSION_ALWAYS:
            return True
        if permission == PERMISSION_NEVER:
            return False
        if not tool.requires_confirmation():
            return True
        if self.approval_handler is None:
            logger.debug(f"No approval handler, rejecting tool {tool_call.name}")
            return False

        try:
            return bool(await self.approval_handler(tool_call.name, tool_call.args))
        except Exception as e:
            logger.error(f"Approval handler failed for {tool_call.name}: {e}")
            return False

    async def _run(self, tool_call: ToolCall) -> ToolResponse:
        try:
            result = await self.runner.call_tool(tool_call.name, tool_call.args)
        except Exception as e:
            logger.warning(f"Tool {tool_call.name} failed: {e}")
            tool_call.status = ToolCallStatus.ERROR
            tool_call.error = str(e)
            return ToolResponse(name=tool_call.name, response={"error": str(e)})

        logger.debug(f"Tool {tool_call.name} result: {result[:200]}")
        tool_call.status = ToolCallStatus.EXECUTED
        tool_call.result = result
        return ToolResponse(name=tool_call.name, response={"result": result})

    async def execute_tools_with_approval(self, tool_calls: list[ToolCall]) -> list[ToolResponse]:
        """Resolve permissions for a batch and execute the approved calls.

        Approvals are requested one call at a time, in order. Approved calls
        then run concurrently and the method returns once all have finished.

        Returns:
            One ToolResponse per input call, in input order
        """
        responses: list[ToolResponse | None] = [None] * len(tool_calls)
        approved: list[int] = []

        for index, tool_call in enumerate(tool_calls):
            tool = self.runner.get_tool(tool_call.name)
            if tool is None:
                message = f"Unknown tool: {tool_call.name}"
                logger.warning(message)
                tool_call.status = ToolCallStatus.ERROR
                tool_call.error = message
                responses[index] = ToolResponse(name=tool_call.name, response={"error": message})
            elif await self._is_approved(tool_call, tool):
                approved.append(index)
            else:
                logger.debug(f"Tool {tool_call.name} rejected")
                tool_call.status = ToolCallStatus.REJECTED
                tool_call.error = REJECTED_MESSAGE
                responses[index] = ToolResponse(
                    name=tool_call.name, response={"error": REJECTED_MESSAGE}
                )

        results = await asyncio.gather(*(self._run(tool_calls[index]) for index in approved))
        for index, response in zip(approved, results):
            responses[index] = response

        return [response for response in responses if response is not None]

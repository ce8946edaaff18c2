"""Tool executor that bridges LLM tool calls to the data-access tools."""

import asyncio
from collections.abc import Iterable
from typing import Any

import structlog
from pydantic import ValidationError

from practice_flows.errors import ToolExecutionError, ToolTimeoutError
from practice_flows.tools.data_access import ToolContext
from practice_flows.tools.definitions import ToolSpec

logger = structlog.get_logger(__name__)


class ToolExecutor:
    """Executes LLM tool calls against the store.

    Only the tools handed in are callable. Arguments and results are checked
    against each tool's contracts; any failure raises ToolExecutionError.
    Nothing is retried.
    """

    def __init__(
        self,
        context: ToolContext,
        tools: Iterable[ToolSpec],
        timeout: float | None = None,
    ):
        self.context = context
        self.timeout = timeout
        self._tools: dict[str, ToolSpec] = {spec.name: spec for spec in tools}

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def definitions(self) -> list[dict[str, Any]]:
        return [spec.definition() for spec in self._tools.values()]

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Execute a tool call and return its JSON-able result."""
        spec = self._tools.get(tool_name)
        if not spec:
            raise ToolExecutionError(tool_name, f"Unknown tool: {tool_name}")

        try:
            query = spec.input_model.model_validate(arguments or {})
        except ValidationError as e:
            raise ToolExecutionError(
                tool_name, "invalid arguments", details=e.errors(include_url=False)
            ) from e

        logger.info("executing_tool", tool=tool_name, args=arguments)

        try:
            result = await asyncio.wait_for(spec.handler(self.context, query), self.timeout)
        except TimeoutError as e:
            logger.warning("tool_timeout", tool=tool_name, timeout=self.timeout)
            raise ToolTimeoutError(tool_name, f"timed out after {self.timeout}s") from e
        except ToolExecutionError:
            raise
        except Exception as e:
            logger.warning("tool_execution_error", tool=tool_name, error=str(e))
            raise ToolExecutionError(tool_name, str(e)) from e

        try:
            output = spec.output_model.model_validate(result)
        except ValidationError as e:
            raise ToolExecutionError(
                tool_name, "invalid result", details=e.errors(include_url=False)
            ) from e

        logger.info("tool_executed", tool=tool_name, success=True)
        return output.model_dump(by_alias=True, exclude_none=True, mode="json")

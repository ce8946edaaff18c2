"""Provider-neutral LLM client interface.

Conversation history uses one message shape for every provider:

- ``{"role": "user", "content": str}``
- ``{"role": "assistant", "content": str, "tool_calls": [{"id", "name", "arguments"}]}``
- ``{"role": "tool_result", "tool_call_id": str, "tool_name": str, "content": str}``

Tools are ``{"name", "description", "input_schema"}`` dicts. Each client
converts both to its vendor format and back.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class LLMResponse:
    """Response from any provider."""

    content: str
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    stop_reason: str = "end_turn"
    usage: dict[str, int] = field(default_factory=lambda: {"input_tokens": 0, "output_tokens": 0})


class LLMClient(ABC):
    """Base for vendor clients; subclasses implement ``_generate``."""

    provider: str = "llm"

    def __init__(self, model: str):
        self._model = model
        self._logger = logger.bind(client=self.provider, model=model)

    @property
    def model(self) -> str:
        return self._model

    @abstractmethod
    async def _generate(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
    ) -> LLMResponse:
        """Call the vendor API and translate the answer."""

    async def generate(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """Generate one model turn.

        Args:
            system_prompt: Instructions for the model.
            messages: Conversation history in the neutral shape.
            tools: Optional tool definitions for function calling.

        Returns:
            LLMResponse with content, tool calls and usage info.
        """
        self._logger.debug(
            "generating_response",
            message_count=len(messages),
            tool_count=len(tools) if tools else 0,
        )
        try:
            parsed = await self._generate(system_prompt, messages, tools)
        except Exception as e:
            self._logger.error("api_error", error=str(e))
            raise

        self._logger.info(
            "response_generated",
            stop_reason=parsed.stop_reason,
            tool_calls=len(parsed.tool_calls),
            input_tokens=parsed.usage["input_tokens"],
            output_tokens=parsed.usage["output_tokens"],
        )
        return parsed

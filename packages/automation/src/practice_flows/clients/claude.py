"""Claude (Anthropic) LLM client with function calling support."""

from typing import Any

import anthropic

from practice_flows.clients.base import LLMClient, LLMResponse
from practice_flows.config import get_settings


class ClaudeClient(LLMClient):
    """Client for Anthropic's Claude API with tool use support."""

    provider = "claude"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        super().__init__(model or settings.claude_model)
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = settings.llm_temperature if temperature is None else temperature

        self._client = anthropic.AsyncAnthropic(
            api_key=api_key or settings.anthropic_api_key.get_secret_value()
        )

    def _convert_tools_to_anthropic_format(
        self, tools: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        return [
            {
                "name": tool["name"],
                "description": tool["description"],
                "input_schema": tool["input_schema"],
            }
            for tool in tools
        ]

    def _convert_messages_to_anthropic_format(
        self, messages: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Convert conversation history to Anthropic's message format.

        Consecutive tool results are merged into one user turn, since every
        tool_use block of an assistant turn must be answered in the next one.
        """
        anthropic_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg["role"] == "user":
                anthropic_messages.append({"role": "user", "content": msg["content"]})
            elif msg["role"] == "assistant":
                content_blocks: list[dict[str, Any]] = []
                if msg.get("content"):
                    content_blocks.append({"type": "text", "text": msg["content"]})
                for tool_call in msg.get("tool_calls", []):
                    content_blocks.append({
                        "type": "tool_use",
                        "id": tool_call["id"],
                        "name": tool_call["name"],
                        "input": tool_call["arguments"],
                    })
                anthropic_messages.append({
                    "role": "assistant",
                    "content": content_blocks if content_blocks else msg.get("content", ""),
                })
            elif msg["role"] == "tool_result":
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg["tool_call_id"],
                    "content": msg["content"],
                }
                if msg.get("is_error"):
                    block["is_error"] = True
                previous = anthropic_messages[-1] if anthropic_messages else None
                if (
                    previous
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and previous["content"]
                    and previous["content"][0].get("type") == "tool_result"
                ):
                    previous["content"].append(block)
                else:
                    anthropic_messages.append({"role": "user", "content": [block]})

        return anthropic_messages

    def _parse_response(self, response: anthropic.types.Message) -> LLMResponse:
        content = ""
        tool_calls = []

        for block in response.content:
            if block.type == "text":
                content += block.text
            elif block.type == "tool_use":
                tool_calls.append({
                    "id": block.id,
                    "name": block.name,
                    "arguments": block.input,
                })

        return LLMResponse(
            content=content,
            tool_calls=tool_calls,
            stop_reason=response.stop_reason or "end_turn",
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )

    async def _generate(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "system": system_prompt,
            "messages": self._convert_messages_to_anthropic_format(messages),
            "temperature": self._temperature,
        }
        if tools:
            kwargs["tools"] = self._convert_tools_to_anthropic_format(tools)

        response = await self._client.messages.create(**kwargs)
        return self._parse_response(response)

"""OpenAI GPT client with function calling support."""

import json
from typing import Any

import openai

from practice_flows.clients.base import LLMClient, LLMResponse
from practice_flows.config import get_settings
from practice_flows.errors import ModelOutputError

# Map OpenAI finish reasons to ours
_STOP_REASONS = {
    "stop": "end_turn",
    "tool_calls": "tool_use",
    "length": "max_tokens",
    "content_filter": "content_filter",
}


class OpenAIClient(LLMClient):
    """Client for OpenAI's chat completions API with tool use support.

    Also supports OpenAI-compatible servers via a custom ``base_url``.
    """

    provider = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        super().__init__(model or settings.gpt_model)
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = settings.llm_temperature if temperature is None else temperature

        client_kwargs: dict[str, Any] = {
            "api_key": api_key or settings.openai_api_key.get_secret_value()
        }
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

    def _convert_tools_to_openai_format(
        self, tools: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool["description"],
                    "parameters": tool["input_schema"],
                },
            }
            for tool in tools
        ]

    def _convert_messages_to_openai_format(
        self, system_prompt: str, messages: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        openai_messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]

        for msg in messages:
            if msg["role"] == "user":
                openai_messages.append({"role": "user", "content": msg["content"]})
            elif msg["role"] == "assistant":
                assistant_msg: dict[str, Any] = {"role": "assistant"}
                if msg.get("content"):
                    assistant_msg["content"] = msg["content"]
                if msg.get("tool_calls"):
                    assistant_msg["tool_calls"] = [
                        {
                            "id": tc["id"],
                            "type": "function",
                            "function": {
                                "name": tc["name"],
                                "arguments": json.dumps(tc["arguments"]),
                            },
                        }
                        for tc in msg["tool_calls"]
                    ]
                openai_messages.append(assistant_msg)
            elif msg["role"] == "tool_result":
                openai_messages.append({
                    "role": "tool",
                    "tool_call_id": msg["tool_call_id"],
                    "content": msg["content"],
                })

        return openai_messages

    def _parse_response(self, response: openai.types.chat.ChatCompletion) -> LLMResponse:
        message = response.choices[0].message
        tool_calls = []

        for tc in message.tool_calls or []:
            try:
                arguments = json.loads(tc.function.arguments or "{}")
            except json.JSONDecodeError as e:
                raise ModelOutputError(
                    f"Tool call '{tc.function.name}' has malformed arguments"
                ) from e
            tool_calls.append({"id": tc.id, "name": tc.function.name, "arguments": arguments})

        finish_reason = response.choices[0].finish_reason
        return LLMResponse(
            content=message.content or "",
            tool_calls=tool_calls,
            stop_reason=_STOP_REASONS.get(finish_reason or "stop", "end_turn"),
            usage={
                "input_tokens": response.usage.prompt_tokens if response.usage else 0,
                "output_tokens": response.usage.completion_tokens if response.usage else 0,
            },
        )

    async def _generate(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
    ) -> LLMResponse:
        # gpt-5 and o-series models take max_completion_tokens and only the
        # default temperature
        is_reasoning_model = self._model.startswith(("gpt-5", "o3", "o4"))
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": self._convert_messages_to_openai_format(system_prompt, messages),
        }
        if is_reasoning_model:
            kwargs["max_completion_tokens"] = self._max_tokens
        else:
            kwargs["max_tokens"] = self._max_tokens
            kwargs["temperature"] = self._temperature

        if tools:
            kwargs["tools"] = self._convert_tools_to_openai_format(tools)
            kwargs["tool_choice"] = "auto"

        response = await self._client.chat.completions.create(**kwargs)
        return self._parse_response(response)

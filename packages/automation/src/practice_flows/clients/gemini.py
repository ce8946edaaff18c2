"""Google Gemini client with function calling support (google-genai SDK)."""

import json
from collections.abc import Callable
from typing import Any, cast

from google import genai
from google.genai import types

from practice_flows.clients.base import LLMClient, LLMResponse
from practice_flows.config import get_settings

_TYPE_MAP = {
    "string": "STRING",
    "integer": "INTEGER",
    "number": "NUMBER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
    "object": "OBJECT",
}

_STOP_REASONS = {
    "STOP": "end_turn",
    "MAX_TOKENS": "max_tokens",
    "SAFETY": "content_filter",
    "RECITATION": "content_filter",
}


def convert_json_schema_to_gemini(schema: dict[str, Any]) -> dict[str, Any]:
    """Convert JSON Schema to the OpenAPI subset Gemini accepts.

    ``anyOf`` with ``null`` (optional fields) collapses to the non-null
    variant marked nullable.
    """
    if "anyOf" in schema:
        variants = [s for s in schema["anyOf"] if s.get("type") != "null"]
        converted = convert_json_schema_to_gemini(variants[0]) if variants else {}
        if len(variants) < len(schema["anyOf"]):
            converted["nullable"] = True
        if "description" in schema:
            converted["description"] = schema["description"]
        return converted

    gemini_schema: dict[str, Any] = {}
    if "type" in schema:
        gemini_schema["type"] = _TYPE_MAP.get(schema["type"], "STRING")
    if "description" in schema:
        gemini_schema["description"] = schema["description"]
    if "enum" in schema:
        gemini_schema["enum"] = [str(v) for v in schema["enum"]]
    if "const" in schema:
        gemini_schema["enum"] = [str(schema["const"])]
    if "properties" in schema:
        gemini_schema["properties"] = {
            k: convert_json_schema_to_gemini(v) for k, v in schema["properties"].items()
        }
    if "required" in schema:
        gemini_schema["required"] = schema["required"]
    if "items" in schema:
        gemini_schema["items"] = convert_json_schema_to_gemini(schema["items"])
    return gemini_schema


class GeminiClient(LLMClient):
    """Client for Google's Gemini API with tool use support."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        super().__init__(model or settings.gemini_model)
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = settings.llm_temperature if temperature is None else temperature

        self._client = genai.Client(
            api_key=api_key or settings.google_api_key.get_secret_value()
        )

    def _convert_tools_to_gemini_format(self, tools: list[dict[str, Any]]) -> list[types.Tool]:
        function_declarations = [
            types.FunctionDeclaration(
                name=tool["name"],
                description=tool["description"],
                parameters=types.Schema.model_validate(
                    convert_json_schema_to_gemini(tool["input_schema"])
                ),
            )
            for tool in tools
        ]
        return [types.Tool(function_declarations=function_declarations)]

    def _convert_messages_to_gemini_format(
        self, messages: list[dict[str, Any]]
    ) -> list[types.Content]:
        gemini_contents = []

        for msg in messages:
            if msg["role"] == "user":
                gemini_contents.append(
                    types.Content(role="user", parts=[types.Part(text=msg["content"])])
                )
            elif msg["role"] == "assistant":
                parts = []
                if msg.get("content"):
                    parts.append(types.Part(text=msg["content"]))
                for tool_call in msg.get("tool_calls", []):
                    parts.append(
                        types.Part(
                            function_call=types.FunctionCall(
                                name=tool_call["name"], args=tool_call["arguments"]
                            )
                        )
                    )
                gemini_contents.append(types.Content(role="model", parts=parts))
            elif msg["role"] == "tool_result":
                try:
                    result = json.loads(msg["content"])
                except json.JSONDecodeError:
                    result = msg["content"]
                gemini_contents.append(
                    types.Content(
                        role="user",
                        parts=[
                            types.Part(
                                function_response=types.FunctionResponse(
                                    name=msg.get("tool_name", "function"),
                                    response={"result": result},
                                )
                            )
                        ],
                    )
                )

        return gemini_contents

    def _parse_response(self, response: Any) -> LLMResponse:
        content = ""
        tool_calls: list[dict[str, Any]] = []
        stop_reason = "end_turn"

        if response.candidates:
            candidate = response.candidates[0]
            parts = candidate.content.parts if candidate.content else None
            for part in parts or []:
                if getattr(part, "text", None):
                    content += part.text
                elif getattr(part, "function_call", None):
                    fc = part.function_call
                    tool_calls.append({
                        "id": f"call_{fc.name}_{len(tool_calls)}",
                        "name": fc.name,
                        "arguments": dict(fc.args) if fc.args else {},
                    })

            finish_reason = getattr(candidate.finish_reason, "name", candidate.finish_reason)
            stop_reason = _STOP_REASONS.get(str(finish_reason), "end_turn")
            if tool_calls:
                stop_reason = "tool_use"

        usage = {"input_tokens": 0, "output_tokens": 0}
        if getattr(response, "usage_metadata", None):
            usage["input_tokens"] = response.usage_metadata.prompt_token_count or 0
            usage["output_tokens"] = response.usage_metadata.candidates_token_count or 0

        return LLMResponse(content=content, tool_calls=tool_calls, stop_reason=stop_reason, usage=usage)

    async def _generate(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
    ) -> LLMResponse:
        config = types.GenerateContentConfig(
            max_output_tokens=self._max_tokens,
            temperature=self._temperature,
            system_instruction=system_prompt,
        )
        if tools:
            config.tools = cast(
                list[types.Tool | Callable[..., Any]],
                self._convert_tools_to_gemini_format(tools),
            )

        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=cast(list[Any], self._convert_messages_to_gemini_format(messages)),
            config=config,
        )
        return self._parse_response(response)

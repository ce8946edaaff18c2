"""Prompt/inference adapter: one structured answer per request.

A request names its instructions, a JSON payload, the tools the model may
call and the contract its answer must satisfy. The adapter owns the tool
loop: it feeds tool results back to the model until the model calls the
terminal ``submit_result`` tool (or ends its turn with a JSON answer), then
decodes the answer against the output contract.
"""

import asyncio
import json
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

import structlog
from pydantic import BaseModel

from practice_flows.clients import LLMClient, create_llm_client
from practice_flows.config import FlatSettings, get_settings
from practice_flows.errors import InferenceTimeoutError, ModelOutputError
from practice_flows.schemas import decode, tool_json_schema
from practice_flows.store import DocumentStore
from practice_flows.tools import ToolContext, ToolExecutor, ToolSpec
from practice_flows.tools.data_access import utc_now

logger = structlog.get_logger(__name__)

SUBMIT_RESULT_TOOL = "submit_result"

_JSON_BLOCK = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


@dataclass
class InferenceRequest:
    name: str
    instructions: str
    payload: dict[str, Any]
    output_model: type[BaseModel]
    tools: Sequence[ToolSpec] = field(default_factory=list)


class Inference(Protocol):
    """Anything that can turn an InferenceRequest into a validated answer."""

    async def infer(self, request: InferenceRequest) -> BaseModel: ...


def parse_json(text: str) -> Any | None:
    """Extract a JSON value from model text.

    Handles ```json fenced blocks, bare JSON, and a JSON object surrounded by
    explanation text.
    """
    if not text:
        return None

    match = _JSON_BLOCK.search(text)
    if match:
        try:
            return json.loads(match.group(1).strip())
        except json.JSONDecodeError:
            pass

    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        pass

    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            return None
    return None


def submit_result_definition(output_model: type[BaseModel]) -> dict[str, Any]:
    return {
        "name": SUBMIT_RESULT_TOOL,
        "description": (
            "Submit the final answer. Call this exactly once, when you are done, "
            "with arguments matching the required output format."
        ),
        "input_schema": tool_json_schema(output_model),
    }


def render_prompt(request: InferenceRequest) -> str:
    return (
        f"Input:\n```json\n{json.dumps(request.payload, indent=2, ensure_ascii=False)}\n```\n\n"
        f"When finished, call `{SUBMIT_RESULT_TOOL}` with your answer."
    )


class InferenceAdapter:
    """Runs the model tool loop against the store.

    Stateless per call: each request gets its own conversation and its own
    ToolExecutor restricted to the request's tools.
    """

    def __init__(
        self,
        store: DocumentStore,
        client: LLMClient | None = None,
        settings: FlatSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.client = client or create_llm_client(self.settings.llm_provider)
        self.clock = clock

    async def infer(self, request: InferenceRequest) -> BaseModel:
        timeout = self.settings.inference_timeout
        try:
            return await asyncio.wait_for(self._run(request), timeout)
        except TimeoutError as e:
            logger.warning("inference_timeout", request=request.name, timeout=timeout)
            raise InferenceTimeoutError(
                f"Inference '{request.name}' timed out after {timeout}s"
            ) from e

    async def _run(self, request: InferenceRequest) -> BaseModel:
        log = logger.bind(request=request.name)
        executor = ToolExecutor(
            ToolContext(
                store=self.store,
                clock=self.clock,
                default_engagement_hours=self.settings.default_engagement_hours,
            ),
            request.tools,
            timeout=self.settings.tool_timeout,
        )
        tools = executor.definitions() + [submit_result_definition(request.output_model)]
        messages: list[dict[str, Any]] = [{"role": "user", "content": render_prompt(request)}]

        for round_number in range(self.settings.max_tool_rounds + 1):
            response = await self.client.generate(
                system_prompt=request.instructions,
                messages=messages,
                tools=tools,
            )
            messages.append({
                "role": "assistant",
                "content": response.content,
                "tool_calls": response.tool_calls,
            })

            if not response.tool_calls:
                log.debug("answer_from_text", rounds=round_number)
                answer = parse_json(response.content)
                if answer is None:
                    raise ModelOutputError(
                        f"Model returned no usable answer for '{request.name}'"
                    )
                return decode(request.output_model, answer, source="output")

            for call in response.tool_calls:
                if call["name"] == SUBMIT_RESULT_TOOL:
                    log.debug("answer_submitted", rounds=round_number)
                    return decode(request.output_model, call["arguments"], source="output")

            for call in response.tool_calls:
                result = await executor.execute(call["name"], call["arguments"])
                messages.append({
                    "role": "tool_result",
                    "tool_call_id": call["id"],
                    "tool_name": call["name"],
                    "content": json.dumps(result, ensure_ascii=False),
                })

        raise ModelOutputError(
            f"Model exceeded {self.settings.max_tool_rounds} tool rounds for '{request.name}'"
        )

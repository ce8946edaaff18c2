"""Base class for flow orchestrators.

A flow is one named operation with a closed input and output contract. Every
invocation runs Gather -> Infer -> Validate -> Apply:

- the payload is decoded before anything touches the store,
- Gather reads what the prompt needs and fails on missing references,
- Infer hands the facts to the model together with the flow's tools,
- Validate enforces the rules the output schema cannot express,
- Apply commits side effects, only after everything above succeeded.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

import structlog
from structlog.contextvars import bound_contextvars

from practice_flows.config import FlatSettings, get_settings
from practice_flows.errors import FlowError
from practice_flows.inference import Inference, InferenceRequest
from practice_flows.schemas import Contract, decode
from practice_flows.store import DocumentStore, new_id
from practice_flows.tools import ToolContext, ToolSpec
from practice_flows.tools.data_access import utc_now

logger = structlog.get_logger(__name__)

InputT = TypeVar("InputT", bound=Contract)
OutputT = TypeVar("OutputT", bound=Contract)


class Flow(ABC, Generic[InputT, OutputT]):
    """One named, schema-checked operation over the practice store."""

    name: ClassVar[str]
    description: ClassVar[str] = ""
    input_model: ClassVar[type[Contract]]
    output_model: ClassVar[type[Contract]]
    instructions: ClassVar[str] = ""
    tools: ClassVar[Sequence[ToolSpec]] = ()

    def __init__(
        self,
        store: DocumentStore,
        inference: Inference | None = None,
        settings: FlatSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.inference = inference
        self.settings = settings or get_settings()
        self.clock = clock
        self._logger = logger.bind(flow=self.name)

    def tool_context(self) -> ToolContext:
        return ToolContext(
            store=self.store,
            clock=self.clock,
            default_engagement_hours=self.settings.default_engagement_hours,
        )

    async def __call__(self, payload: Any) -> dict[str, Any]:
        """Decode ``payload``, run the flow and return the JSON-able output."""
        request = decode(self.input_model, payload)

        with bound_contextvars(flow=self.name, invocation_id=new_id()):
            self._logger.info("flow_started")
            try:
                output = self.validated(await self.run(request))
            except FlowError as e:
                self._logger.warning(
                    "flow_failed", error_type=type(e).__name__, error=str(e)
                )
                raise
            self._logger.info("flow_completed")

        return output.to_payload()

    def validated(self, output: Contract) -> OutputT:
        """Re-check an output against ``output_model`` after code has amended it."""
        return decode(self.output_model, output.model_dump(by_alias=True), source="output")

    @abstractmethod
    async def run(self, request: InputT) -> OutputT:
        """Flow body; receives the decoded input."""

    async def infer(self, payload: dict[str, Any]) -> OutputT:
        """Ask the model for an answer matching ``output_model``."""
        if self.inference is None:
            raise FlowError(f"Flow '{self.name}' needs an inference backend")

        self._logger.info("flow_gathered", payload_keys=sorted(payload))
        answer = await self.inference.infer(
            InferenceRequest(
                name=self.name,
                instructions=self.instructions,
                payload=payload,
                output_model=self.output_model,
                tools=self.tools,
            )
        )
        self._logger.info("flow_inferred")
        return decode(self.output_model, answer, source="output")

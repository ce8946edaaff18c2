"""Error taxonomy shared by tools, inference and flows."""

from typing import Any


class FlowError(Exception):
    """Base exception for every failure a flow invocation can surface."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class InputValidationError(FlowError):
    """Caller payload failed its input schema.

    ``fields`` holds the dotted paths of every offending field.
    """

    def __init__(self, message: str, fields: list[str] | None = None, details: Any = None):
        super().__init__(message, details)
        self.fields = fields or []


class MissingReferenceError(FlowError):
    """A record the flow needs does not exist in the store."""

    def __init__(self, collection: str, record_id: str, message: str | None = None):
        super().__init__(message or f"{collection} record '{record_id}' not found")
        self.collection = collection
        self.record_id = record_id


class ModelOutputError(FlowError):
    """The model returned nothing, or something that fails the output schema."""

    pass


class InferenceTimeoutError(FlowError):
    """The inference call did not finish within the configured timeout."""

    pass


class ToolExecutionError(FlowError):
    """A tool call made on behalf of the model failed."""

    def __init__(self, tool_name: str, message: str, details: Any = None):
        super().__init__(f"Tool '{tool_name}' failed: {message}", details)
        self.tool_name = tool_name


class ToolTimeoutError(ToolExecutionError):
    """A tool call exceeded the configured tool timeout."""

    pass


class StoreError(Exception):
    """Document store transport or protocol failure."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details

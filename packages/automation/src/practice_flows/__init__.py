"""Practice Flows - AI workflow automation for a Chartered Accountancy practice."""

__version__ = "0.1.0"

from practice_flows.clients import ClaudeClient, GeminiClient, OpenAIClient, create_llm_client
from practice_flows.config import configure_logging, get_settings
from practice_flows.errors import (
    FlowError,
    InferenceTimeoutError,
    InputValidationError,
    MissingReferenceError,
    ModelOutputError,
    StoreError,
    ToolExecutionError,
    ToolTimeoutError,
)
from practice_flows.flows import FLOWS, Flow, build_flows
from practice_flows.inference import InferenceAdapter
from practice_flows.store import FirestoreStore, InMemoryStore, create_store
from practice_flows.tools import ToolExecutor

__all__ = [
    # Version
    "__version__",
    # Flows
    "FLOWS",
    "Flow",
    "build_flows",
    "InferenceAdapter",
    # LLM Clients
    "ClaudeClient",
    "OpenAIClient",
    "GeminiClient",
    "create_llm_client",
    # Store
    "InMemoryStore",
    "FirestoreStore",
    "create_store",
    # Tools
    "ToolExecutor",
    # Errors
    "FlowError",
    "InputValidationError",
    "MissingReferenceError",
    "ModelOutputError",
    "InferenceTimeoutError",
    "ToolExecutionError",
    "ToolTimeoutError",
    "StoreError",
    # Config
    "get_settings",
    "configure_logging",
]

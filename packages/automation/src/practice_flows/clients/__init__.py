"""LLM client implementations."""

from practice_flows.clients.base import LLMClient, LLMResponse
from practice_flows.clients.claude import ClaudeClient
from practice_flows.clients.gemini import GeminiClient
from practice_flows.clients.openai_client import OpenAIClient
from practice_flows.config import get_settings

_CLIENTS: dict[str, type[LLMClient]] = {
    "claude": ClaudeClient,
    "openai": OpenAIClient,
    "gemini": GeminiClient,
}


def create_llm_client(provider: str | None = None) -> LLMClient:
    """Build the client for ``provider`` (default: ``LLM_PROVIDER``)."""
    name = provider or get_settings().llm_provider
    try:
        client_class = _CLIENTS[name]
    except KeyError:
        raise ValueError(f"Unknown LLM provider: {name!r}") from None
    return client_class()


__all__ = [
    "LLMClient",
    "LLMResponse",
    "ClaudeClient",
    "OpenAIClient",
    "GeminiClient",
    "create_llm_client",
]

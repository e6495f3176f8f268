"""Ask an LLM questions about a block of text."""

from .llm_client import (
    CompletionClient,
    CompletionConfig,
    MalformedResponseError,
    ProviderError,
    ProviderErrorOpaque,
    QueryError,
    TransportError,
    build_request,
)

__all__ = [
    "CompletionClient",
    "CompletionConfig",
    "MalformedResponseError",
    "ProviderError",
    "ProviderErrorOpaque",
    "QueryError",
    "TransportError",
    "build_request",
]

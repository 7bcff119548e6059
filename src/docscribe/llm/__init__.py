"""LLM integration for docscribe.

Provides a LiteLLM-backed generation provider, retry with exponential
backoff, and a primary/fallback gateway.

Temperature is fixed at 0 for reproducible suggestions.
"""

from docscribe.llm.client import LiteLLMProvider, ProviderResponse, create_provider
from docscribe.llm.gateway import (
    FAILURE_THRESHOLD,
    GatewayResponse,
    GenerationProvider,
    ProviderGateway,
    ProviderRoute,
    build_gateway,
)
from docscribe.llm.retry import (
    RetryPolicy,
    execute_with_retry,
    is_fatal_error,
    is_transient_error,
)
from docscribe.llm.secrets import SecretStore, mask_api_key

__all__ = [
    "FAILURE_THRESHOLD",
    "GatewayResponse",
    "GenerationProvider",
    "LiteLLMProvider",
    "ProviderGateway",
    "ProviderResponse",
    "ProviderRoute",
    "RetryPolicy",
    "SecretStore",
    "build_gateway",
    "create_provider",
    "execute_with_retry",
    "is_fatal_error",
    "is_transient_error",
    "mask_api_key",
]

"""Primary/fallback provider routing.

The gateway sends every call to the primary provider until the primary has
failed FAILURE_THRESHOLD times in a row, then switches to the fallback (when
one is configured) for the rest of the run. Each call is wrapped in the
retry policy, so "one failure" means one symbol whose retries were exhausted
or that hit a fatal error.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from docscribe.config import DocscribeConfig
from docscribe.exceptions import ConfigurationError, GenerationCancelledError
from docscribe.llm.client import LiteLLMProvider, ProviderResponse
from docscribe.llm.retry import RetryPolicy, execute_with_retry
from docscribe.llm.secrets import SecretStore
from docscribe.models.llm_config import LLMConfig
from docscribe.models.symbols import ApiContext

logger = logging.getLogger(__name__)

FAILURE_THRESHOLD = 5


class GenerationProvider(Protocol):
    """Capabilities shared by primary and fallback providers."""

    @property
    def name(self) -> str: ...

    @property
    def model(self) -> str: ...

    async def generate(self, context: ApiContext) -> ProviderResponse: ...

    def estimate_cost(self, context: ApiContext) -> float: ...

    def is_available(self) -> bool: ...


class ProviderRoute(Enum):
    """Which provider the gateway is routing to."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass
class GatewayResponse:
    """A provider response annotated with routing and cost.

    Attributes:
        text: Generated docstring body
        tokens_used: Total tokens reported by the provider
        cost: Estimated cost in USD
        provider: Provider that answered
        model: Model that answered
        route: Route the call took
    """

    text: str
    tokens_used: int
    cost: float
    provider: str
    model: str
    route: ProviderRoute


class ProviderGateway:
    """Routes generation calls between a primary and an optional fallback.

    The consecutive-failure counter is shared by every concurrent worker of a
    batch and is only read or modified under the gateway lock.
    """

    def __init__(
        self,
        primary: GenerationProvider,
        fallback: GenerationProvider | None = None,
        retry_policy: RetryPolicy | None = None,
        failure_threshold: int = FAILURE_THRESHOLD,
    ) -> None:
        """Initialize the gateway.

        Args:
            primary: Provider used first
            fallback: Provider used after the primary keeps failing
            retry_policy: Per-call retry settings
            failure_threshold: Consecutive primary failures before switching
        """
        if failure_threshold < 1:
            raise ValueError(f"failure_threshold must be at least 1. Got: {failure_threshold}")
        self.primary = primary
        self.fallback = fallback
        self.retry_policy = retry_policy or RetryPolicy()
        self.failure_threshold = failure_threshold
        self._route = ProviderRoute.PRIMARY
        self._consecutive_failures = 0
        self._lock = asyncio.Lock()

    @property
    def route(self) -> ProviderRoute:
        """Current route."""
        return self._route

    @property
    def active_provider(self) -> GenerationProvider:
        """Provider that new calls are sent to."""
        if self._route == ProviderRoute.FALLBACK and self.fallback is not None:
            return self.fallback
        return self.primary

    @property
    def consecutive_failures(self) -> int:
        """Primary failures since the last primary success."""
        return self._consecutive_failures

    def ensure_available(self) -> None:
        """Fail fast when no configured provider has credentials.

        When only the fallback is usable, routing starts on the fallback.

        Raises:
            ConfigurationError: If neither provider is usable
        """
        if self.primary.is_available():
            return

        if self.fallback is not None and self.fallback.is_available():
            logger.warning(
                "Primary provider '%s' has no credentials; using fallback '%s'",
                self.primary.name,
                self.fallback.name,
            )
            self._route = ProviderRoute.FALLBACK
            return

        names = [self.primary.name] + ([self.fallback.name] if self.fallback else [])
        raise ConfigurationError(
            f"No usable LLM provider: missing credentials for {', '.join(names)}"
        )

    async def _select_route(self) -> ProviderRoute:
        async with self._lock:
            return self._route

    def _provider_for(self, route: ProviderRoute) -> GenerationProvider:
        if route == ProviderRoute.PRIMARY:
            return self.primary
        if self.fallback is None:
            raise ConfigurationError(
                "Fallback route selected but no fallback provider is configured"
            )
        return self.fallback

    async def _record_success(self, route: ProviderRoute) -> None:
        if route != ProviderRoute.PRIMARY:
            return
        async with self._lock:
            self._consecutive_failures = 0

    async def _record_failure(self, route: ProviderRoute) -> None:
        if route != ProviderRoute.PRIMARY:
            return
        async with self._lock:
            self._consecutive_failures += 1
            if (
                self._consecutive_failures >= self.failure_threshold
                and self.fallback is not None
                and self._route == ProviderRoute.PRIMARY
            ):
                self._route = ProviderRoute.FALLBACK
                logger.warning(
                    "Primary provider '%s' failed %d consecutive times, switching to fallback '%s'",
                    self.primary.name,
                    self._consecutive_failures,
                    self.fallback.name,
                )

    async def generate(
        self,
        context: ApiContext,
        cancel_event: asyncio.Event | None = None,
    ) -> GatewayResponse:
        """Generate documentation for one symbol.

        Args:
            context: Collected evidence for the symbol
            cancel_event: Set to abort backoff waits and in-flight calls

        Returns:
            GatewayResponse from whichever provider answered

        Raises:
            GenerationCancelledError: If cancelled
            ConfigurationError: If the fallback route has no provider
            Exception: The provider's last error once retries are exhausted
        """
        route = await self._select_route()
        provider = self._provider_for(route)

        try:
            response = await execute_with_retry(
                lambda: provider.generate(context),
                self.retry_policy,
                cancel_event=cancel_event,
                description=f"{provider.name} call for {context.symbol_id}",
            )
        except GenerationCancelledError:
            raise
        except Exception:
            await self._record_failure(route)
            raise

        await self._record_success(route)

        try:
            cost = provider.estimate_cost(context)
        except Exception as e:
            logger.debug("Cost estimation failed for %s: %s", context.symbol_id, e)
            cost = 0.0

        return GatewayResponse(
            text=response.text,
            tokens_used=response.tokens_used,
            cost=cost,
            provider=provider.name,
            model=response.model or provider.model,
            route=route,
        )


def build_gateway(
    config: DocscribeConfig,
    secret_store: SecretStore | None = None,
    provider: str | None = None,
    fallback_provider: str | None = None,
) -> ProviderGateway:
    """Create a gateway from configuration and per-run overrides.

    Args:
        config: Resolved configuration
        secret_store: Credential lookup
        provider: Primary provider override
        fallback_provider: Fallback provider override

    Returns:
        Configured ProviderGateway

    Raises:
        ConfigurationError: If an override names an unknown provider
    """
    secret_store = secret_store or SecretStore()
    try:
        primary_config = config.primary
        if provider and provider.lower() != primary_config.provider:
            primary_config = LLMConfig(provider=provider, max_tokens=primary_config.max_tokens)

        fallback_config = config.fallback
        if fallback_provider and (
            fallback_config is None or fallback_provider.lower() != fallback_config.provider
        ):
            fallback_config = LLMConfig(
                provider=fallback_provider, max_tokens=primary_config.max_tokens
            )

        retry = config.generation.retry
        retry_policy = RetryPolicy(
            max_attempts=retry.max_attempts,
            initial_delay=retry.initial_delay,
            backoff_multiplier=retry.backoff_multiplier,
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    return ProviderGateway(
        primary=LiteLLMProvider(primary_config, secret_store),
        fallback=LiteLLMProvider(fallback_config, secret_store) if fallback_config else None,
        retry_policy=retry_policy,
    )

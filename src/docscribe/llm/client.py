"""Generation provider backed by LiteLLM.

Provides a consistent interface for multiple LLM providers:
- generate(context): one docstring per call
- estimate_cost(context): local price estimate, never a network call
- is_available(): local credential check

Temperature is fixed at 0 so repeated runs produce the same suggestions.
"""

import logging
from dataclasses import dataclass

import litellm

from docscribe.exceptions import ProviderError
from docscribe.llm.prompts import build_messages
from docscribe.llm.secrets import SecretStore
from docscribe.models.llm_config import LLMConfig
from docscribe.models.symbols import ApiContext

logger = logging.getLogger(__name__)

# Output size assumed when estimating cost before a call
ESTIMATED_OUTPUT_TOKENS = 500


@dataclass
class ProviderResponse:
    """Response from one generation call.

    Attributes:
        text: Generated docstring body
        tokens_used: Total tokens reported by the provider
        model: Model that generated the response
        finish_reason: Reason for completion (stop, length, etc.)
    """

    text: str
    tokens_used: int
    model: str
    finish_reason: str | None = None


class LiteLLMProvider:
    """Docstring generation provider using LiteLLM.

    Supports Claude (Anthropic), OpenAI, Gemini, Ollama (local) and Bedrock
    through a single interface.
    """

    def __init__(self, config: LLMConfig, secret_store: SecretStore | None = None) -> None:
        """Initialize the provider.

        Args:
            config: Provider, model and credential settings
            secret_store: Credential lookup for keys absent from config
        """
        self.config = config
        self._secrets = secret_store or SecretStore()

    @property
    def name(self) -> str:
        """Provider name (e.g., "claude")."""
        return self.config.provider

    @property
    def model(self) -> str:
        """Model identifier."""
        return self.config.model

    def _api_key(self) -> str | None:
        return self.config.api_key or self._secrets.get_api_key(self.config.provider)

    def is_available(self) -> bool:
        """Check that credentials are present, without a network round-trip."""
        return self._secrets.has_credentials(self.config.provider, self.config.api_key)

    async def generate(self, context: ApiContext) -> ProviderResponse:
        """Generate a docstring for one symbol.

        Args:
            context: Collected evidence for the symbol

        Returns:
            ProviderResponse with the docstring body

        Raises:
            ProviderError: If the call fails; status_code is preserved for
                retry classification
        """
        completion_kwargs: dict = {
            "model": self.config.get_litellm_model_name(),
            "messages": build_messages(context),
            "temperature": 0,
            "max_tokens": self.config.max_tokens,
        }
        api_key = self._api_key()
        if api_key:
            completion_kwargs["api_key"] = api_key
        if self.config.api_base:
            completion_kwargs["api_base"] = self.config.api_base

        try:
            response = await litellm.acompletion(**completion_kwargs)
        except litellm.exceptions.AuthenticationError as e:
            raise ProviderError(
                f"Authentication failed for {self.name}: {e}",
                provider=self.name,
                status_code=getattr(e, "status_code", 401),
            ) from e
        except litellm.exceptions.RateLimitError as e:
            raise ProviderError(
                f"Rate limit exceeded for {self.name}: {e}",
                provider=self.name,
                status_code=getattr(e, "status_code", 429),
            ) from e
        except litellm.exceptions.APIConnectionError as e:
            raise ProviderError(
                f"Connection failed to {self.name}: {e}",
                provider=self.name,
                status_code=getattr(e, "status_code", 503),
            ) from e
        except Exception as e:
            raise ProviderError(
                f"Completion failed for {self.name}: {e}",
                provider=self.name,
                status_code=getattr(e, "status_code", None),
            ) from e

        choice = response.choices[0]
        text = (choice.message.content or "").strip()
        if not text:
            raise ProviderError(f"{self.name} returned an empty response", provider=self.name)

        tokens_used = 0
        if getattr(response, "usage", None):
            tokens_used = response.usage.total_tokens or 0

        return ProviderResponse(
            text=text,
            tokens_used=tokens_used,
            model=response.model or self.model,
            finish_reason=choice.finish_reason,
        )

    def estimate_cost(self, context: ApiContext) -> float:
        """Estimate the USD cost of generating documentation for a symbol.

        Uses LiteLLM's pricing table with the context's token estimate and a
        fixed output allowance. Unknown models cost 0.0.

        Args:
            context: Collected evidence for the symbol

        Returns:
            Estimated cost in USD
        """
        try:
            prompt_cost, completion_cost = litellm.cost_per_token(
                model=self.config.get_litellm_model_name(),
                prompt_tokens=context.token_estimate,
                completion_tokens=ESTIMATED_OUTPUT_TOKENS,
            )
        except Exception as e:
            logger.debug("No pricing for %s: %s", self.config.get_litellm_model_name(), e)
            return 0.0
        return float(prompt_cost) + float(completion_cost)


def create_provider(config: LLMConfig, secret_store: SecretStore | None = None) -> LiteLLMProvider:
    """Create a provider from configuration.

    Args:
        config: Provider configuration
        secret_store: Credential lookup

    Returns:
        Configured LiteLLMProvider instance
    """
    return LiteLLMProvider(config, secret_store)

"""LLM provider configuration.

One LLMConfig describes one provider/model pair; a run uses a primary
config and optionally a fallback config.
"""

from dataclasses import dataclass, field
from typing import Any

VALID_PROVIDERS = frozenset({"claude", "openai", "gemini", "ollama", "bedrock"})

# Providers that authenticate with an API key
KEYED_PROVIDERS = frozenset({"claude", "openai", "gemini"})

DEFAULT_MODELS = {
    "claude": "claude-sonnet-4-20250514",
    "openai": "gpt-4o-mini",
    "gemini": "gemini-2.0-flash",
    "ollama": "llama3.2",
    "bedrock": "anthropic.claude-3-5-sonnet-20240620-v1:0",
}

DEFAULT_OLLAMA_BASE = "http://localhost:11434"


@dataclass
class LLMConfig:
    """Configuration for one LLM provider.

    Credentials are not required at construction time; whether a provider is
    usable is decided by the availability check before a run starts.

    Attributes:
        provider: LLM provider (claude, openai, gemini, ollama, bedrock)
        model: Model identifier (e.g., "claude-sonnet-4-20250514")
        api_key: API key; resolved from the environment when omitted
        api_base: API base URL (Ollama and self-hosted gateways)
        temperature: Temperature setting (must be 0 for reproducibility)
        max_tokens: Maximum response tokens
    """

    provider: str
    model: str = ""
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = field(default=0.0)
    max_tokens: int = field(default=1024)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.provider = self.provider.lower().strip()

        if self.provider not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid provider '{self.provider}'. "
                f"Must be one of: {sorted(VALID_PROVIDERS)}"
            )

        self.model = (self.model or "").strip() or DEFAULT_MODELS[self.provider]

        # Same symbol + same context should yield the same docstring
        if self.temperature != 0.0:
            raise ValueError(
                f"Temperature must be 0 for reproducible output. Got: {self.temperature}"
            )

        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive. Got: {self.max_tokens}")

        if self.provider == "ollama" and not self.api_base:
            self.api_base = DEFAULT_OLLAMA_BASE

    @property
    def requires_api_key(self) -> bool:
        """True for providers that authenticate with an API key."""
        return self.provider in KEYED_PROVIDERS

    def to_dict(self, include_secrets: bool = False) -> dict[str, Any]:
        """Convert to dictionary for serialization.

        Args:
            include_secrets: Include the API key verbatim

        Returns:
            Dictionary representation of the configuration
        """
        return {
            "provider": self.provider,
            "model": self.model,
            "api_key": self.api_key if include_secrets else None,
            "api_base": self.api_base,
            "max_tokens": self.max_tokens,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LLMConfig":
        """Create LLMConfig from dictionary.

        Args:
            data: Dictionary with configuration values

        Returns:
            LLMConfig instance
        """
        return cls(
            provider=str(data.get("provider", "")),
            model=str(data.get("model") or ""),
            api_key=data.get("api_key") or None,
            api_base=data.get("api_base") or None,
            temperature=float(data.get("temperature", 0.0)),
            max_tokens=int(data.get("max_tokens", 1024)),
        )

    def get_litellm_model_name(self) -> str:
        """Get the model name in LiteLLM format.

        Returns:
            Model name formatted for LiteLLM
        """
        prefixes = {
            "claude": "anthropic",
            "openai": "openai",
            "gemini": "gemini",
            "ollama": "ollama",
            "bedrock": "bedrock",
        }
        prefix = prefixes[self.provider]
        if self.model.startswith(f"{prefix}/"):
            return self.model
        return f"{prefix}/{self.model}"

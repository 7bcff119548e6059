"""Provider credential lookup.

The store reads the environment. A key in the config file (saved by
`docscribe config set-api-key`, or referenced through ${VAR} substitution)
takes precedence and is passed in by the caller.
Lookup order per provider:
1. DOCSCRIBE_API_KEY_<PROVIDER>
2. The provider's conventional variable (ANTHROPIC_API_KEY, ...)
"""

import os
from collections.abc import Mapping

from docscribe.models.llm_config import KEYED_PROVIDERS

ENV_PREFIX = "DOCSCRIBE_API_KEY_"

STANDARD_KEY_VARS = {
    "claude": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}

AWS_CREDENTIAL_VARS = ("AWS_ACCESS_KEY_ID", "AWS_PROFILE", "AWS_WEB_IDENTITY_TOKEN_FILE")


def mask_api_key(api_key: str | None) -> str:
    """Mask an API key for display, keeping the last four characters.

    Args:
        api_key: Key to mask

    Returns:
        "****" followed by the last four characters, or "****" for short keys
    """
    if not api_key or len(api_key) <= 4:
        return "****"
    return f"****{api_key[-4:]}"


class SecretStore:
    """Resolves provider credentials from an environment mapping."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        """Initialize the store.

        Args:
            env: Environment mapping (defaults to os.environ, read lazily)
        """
        self._env = env

    @property
    def env(self) -> Mapping[str, str]:
        return os.environ if self._env is None else self._env

    def get_api_key(self, provider: str) -> str | None:
        """Return the API key for a provider, if one is set."""
        provider = provider.lower()
        for var_name in (f"{ENV_PREFIX}{provider.upper()}", STANDARD_KEY_VARS.get(provider)):
            if var_name and self.env.get(var_name):
                return self.env[var_name]
        return None

    def has_credentials(self, provider: str, api_key: str | None = None) -> bool:
        """Check whether a provider can authenticate, without any network call.

        Args:
            provider: Provider name
            api_key: Key already present in configuration, if any

        Returns:
            True when credentials are available (always True for Ollama)
        """
        provider = provider.lower()
        if provider in KEYED_PROVIDERS:
            return bool(api_key or self.get_api_key(provider))
        if provider == "bedrock":
            return any(self.env.get(var) for var in AWS_CREDENTIAL_VARS)
        return True

    def describe(self, provider: str) -> str:
        """Short credential status for display."""
        key = self.get_api_key(provider)
        if key:
            return f"key {mask_api_key(key)}"
        if self.has_credentials(provider):
            return "no key required"
        expected = STANDARD_KEY_VARS.get(provider.lower(), "AWS credentials")
        return f"missing (set {ENV_PREFIX}{provider.upper()} or {expected})"

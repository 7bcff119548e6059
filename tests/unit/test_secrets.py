"""Unit tests for provider credential lookup."""

import pytest

from docscribe.llm.secrets import SecretStore, mask_api_key


class TestMaskApiKey:
    """Tests for mask_api_key."""

    def test_keeps_last_four(self) -> None:
        """Test only the last four characters stay visible."""
        assert mask_api_key("sk-ant-1234567890abcd") == "****abcd"

    @pytest.mark.parametrize("key", [None, "", "abc", "abcd"])
    def test_short_keys_fully_masked(self, key: str | None) -> None:
        """Test short or missing keys reveal nothing."""
        assert mask_api_key(key) == "****"


class TestSecretStore:
    """Tests for SecretStore."""

    def test_docscribe_variable_wins(self) -> None:
        """Test DOCSCRIBE_API_KEY_<PROVIDER> takes precedence."""
        store = SecretStore(
            env={"DOCSCRIBE_API_KEY_CLAUDE": "specific", "ANTHROPIC_API_KEY": "standard"}
        )

        assert store.get_api_key("claude") == "specific"

    def test_standard_variable(self) -> None:
        """Test the provider's conventional variable is used."""
        store = SecretStore(env={"OPENAI_API_KEY": "sk-openai"})

        assert store.get_api_key("OpenAI") == "sk-openai"
        assert store.get_api_key("claude") is None

    def test_keyed_provider_credentials(self) -> None:
        """Test keyed providers need a key from config or environment."""
        store = SecretStore(env={})

        assert not store.has_credentials("claude")
        assert store.has_credentials("claude", api_key="from-config")

    def test_ollama_needs_nothing(self) -> None:
        """Test Ollama is always considered available."""
        assert SecretStore(env={}).has_credentials("ollama")

    def test_bedrock_uses_aws_credentials(self) -> None:
        """Test Bedrock checks for AWS credentials."""
        assert not SecretStore(env={}).has_credentials("bedrock")
        assert SecretStore(env={"AWS_PROFILE": "dev"}).has_credentials("bedrock")

    def test_describe(self) -> None:
        """Test credential status descriptions never show the key."""
        store = SecretStore(env={"GEMINI_API_KEY": "gem-key-5678"})

        assert store.describe("gemini") == "key ****5678"
        assert store.describe("ollama") == "no key required"
        assert "ANTHROPIC_API_KEY" in store.describe("claude")

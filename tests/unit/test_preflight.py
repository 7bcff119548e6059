"""Unit tests for preflight validation."""

from unittest.mock import MagicMock

import pytest

from docscribe.config import DocscribeConfig
from docscribe.llm.secrets import SecretStore
from docscribe.models.llm_config import LLMConfig
from docscribe.utils.preflight import PreflightChecker, PreflightResult, ToolCheck


@pytest.fixture
def parser() -> MagicMock:
    """Return a parser whose grammar loads."""
    parser = MagicMock()
    parser.check_available.return_value = True
    return parser


class TestPreflightResult:
    """Tests for PreflightResult.add_check."""

    def test_required_failure_is_error(self) -> None:
        """Test a failed required check fails the result."""
        result = PreflightResult()

        result.add_check(ToolCheck(name="tree-sitter", available=False, message="missing"))

        assert not result.success
        assert result.errors == ["tree-sitter: missing"]

    def test_optional_failure_is_warning(self) -> None:
        """Test a failed optional check only warns."""
        result = PreflightResult()

        result.add_check(ToolCheck(name="fallback", available=False, required=False, message="x"))

        assert result.success
        assert result.warnings == ["fallback: x"]


class TestPreflightChecker:
    """Tests for PreflightChecker.check_all."""

    def test_all_available(self, parser: MagicMock) -> None:
        """Test a keyed primary and a loaded grammar pass."""
        checker = PreflightChecker(SecretStore(env={"ANTHROPIC_API_KEY": "sk-1234"}), parser)

        result = checker.check_all(DocscribeConfig())

        assert result.success
        assert result.warnings == []
        assert [c.name for c in result.checks][0] == "tree-sitter"

    def test_missing_primary_key(self, parser: MagicMock) -> None:
        """Test a primary without credentials and no fallback fails."""
        checker = PreflightChecker(SecretStore(env={}), parser)

        result = checker.check_all(DocscribeConfig())

        assert not result.success
        assert "ANTHROPIC_API_KEY" in result.errors[0]

    def test_fallback_covers_missing_primary(self, parser: MagicMock) -> None:
        """Test a usable fallback makes the primary optional."""
        config = DocscribeConfig(fallback=LLMConfig(provider="ollama"))
        checker = PreflightChecker(SecretStore(env={}), parser)

        result = checker.check_all(config)

        assert result.success
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("primary provider (claude/")

    def test_missing_grammar(self, parser: MagicMock) -> None:
        """Test an unloadable grammar fails the check."""
        parser.check_available.return_value = False
        checker = PreflightChecker(SecretStore(env={"ANTHROPIC_API_KEY": "sk-1234"}), parser)

        result = checker.check_all(DocscribeConfig())

        assert not result.success
        assert "tree-sitter-language-pack" in result.errors[0]

    def test_key_never_reported(self, parser: MagicMock) -> None:
        """Test check messages mask the key."""
        checker = PreflightChecker(SecretStore(env={"ANTHROPIC_API_KEY": "sk-secret-9876"}), parser)

        result = checker.check_all(DocscribeConfig())

        assert "sk-secret" not in str(result.to_dict())
        assert "****9876" in result.checks[1].message

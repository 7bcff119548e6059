"""Preflight validation.

Checks run by `docscribe check` before any generation: the tree-sitter
grammar used for analysis and writing, and credentials for the configured
providers. Credential checks are local; no provider is contacted.
"""

import importlib.metadata
from dataclasses import dataclass, field
from typing import Any

from docscribe.analyzers.tree import PythonSourceParser
from docscribe.config import DocscribeConfig
from docscribe.llm.secrets import SecretStore
from docscribe.models.llm_config import LLMConfig


@dataclass
class ToolCheck:
    """Result of checking a single dependency.

    Attributes:
        name: Dependency name
        available: Whether it is usable
        version: Installed version if known
        required: Whether the run cannot proceed without it
        message: Status message (human-readable context)
    """

    name: str
    available: bool
    version: str | None = None
    required: bool = True
    message: str = ""


@dataclass
class PreflightResult:
    """Result of preflight validation.

    Attributes:
        success: Whether all required checks passed
        checks: Individual check results
        errors: Messages for failed required checks
        warnings: Messages for failed optional checks
    """

    success: bool = True
    checks: list[ToolCheck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_check(self, check: ToolCheck) -> None:
        """Add a check result."""
        self.checks.append(check)

        if not check.available:
            if check.required:
                self.success = False
                self.errors.append(f"{check.name}: {check.message}")
            else:
                self.warnings.append(f"{check.name}: {check.message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "checks": [
                {
                    "name": c.name,
                    "available": c.available,
                    "version": c.version,
                    "required": c.required,
                    "message": c.message,
                }
                for c in self.checks
            ],
            "errors": self.errors,
            "warnings": self.warnings,
        }


def _package_version(distribution: str) -> str | None:
    try:
        return importlib.metadata.version(distribution)
    except importlib.metadata.PackageNotFoundError:
        return None


class PreflightChecker:
    """Validates dependencies and credentials before a run.

    Usage:
        checker = PreflightChecker()
        result = checker.check_all(config)
        if not result.success:
            raise typer.Exit(1)
    """

    def __init__(
        self,
        secret_store: SecretStore | None = None,
        parser: PythonSourceParser | None = None,
    ) -> None:
        self.secret_store = secret_store or SecretStore()
        self.parser = parser or PythonSourceParser()

    def check_tree_sitter(self) -> ToolCheck:
        """Check that the tree-sitter Python grammar loads."""
        available = self.parser.check_available()
        return ToolCheck(
            name="tree-sitter",
            available=available,
            version=_package_version("tree-sitter-language-pack"),
            message="Python grammar loaded"
            if available
            else "Install with: pip install tree-sitter-language-pack",
        )

    def check_provider(self, config: LLMConfig, role: str, required: bool) -> ToolCheck:
        """Check credentials of one provider.

        Args:
            config: Provider configuration
            role: "primary" or "fallback"
            required: Whether a missing credential fails the check

        Returns:
            ToolCheck result
        """
        available = self.secret_store.has_credentials(config.provider, config.api_key)
        return ToolCheck(
            name=f"{role} provider ({config.provider}/{config.model})",
            available=available,
            version=_package_version("litellm"),
            required=required,
            message=self.secret_store.describe(config.provider),
        )

    def check_all(self, config: DocscribeConfig) -> PreflightResult:
        """Run every check.

        A missing primary credential is only an error when there is no
        usable fallback either.

        Args:
            config: Resolved configuration

        Returns:
            PreflightResult
        """
        result = PreflightResult()
        result.add_check(self.check_tree_sitter())

        fallback_ok = config.fallback is not None and self.secret_store.has_credentials(
            config.fallback.provider, config.fallback.api_key
        )
        result.add_check(self.check_provider(config.primary, "primary", required=not fallback_ok))
        if config.fallback is not None:
            result.add_check(self.check_provider(config.fallback, "fallback", required=False))

        return result

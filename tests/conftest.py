"""Shared pytest fixtures for docscribe tests.

Fixtures are organized by category:
- Logging fixtures: the docscribe logger is restored after every test
- Project fixtures: a writable copy of the sample project
- Provider fixtures: scripted fake providers and a stub context collector
- Configuration fixtures: configs pointing their data directory at tmp_path
"""

import asyncio
import logging
import shutil
from collections.abc import Callable
from pathlib import Path

import pytest

from docscribe.config import DocscribeConfig
from docscribe.exceptions import ProviderError
from docscribe.llm.client import ProviderResponse
from docscribe.models.symbols import (
    ApiContext,
    ApiSymbol,
    DocumentationStatus,
    SymbolType,
)
from docscribe.utils.logging import ROOT_LOGGER
from tests.fixtures import SAMPLE_PROJECT_PATH

# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_docscribe_logger():
    """Restore the docscribe logger after each test.

    CLI invocations install a handler bound to the runner's captured stderr,
    which is closed once the invocation ends.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


# =============================================================================
# Project Fixtures
# =============================================================================


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """Return a writable copy of the sample project."""
    destination = tmp_path / "project"
    shutil.copytree(SAMPLE_PROJECT_PATH, destination)
    return destination


@pytest.fixture
def docscribe_home(tmp_path: Path) -> Path:
    """Return an isolated docscribe data directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


# =============================================================================
# Provider Fixtures
# =============================================================================


class FakeProvider:
    """Scripted generation provider.

    Attributes:
        name: Provider name
        model: Model name
        available: Result of is_available()
        failures: Errors raised, in order, per symbol id before succeeding
        error: Error raised on every call when set
        delay: Seconds each call takes
        calls: Symbol ids of every call, in order
        max_in_flight: Highest number of concurrent calls observed
    """

    def __init__(
        self,
        name: str = "fake",
        model: str = "fake-model",
        available: bool = True,
        error: Exception | None = None,
        delay: float = 0.0,
        cost: float = 0.001,
    ) -> None:
        self.name = name
        self.model = model
        self.available = available
        self.error = error
        self.delay = delay
        self.cost = cost
        self.failures: dict[str, list[Exception]] = {}
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def calls_for(self, symbol_id: str) -> int:
        return self.calls.count(symbol_id)

    async def generate(self, context: ApiContext) -> ProviderResponse:
        self.calls.append(context.symbol_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
            pending = self.failures.get(context.symbol_id)
            if pending:
                raise pending.pop(0)
            if self.error is not None:
                raise self.error
            return ProviderResponse(
                text=f"Document {context.qualified_name}.",
                tokens_used=10,
                model=self.model,
                finish_reason="stop",
            )
        finally:
            self.in_flight -= 1

    def estimate_cost(self, context: ApiContext) -> float:
        return self.cost

    def is_available(self) -> bool:
        return self.available


class StubContextCollector:
    """Builds contexts straight from symbols, without reading files."""

    def __init__(self, error_for: set[str] | None = None) -> None:
        self.error_for = error_for or set()

    def collect_context(self, symbol: ApiSymbol) -> ApiContext:
        if symbol.id in self.error_for:
            raise OSError(f"cannot read {symbol.file_path}")
        return ApiContext(
            symbol_id=symbol.id,
            qualified_name=symbol.qualified_name,
            symbol_type=symbol.symbol_type,
            signature=symbol.signature,
            token_estimate=20,
        )


@pytest.fixture
def fake_provider_factory() -> Callable[..., FakeProvider]:
    """Return the FakeProvider class for building scripted providers."""
    return FakeProvider


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Return a provider that always succeeds."""
    return FakeProvider()


@pytest.fixture
def stub_collector_factory() -> Callable[..., StubContextCollector]:
    """Return the StubContextCollector class."""
    return StubContextCollector


@pytest.fixture
def stub_collector() -> StubContextCollector:
    """Return a context collector that never touches the filesystem."""
    return StubContextCollector()


@pytest.fixture
def transient_error() -> Callable[[], ProviderError]:
    """Return a factory for retryable provider errors."""
    return lambda: ProviderError("Service unavailable", provider="fake", status_code=503)


@pytest.fixture
def make_symbol(tmp_path: Path) -> Callable[..., ApiSymbol]:
    """Return a factory for standalone symbols."""

    def _make(
        name: str,
        file_name: str = "mod.py",
        line_number: int = 1,
        status: DocumentationStatus = DocumentationStatus.UNDOCUMENTED,
    ) -> ApiSymbol:
        return ApiSymbol(
            id=f"{file_name}::{name}",
            qualified_name=name,
            name=name.rsplit(".", 1)[-1],
            symbol_type=SymbolType.FUNCTION,
            file_path=tmp_path / file_name,
            line_number=line_number,
            signature=f"def {name}():",
            documentation_status=status,
        )

    return _make


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config(docscribe_home: Path) -> DocscribeConfig:
    """Return a default configuration with an isolated data directory."""
    return DocscribeConfig(home=docscribe_home)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove docscribe and provider variables from the environment."""
    for var in (
        "DOCSCRIBE_PROVIDER",
        "DOCSCRIBE_MODEL",
        "DOCSCRIBE_FALLBACK_PROVIDER",
        "DOCSCRIBE_FALLBACK_MODEL",
        "DOCSCRIBE_PARALLELISM",
        "DOCSCRIBE_HOME",
        "DOCSCRIBE_API_KEY_CLAUDE",
        "DOCSCRIBE_API_KEY_OPENAI",
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)

"""Bounded-concurrency documentation generation.

Every symbol becomes one task, but at most `parallelism` tasks hold the
semaphore at a time; the rest wait their turn. A failing symbol yields a
FAILED entry and never affects its siblings, so the output always holds
exactly one entry per input symbol.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from docscribe.exceptions import GenerationCancelledError
from docscribe.llm.gateway import ProviderGateway
from docscribe.models.cache import DryRunCache, DryRunCacheEntry
from docscribe.models.generation import (
    MAX_PARALLELISM,
    MIN_PARALLELISM,
    GeneratedDocumentation,
    SuggestionStatus,
)
from docscribe.models.symbols import ApiContext, ApiSymbol
from docscribe.storage.dry_run_cache import DryRunCacheManager

logger = logging.getLogger(__name__)


class ContextSource(Protocol):
    """Anything that can collect prompt context for a symbol."""

    def collect_context(self, symbol: ApiSymbol) -> ApiContext: ...


@dataclass
class GenerationStats:
    """Counters of one batch.

    Attributes:
        generated: Suggestions produced by a provider call
        cached: Suggestions served from the dry-run cache
        failed: Symbols that failed
        cancelled: Symbols skipped or abandoned by cancellation
    """

    generated: int = 0
    cached: int = 0
    failed: int = 0
    cancelled: int = 0

    @property
    def completed(self) -> int:
        return self.generated + self.cached + self.failed + self.cancelled


def _is_auth_error(exc: BaseException) -> bool:
    return getattr(exc, "status_code", None) == 401


class ParallelGenerator:
    """Fans symbols out over a bounded pool of provider calls."""

    def __init__(
        self,
        gateway: ProviderGateway,
        context_collector: ContextSource,
        cache_manager: DryRunCacheManager | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            gateway: Provider gateway used for cache misses
            context_collector: Builds ApiContext per symbol
            cache_manager: Dry-run cache; None disables caching
        """
        self.gateway = gateway
        self.context_collector = context_collector
        self.cache_manager = cache_manager
        self.stats = GenerationStats()
        self._auth_error_reported = False

    async def generate(
        self,
        project_path: str | Path,
        symbols: list[ApiSymbol],
        parallelism: int = 3,
        dry_run: bool = False,
        reuse_cache: bool = False,
        cancel_event: asyncio.Event | None = None,
    ) -> list[GeneratedDocumentation]:
        """Generate documentation for every symbol.

        Args:
            project_path: Project root (keys the dry-run cache)
            symbols: Symbols to document
            parallelism: Maximum concurrent symbols in flight
            dry_run: Serve and fill the dry-run cache
            reuse_cache: Serve fresh cache entries outside dry-run mode too
            cancel_event: Set to stop starting new symbols and abandon in-flight ones

        Returns:
            One entry per input symbol, in input order

        Raises:
            ValueError: If parallelism is out of range
        """
        if not MIN_PARALLELISM <= parallelism <= MAX_PARALLELISM:
            raise ValueError(
                f"parallelism must be between {MIN_PARALLELISM} and {MAX_PARALLELISM}. "
                f"Got: {parallelism}"
            )

        self.stats = GenerationStats()
        self._auth_error_reported = False
        total = len(symbols)
        if total == 0:
            return []

        cache: DryRunCache | None = None
        if self.cache_manager is not None and (dry_run or reuse_cache):
            cache = self.cache_manager.load_cache(project_path)

        semaphore = asyncio.Semaphore(parallelism)
        logger.info(
            "Generating documentation for %d symbol(s) with parallelism %d%s",
            total,
            parallelism,
            " (dry run)" if dry_run else "",
        )

        async def worker(symbol: ApiSymbol) -> GeneratedDocumentation:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    result = GeneratedDocumentation.cancelled(symbol.id)
                else:
                    result = await self._process_symbol(
                        project_path, symbol, cache, dry_run, cancel_event
                    )
                self._count(result)
                logger.info(
                    "[Progress: %d/%d] %s %s",
                    self.stats.completed,
                    total,
                    symbol.qualified_name,
                    result.status.value if not result.succeeded else "done",
                )
                return result

        results = await asyncio.gather(*(worker(symbol) for symbol in symbols))

        if cache is not None or dry_run:
            logger.info(
                "Cache statistics: %d hit(s), %d miss(es)",
                self.stats.cached,
                total - self.stats.cached,
            )
        logger.info(
            "Generation finished: %d generated, %d cached, %d failed, %d cancelled",
            self.stats.generated,
            self.stats.cached,
            self.stats.failed,
            self.stats.cancelled,
        )
        return list(results)

    def _count(self, result: GeneratedDocumentation) -> None:
        if result.status == SuggestionStatus.CANCELLED:
            self.stats.cancelled += 1
        elif not result.succeeded:
            self.stats.failed += 1
        elif result.from_cache:
            self.stats.cached += 1
        else:
            self.stats.generated += 1

    async def _process_symbol(
        self,
        project_path: str | Path,
        symbol: ApiSymbol,
        cache: DryRunCache | None,
        dry_run: bool,
        cancel_event: asyncio.Event | None,
    ) -> GeneratedDocumentation:
        """Produce the entry for one symbol; never raises for symbol-level failures."""
        provider_name = self.gateway.active_provider.name

        if cache is not None and self.cache_manager is not None:
            entry = self.cache_manager.get_fresh_entry(cache, symbol.id, provider_name)
            if entry is not None:
                logger.debug("Cache hit for %s", symbol.id)
                return GeneratedDocumentation(
                    symbol_id=symbol.id,
                    text=entry.text,
                    provider=entry.provider,
                    model=entry.model,
                    generated_at=entry.cached_at,
                    from_cache=True,
                )

        try:
            context = await asyncio.to_thread(self.context_collector.collect_context, symbol)
            response = await self.gateway.generate(context, cancel_event=cancel_event)
        except GenerationCancelledError:
            return GeneratedDocumentation.cancelled(symbol.id)
        except Exception as e:
            if _is_auth_error(e):
                if not self._auth_error_reported:
                    self._auth_error_reported = True
                    logger.error("Authentication failed: check your API key (%s)", e)
            else:
                logger.warning("Generation failed for %s: %s", symbol.id, e)
            return GeneratedDocumentation.failed(
                symbol.id,
                str(e),
                provider=getattr(e, "provider", None) or provider_name,
            )

        result = GeneratedDocumentation(
            symbol_id=symbol.id,
            text=response.text,
            provider=response.provider,
            model=response.model,
            tokens_used=response.tokens_used,
            cost=response.cost,
        )

        if dry_run and self.cache_manager is not None:
            entry = DryRunCacheEntry(
                symbol_id=symbol.id,
                provider=response.provider,
                model=response.model,
                text=response.text,
            )
            try:
                await asyncio.to_thread(self.cache_manager.save_entry, project_path, entry)
            except OSError as e:
                logger.warning("Could not cache response for %s: %s", symbol.id, e)

        return result

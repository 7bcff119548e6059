"""Data models for docscribe."""

from docscribe.models.backup import BackupSnapshot, RestoreResult
from docscribe.models.cache import DryRunCache, DryRunCacheEntry
from docscribe.models.generation import (
    INTENSITY_LEVELS,
    GeneratedDocumentation,
    GenerationOptions,
    GenerationResult,
    GenerationStatus,
    OrchestratorState,
    SuggestionStatus,
)
from docscribe.models.llm_config import VALID_PROVIDERS, LLMConfig
from docscribe.models.symbols import (
    AnalysisReport,
    ApiContext,
    ApiSymbol,
    DocumentationStatus,
    SymbolType,
)

__all__ = [
    "INTENSITY_LEVELS",
    "VALID_PROVIDERS",
    "AnalysisReport",
    "ApiContext",
    "ApiSymbol",
    "BackupSnapshot",
    "DocumentationStatus",
    "DryRunCache",
    "DryRunCacheEntry",
    "GeneratedDocumentation",
    "GenerationOptions",
    "GenerationResult",
    "GenerationStatus",
    "LLMConfig",
    "OrchestratorState",
    "RestoreResult",
    "SuggestionStatus",
    "SymbolType",
]

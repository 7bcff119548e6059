"""Generation run entities.

This module contains entities related to one orchestration run:
- SuggestionStatus: Lifecycle of a single generated docstring
- GeneratedDocumentation: One provider response for one symbol
- GenerationOptions: Immutable run configuration
- OrchestratorState / GenerationStatus: Where a run is and how it ended
- GenerationResult: Terminal outcome of a run
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from docscribe.models.symbols import DocumentationStatus

MIN_PARALLELISM = 1
MAX_PARALLELISM = 10

# Statuses targeted by each intensity level
INTENSITY_LEVELS: dict[str, frozenset[DocumentationStatus]] = {
    "undocumented": frozenset({DocumentationStatus.UNDOCUMENTED}),
    "partially_documented": frozenset(
        {DocumentationStatus.UNDOCUMENTED, DocumentationStatus.PARTIALLY_DOCUMENTED}
    ),
    "stale": frozenset(
        {
            DocumentationStatus.UNDOCUMENTED,
            DocumentationStatus.PARTIALLY_DOCUMENTED,
            DocumentationStatus.STALE,
        }
    ),
    "all": frozenset(DocumentationStatus),
}


class SuggestionStatus(Enum):
    """Lifecycle of a generated suggestion."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EDITED = "edited"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class GeneratedDocumentation:
    """One provider response (or failure) for one symbol.

    Attributes:
        symbol_id: Symbol the suggestion documents
        text: Generated docstring body (empty on failure)
        provider: Provider that produced the text
        model: Model that produced the text
        tokens_used: Total tokens reported by the provider
        cost: Estimated cost in USD
        generated_at: When the suggestion was produced (UTC)
        status: Suggestion lifecycle state
        from_cache: True when served from the dry-run cache
        error: Failure description for FAILED/CANCELLED entries
    """

    symbol_id: str
    text: str = ""
    provider: str = ""
    model: str = ""
    tokens_used: int = 0
    cost: float = 0.0
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    status: SuggestionStatus = SuggestionStatus.PENDING
    from_cache: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """True when the entry carries usable text."""
        return self.status not in (SuggestionStatus.FAILED, SuggestionStatus.CANCELLED)

    def edit(self, text: str) -> None:
        """Replace the suggestion text with a user edit."""
        self.text = text
        self.status = SuggestionStatus.EDITED

    @classmethod
    def failed(
        cls,
        symbol_id: str,
        error: str,
        provider: str = "",
        model: str = "",
    ) -> "GeneratedDocumentation":
        """Create a failure entry for a symbol."""
        return cls(
            symbol_id=symbol_id,
            provider=provider,
            model=model,
            status=SuggestionStatus.FAILED,
            error=error,
        )

    @classmethod
    def cancelled(cls, symbol_id: str) -> "GeneratedDocumentation":
        """Create an entry for a symbol whose work was cancelled."""
        return cls(
            symbol_id=symbol_id,
            status=SuggestionStatus.CANCELLED,
            error="cancelled",
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "symbol_id": self.symbol_id,
            "text": self.text,
            "provider": self.provider,
            "model": self.model,
            "tokens_used": self.tokens_used,
            "cost": self.cost,
            "generated_at": self.generated_at.isoformat(),
            "status": self.status.value,
            "from_cache": self.from_cache,
            "error": self.error,
        }


@dataclass(frozen=True)
class GenerationOptions:
    """Configuration of one orchestration run.

    Attributes:
        project_path: Root of the project to document
        parallelism: Maximum concurrent provider calls (1-10)
        dry_run: Generate and cache without writing files
        intensity: Which documentation statuses to target
        provider: Primary provider override
        fallback_provider: Fallback provider override
        reuse_cache: Serve fresh dry-run cache entries in write mode too
    """

    project_path: Path
    parallelism: int = 3
    dry_run: bool = False
    intensity: str = "undocumented"
    provider: str | None = None
    fallback_provider: str | None = None
    reuse_cache: bool = False

    def __post_init__(self) -> None:
        """Validate options."""
        if not MIN_PARALLELISM <= self.parallelism <= MAX_PARALLELISM:
            raise ValueError(
                f"parallelism must be between {MIN_PARALLELISM} and {MAX_PARALLELISM}. "
                f"Got: {self.parallelism}"
            )
        if self.intensity not in INTENSITY_LEVELS:
            raise ValueError(
                f"Invalid intensity '{self.intensity}'. "
                f"Must be one of: {sorted(INTENSITY_LEVELS)}"
            )

    @property
    def target_statuses(self) -> frozenset[DocumentationStatus]:
        """Documentation statuses this run generates for."""
        return INTENSITY_LEVELS[self.intensity]


class OrchestratorState(Enum):
    """States of the orchestration state machine."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    BACKING_UP = "backing_up"
    WRITING = "writing"
    COMPLETED = "completed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


class GenerationStatus(Enum):
    """How a run ended."""

    SUCCESS = "success"
    DRY_RUN = "dry_run"
    NO_APIS_FOUND = "no_apis_found"
    DECLINED = "declined"
    GENERATION_FAILED = "generation_failed"
    CONFIGURATION_FAILED = "configuration_failed"
    BACKUP_FAILED = "backup_failed"
    WRITE_FAILED = "write_failed"
    ROLLED_BACK = "rolled_back"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class GenerationResult:
    """Terminal outcome of an orchestration run.

    Attributes:
        status: How the run ended
        final_state: State the machine stopped in
        message: Human-readable summary or failure cause
        documentation: One entry per targeted symbol
        generated_count: Suggestions produced by a provider call
        cached_count: Suggestions served from the dry-run cache
        failed_count: Symbols that failed or were cancelled
        backup_path: Snapshot directory, when one was created
        files_written: Files changed by the run, a partly written file included
        partially_written_file: File left partly written by a failed write
        files_restored: Files restored by a rollback
        applied: Whether suggestions were written to source files
        preview: Rendered preview text
        cache_path: Dry-run cache file of the project
        state_history: States visited, in order
    """

    status: GenerationStatus
    final_state: OrchestratorState
    message: str = ""
    documentation: list[GeneratedDocumentation] = field(default_factory=list)
    generated_count: int = 0
    cached_count: int = 0
    failed_count: int = 0
    backup_path: Path | None = None
    files_written: int = 0
    partially_written_file: Path | None = None
    files_restored: int = 0
    applied: bool = False
    preview: str = ""
    cache_path: Path | None = None
    state_history: list[OrchestratorState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """True for every outcome that is not a failure."""
        return self.final_state == OrchestratorState.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "status": self.status.value,
            "final_state": self.final_state.value,
            "message": self.message,
            "generated_count": self.generated_count,
            "cached_count": self.cached_count,
            "failed_count": self.failed_count,
            "backup_path": str(self.backup_path) if self.backup_path else None,
            "files_written": self.files_written,
            "partially_written_file": (
                str(self.partially_written_file) if self.partially_written_file else None
            ),
            "files_restored": self.files_restored,
            "applied": self.applied,
            "cache_path": str(self.cache_path) if self.cache_path else None,
            "state_history": [state.value for state in self.state_history],
            "documentation": [doc.to_dict() for doc in self.documentation],
        }

"""Documentation workflow orchestration.

State machine:

    IDLE -> ANALYZING -> GENERATING -> AWAITING_CONFIRMATION -> BACKING_UP -> WRITING -> COMPLETED
                |             |                  |                  |            |
                |             +-> COMPLETED      +-> COMPLETED      +-> FAILED   +-> ROLLED_BACK
                +-> COMPLETED     (dry run)          (declined)                  +-> FAILED
                +-> FAILED    +-> FAILED

Nothing is written before a complete backup exists, and a failed write
always goes through the user's rollback decision.
"""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from docscribe.analyzers.context import ContextCollector
from docscribe.analyzers.symbols import PythonAnalyzer
from docscribe.analyzers.tree import PythonSourceParser
from docscribe.config import DocscribeConfig
from docscribe.exceptions import BackupError, ConfigurationError
from docscribe.generation.parallel import ContextSource, ParallelGenerator
from docscribe.generation.preview import PreviewRenderer, group_by_file
from docscribe.llm.gateway import ProviderGateway, build_gateway
from docscribe.llm.secrets import SecretStore
from docscribe.models.generation import (
    GeneratedDocumentation,
    GenerationOptions,
    GenerationResult,
    GenerationStatus,
    OrchestratorState,
    SuggestionStatus,
)
from docscribe.models.symbols import ApiSymbol
from docscribe.storage.backup import BackupManager
from docscribe.storage.dry_run_cache import DryRunCacheManager
from docscribe.ui.confirmation import ConfirmationPrompt, ConsoleConfirmation
from docscribe.writer.docstrings import DocstringWriter

logger = logging.getLogger(__name__)

State = OrchestratorState

ALLOWED_TRANSITIONS: dict[OrchestratorState, frozenset[OrchestratorState]] = {
    State.IDLE: frozenset({State.ANALYZING}),
    State.ANALYZING: frozenset({State.GENERATING, State.COMPLETED, State.FAILED}),
    State.GENERATING: frozenset({State.AWAITING_CONFIRMATION, State.COMPLETED, State.FAILED}),
    State.AWAITING_CONFIRMATION: frozenset({State.BACKING_UP, State.COMPLETED}),
    State.BACKING_UP: frozenset({State.WRITING, State.FAILED}),
    State.WRITING: frozenset({State.COMPLETED, State.ROLLED_BACK, State.FAILED}),
    State.COMPLETED: frozenset(),
    State.ROLLED_BACK: frozenset(),
    State.FAILED: frozenset(),
}


class WriteFailure(Exception):
    """A suggestion could not be written to its file.

    Attributes:
        partially_written: Earlier suggestions of the same file were written
    """

    def __init__(self, message: str, partially_written: bool = False) -> None:
        super().__init__(message)
        self.partially_written = partially_written


class DocumentationOrchestrator:
    """Runs analysis, generation, confirmation, backup and write for a project.

    Every collaborator can be injected; anything omitted is built from the
    configuration. `on_preview` receives the rendered preview right before
    the write confirmation is requested.
    """

    def __init__(
        self,
        config: DocscribeConfig,
        analyzer: PythonAnalyzer | None = None,
        gateway: ProviderGateway | None = None,
        context_collector: ContextSource | None = None,
        writer: DocstringWriter | None = None,
        backup_manager: BackupManager | None = None,
        cache_manager: DryRunCacheManager | None = None,
        preview_renderer: PreviewRenderer | None = None,
        confirmation: ConfirmationPrompt | None = None,
        secret_store: SecretStore | None = None,
        on_preview: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config
        self._parser = PythonSourceParser()
        self.analyzer = analyzer or PythonAnalyzer(self._parser)
        self.gateway = gateway
        self.context_collector = context_collector
        self.writer = writer or DocstringWriter(self._parser)
        self.backup_manager = backup_manager or BackupManager(config.home_path)
        self.cache_manager = cache_manager or DryRunCacheManager(config.home_path)
        self.preview_renderer = preview_renderer or PreviewRenderer()
        self.confirmation = confirmation or ConsoleConfirmation()
        self.secret_store = secret_store or SecretStore()
        self.on_preview = on_preview

        self.state = State.IDLE
        self.history: list[OrchestratorState] = [State.IDLE]

    # =========================================================================
    # State handling
    # =========================================================================

    def _transition(self, new_state: OrchestratorState) -> None:
        """Move to a new state.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid state transition: {self.state.value} -> {new_state.value}"
            )
        logger.debug("State %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    def _finish(
        self,
        state: OrchestratorState,
        status: GenerationStatus,
        message: str,
        documentation: list[GeneratedDocumentation] | None = None,
        **fields: Any,
    ) -> GenerationResult:
        """Enter a terminal state and build the result."""
        self._transition(state)
        documentation = documentation or []
        if state == State.FAILED:
            logger.error(message)
        else:
            logger.info(message)

        return GenerationResult(
            status=status,
            final_state=state,
            message=message,
            documentation=documentation,
            generated_count=sum(1 for d in documentation if d.succeeded and not d.from_cache),
            cached_count=sum(1 for d in documentation if d.succeeded and d.from_cache),
            failed_count=sum(1 for d in documentation if not d.succeeded),
            state_history=list(self.history),
            **fields,
        )

    # =========================================================================
    # Workflow
    # =========================================================================

    async def generate(
        self,
        options: GenerationOptions,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationResult:
        """Run the documentation workflow once.

        Args:
            options: Run configuration
            cancel_event: Set to cancel generation

        Returns:
            Terminal GenerationResult
        """
        self.state = State.IDLE
        self.history = [State.IDLE]
        project = Path(options.project_path).expanduser().resolve()
        cache_path = self.cache_manager.get_cache_file_path(project)

        # ---- Analyzing -------------------------------------------------------
        self._transition(State.ANALYZING)
        try:
            report = await asyncio.to_thread(self.analyzer.analyze_project, project)
        except Exception as e:
            return self._finish(State.FAILED, GenerationStatus.FAILED, f"Analysis failed: {e}")

        for diagnostic in report.diagnostics:
            logger.warning("Analysis: %s", diagnostic)

        targets = [
            s for s in report.symbols if s.documentation_status in options.target_statuses
        ]
        logger.info(
            "Found %d symbol(s) needing documentation (intensity: %s)",
            len(targets),
            options.intensity,
        )
        if not targets:
            return self._finish(
                State.COMPLETED,
                GenerationStatus.NO_APIS_FOUND,
                "No APIs need documentation",
            )

        try:
            gateway = self.gateway or build_gateway(
                self.config,
                self.secret_store,
                provider=options.provider,
                fallback_provider=options.fallback_provider,
            )
            gateway.ensure_available()
        except ConfigurationError as e:
            return self._finish(State.FAILED, GenerationStatus.CONFIGURATION_FAILED, str(e))

        # ---- Generating ------------------------------------------------------
        self._transition(State.GENERATING)
        collector = self.context_collector or ContextCollector(project, parser=self._parser)
        generator = ParallelGenerator(gateway, collector, self.cache_manager)
        try:
            documentation = await generator.generate(
                project,
                targets,
                parallelism=options.parallelism,
                dry_run=options.dry_run,
                reuse_cache=options.reuse_cache,
                cancel_event=cancel_event,
            )
        except Exception as e:
            return self._finish(State.FAILED, GenerationStatus.FAILED, f"Generation failed: {e}")

        if cancel_event is not None and cancel_event.is_set():
            return self._finish(
                State.FAILED,
                GenerationStatus.CANCELLED,
                "Generation cancelled; no files were written",
                documentation,
            )

        successful = [d for d in documentation if d.succeeded]
        if not successful:
            return self._finish(
                State.FAILED,
                GenerationStatus.GENERATION_FAILED,
                f"Documentation generation failed for all {len(documentation)} symbol(s)",
                documentation,
            )

        total_cost = sum(d.cost for d in successful)
        if total_cost:
            logger.info("Estimated provider cost: $%.4f", total_cost)

        symbols_by_id = {s.id: s for s in targets}

        if options.dry_run:
            preview = self.preview_renderer.build_preview(
                project, documentation, symbols_by_id, dry_run=True
            )
            return self._finish(
                State.COMPLETED,
                GenerationStatus.DRY_RUN,
                f"Dry run complete: {len(successful)} suggestion(s) cached at {cache_path}",
                documentation,
                preview=preview,
                cache_path=cache_path,
            )

        # ---- Awaiting confirmation ------------------------------------------
        self._transition(State.AWAITING_CONFIRMATION)
        preview = self.preview_renderer.build_preview(
            project, documentation, symbols_by_id, dry_run=False
        )
        grouped = group_by_file(successful, symbols_by_id)
        if self.on_preview is not None:
            self.on_preview(preview)

        if not self.confirmation.confirm_batch_write(len(successful), len(grouped)):
            for doc in successful:
                doc.status = SuggestionStatus.REJECTED
            return self._finish(
                State.COMPLETED,
                GenerationStatus.DECLINED,
                "Write declined; no files were changed",
                documentation,
                preview=preview,
                cache_path=cache_path,
            )

        # ---- Backing up ------------------------------------------------------
        self._transition(State.BACKING_UP)
        try:
            snapshot = await self.backup_manager.create_backup(project, list(grouped))
        except BackupError as e:
            return self._finish(
                State.FAILED,
                GenerationStatus.BACKUP_FAILED,
                f"Backup failed, nothing was written: {e}",
                documentation,
                preview=preview,
            )

        # ---- Writing ---------------------------------------------------------
        self._transition(State.WRITING)
        files_written = 0
        try:
            for path, items in grouped.items():
                await self._write_file(path, items)
                files_written += 1
        except WriteFailure as failure:
            partial_file = path if failure.partially_written else None
            return await self._handle_write_failure(
                project,
                snapshot.path,
                snapshot.file_count,
                files_written + (1 if partial_file else 0),
                partial_file,
                str(failure),
                documentation,
                preview,
            )

        self.cache_manager.clear_cache(project)
        return self._finish(
            State.COMPLETED,
            GenerationStatus.SUCCESS,
            f"Wrote {len(successful)} docstring(s) to {files_written} file(s); "
            f"backup at {snapshot.path}",
            documentation,
            preview=preview,
            backup_path=snapshot.path,
            files_written=files_written,
            applied=True,
        )

    async def _write_file(
        self,
        path: Path,
        items: list[tuple[ApiSymbol, GeneratedDocumentation]],
    ) -> None:
        """Write every suggestion of one file.

        Raises:
            WriteFailure: If any suggestion cannot be written; it records
                whether earlier suggestions of the file already were
        """
        inserted = 0
        for symbol, doc in items:
            try:
                written = await asyncio.to_thread(
                    self.writer.insert_documentation, path, symbol.qualified_name, doc.text
                )
            except Exception as e:
                raise WriteFailure(
                    f"{path}: {symbol.qualified_name}: {e}", partially_written=inserted > 0
                ) from e
            if not written:
                raise WriteFailure(
                    f"{path}: could not insert documentation for {symbol.qualified_name}",
                    partially_written=inserted > 0,
                )
            inserted += 1
            if doc.status == SuggestionStatus.PENDING:
                doc.status = SuggestionStatus.ACCEPTED
        logger.info("Updated %s (%d docstring(s))", path, len(items))

    async def _handle_write_failure(
        self,
        project: Path,
        backup_path: Path,
        backed_up_files: int,
        files_written: int,
        partial_file: Path | None,
        reason: str,
        documentation: list[GeneratedDocumentation],
        preview: str,
    ) -> GenerationResult:
        """Offer a rollback after a failed write and carry it out if confirmed.

        `files_written` counts every file that differs from the snapshot,
        including `partial_file` when the failing file was partly written.
        """
        logger.error("Write failed: %s", reason)
        modified = f"{files_written} file(s) were modified"
        if partial_file is not None:
            modified += f" ({partial_file} partially)"

        if not self.confirmation.confirm_rollback(backed_up_files, backup_path):
            return self._finish(
                State.FAILED,
                GenerationStatus.WRITE_FAILED,
                f"Write failed ({reason}); {modified}. "
                f"Restore with: docscribe rollback {backup_path} --project {project}",
                documentation,
                preview=preview,
                backup_path=backup_path,
                files_written=files_written,
                partially_written_file=partial_file,
                applied=files_written > 0,
            )

        try:
            restore = await self.backup_manager.restore_backup(backup_path, project)
        except BackupError as e:
            return self._finish(
                State.FAILED,
                GenerationStatus.WRITE_FAILED,
                f"Write failed ({reason}) and rollback failed: {e}; {modified}",
                documentation,
                preview=preview,
                backup_path=backup_path,
                files_written=files_written,
                partially_written_file=partial_file,
                applied=files_written > 0,
            )

        for doc in documentation:
            if doc.status == SuggestionStatus.ACCEPTED:
                doc.status = SuggestionStatus.PENDING

        message = (
            f"Write failed ({reason}); rolled back {restore.files_restored} file(s). "
            f"{modified} before the failure"
        )
        if restore.failed_files:
            message += f"; could not restore: {', '.join(restore.failed_files)}"

        return self._finish(
            State.ROLLED_BACK,
            GenerationStatus.ROLLED_BACK,
            message,
            documentation,
            preview=preview,
            backup_path=backup_path,
            files_written=files_written,
            partially_written_file=partial_file,
            files_restored=restore.files_restored,
        )

"""docscribe CLI interface.

Commands:
- generate: Generate docstrings for a project's public API
- analyze: Report documentation coverage (text, JSON or Markdown)
- rollback: Restore a project from a backup snapshot
- backups: List a project's backup snapshots
- cache clear: Delete a project's dry-run cache
- check: Validate parser and provider credentials
- init: Write a default configuration file
- config: Show or change providers, models and API keys

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log output
- --version: Show version and exit
"""

import asyncio
import json as json_module
import os
from pathlib import Path
from typing import Annotated

import typer

from docscribe import __version__
from docscribe.config import CONFIG_FILENAME, DocscribeConfig, create_default_config, load_config
from docscribe.exceptions import BackupError
from docscribe.models.generation import (
    INTENSITY_LEVELS,
    MAX_PARALLELISM,
    MIN_PARALLELISM,
    GenerationOptions,
    GenerationStatus,
)
from docscribe.utils.logging import configure_from_cli, get_logger
from docscribe.utils.paths import DEFAULT_HOME

app = typer.Typer(
    name="docscribe",
    help="Generate docstrings for undocumented Python APIs with LLM providers",
    add_completion=False,
    no_args_is_help=True,
)

cache_app = typer.Typer(help="Manage the dry-run cache", no_args_is_help=True)
app.add_typer(cache_app, name="cache")

config_app = typer.Typer(
    help="Show or change providers, models and API keys", no_args_is_help=True
)
app.add_typer(config_app, name="config")

# Global state
_config: DocscribeConfig | None = None
_logger = get_logger()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ROLLED_BACK = 2

_EXIT_CODES: dict[GenerationStatus, int] = {
    GenerationStatus.SUCCESS: EXIT_OK,
    GenerationStatus.DRY_RUN: EXIT_OK,
    GenerationStatus.NO_APIS_FOUND: EXIT_OK,
    GenerationStatus.DECLINED: EXIT_OK,
    GenerationStatus.ROLLED_BACK: EXIT_ROLLED_BACK,
}


def exit_code_for(status: GenerationStatus) -> int:
    """Map a run status to the process exit code."""
    return _EXIT_CODES.get(status, EXIT_FAILED)


def _get_config() -> DocscribeConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def _default_config_file() -> Path:
    home = Path(os.environ.get("DOCSCRIBE_HOME") or DEFAULT_HOME).expanduser()
    return home / CONFIG_FILENAME


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"docscribe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with timestamps",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress info messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON log output",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """docscribe - API documentation generator.

    Finds public classes, functions and methods that lack documentation,
    drafts docstrings with an LLM provider and writes them back after
    confirmation, with a backup taken first.
    """
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(EXIT_FAILED)
    except Exception as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(EXIT_FAILED)


# =============================================================================
# generate command
# =============================================================================


@app.command()
def generate(
    project: Annotated[
        Path,
        typer.Argument(
            help="Project directory to document",
            exists=True,
            file_okay=False,
        ),
    ],
    intensity: Annotated[
        str | None,
        typer.Option(
            "--intensity",
            "-i",
            help=f"Which symbols to target: {', '.join(INTENSITY_LEVELS)}",
        ),
    ] = None,
    parallelism: Annotated[
        int | None,
        typer.Option(
            "--parallelism",
            "-p",
            help="Concurrent provider calls",
            min=MIN_PARALLELISM,
            max=MAX_PARALLELISM,
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Preview suggestions without writing files (fills the dry-run cache)",
        ),
    ] = False,
    provider: Annotated[
        str | None,
        typer.Option(
            "--provider",
            help="Primary provider (overrides config)",
        ),
    ] = None,
    fallback_provider: Annotated[
        str | None,
        typer.Option(
            "--fallback-provider",
            help="Fallback provider (overrides config)",
        ),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Write without asking, and roll back automatically on failure",
        ),
    ] = False,
    use_cache: Annotated[
        bool,
        typer.Option(
            "--use-cache",
            help="Reuse fresh suggestions from the last dry run",
        ),
    ] = False,
) -> None:
    """Generate documentation for a project.

    Exit codes:
        0: Written, dry run finished, write declined, or nothing to document
        1: Configuration, generation, backup or write failure
        2: Write failed and the project was rolled back
    """
    from docscribe.generation.orchestrator import DocumentationOrchestrator
    from docscribe.ui.confirmation import AutoConfirmation, ConsoleConfirmation

    config = _get_config()

    try:
        options = GenerationOptions(
            project_path=project.resolve(),
            parallelism=parallelism or config.generation.parallelism,
            dry_run=dry_run,
            intensity=intensity or config.generation.intensity,
            provider=provider,
            fallback_provider=fallback_provider,
            reuse_cache=use_cache,
        )
    except ValueError as e:
        _logger.error(str(e))
        raise typer.Exit(EXIT_FAILED)

    confirmation = AutoConfirmation() if yes else ConsoleConfirmation()
    orchestrator = DocumentationOrchestrator(
        config,
        confirmation=confirmation,
        on_preview=typer.echo,
    )

    _logger.info(f"Documenting project: {options.project_path}")
    result = asyncio.run(orchestrator.generate(options))

    if result.status == GenerationStatus.DRY_RUN and result.preview:
        typer.echo(result.preview)

    typer.echo(result.message, err=not result.succeeded)
    raise typer.Exit(exit_code_for(result.status))


# =============================================================================
# analyze command
# =============================================================================


@app.command()
def analyze(
    project: Annotated[
        Path,
        typer.Argument(
            help="Project directory to analyze",
            exists=True,
            file_okay=False,
        ),
    ],
    format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help="Report format: text, json, markdown",
        ),
    ] = "text",
    include_context: Annotated[
        bool,
        typer.Option(
            "--include-context",
            help="Collect and include the prompt context of each listed symbol",
        ),
    ] = False,
    file_path: Annotated[
        Path | None,
        typer.Option(
            "--file-path",
            "-o",
            help="Write the report to this file instead of stdout",
            dir_okay=False,
        ),
    ] = None,
) -> None:
    """Report documentation coverage of a project.

    No provider is called; nothing in the project is changed.
    """
    from docscribe.analyzers import ContextCollector, PythonAnalyzer, TreeSitterUnavailableError
    from docscribe.analyzers.report import REPORT_FORMATS, CoverageReportRenderer
    from docscribe.exceptions import AnalysisError
    from docscribe.models.symbols import DocumentationStatus

    if format not in REPORT_FORMATS:
        _logger.error(f"Invalid format: {format}. Use one of: {', '.join(REPORT_FORMATS)}")
        raise typer.Exit(EXIT_FAILED)

    _logger.info(f"Analyzing project: {project}")
    try:
        analyzer = PythonAnalyzer()
        report = analyzer.analyze_project(project)
    except (AnalysisError, TreeSitterUnavailableError) as e:
        _logger.error(str(e))
        raise typer.Exit(EXIT_FAILED)

    for diagnostic in report.diagnostics:
        _logger.warning(diagnostic)

    contexts = None
    if include_context:
        collector = ContextCollector(report.project_path, parser=analyzer.parser)
        contexts = {}
        for symbol in report.symbols:
            if symbol.documentation_status == DocumentationStatus.DOCUMENTED:
                continue
            try:
                contexts[symbol.id] = collector.collect_context(symbol)
            except AnalysisError as e:
                _logger.warning(f"No context for {symbol.id}: {e}")
        _logger.info(f"Collected context for {len(contexts)} symbol(s)")

    rendered = CoverageReportRenderer().render(report, format, contexts)

    if file_path is None:
        typer.echo(rendered, nl=False)
        return

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(rendered, encoding="utf-8")
    except OSError as e:
        _logger.error(f"Failed to write report: {e}")
        raise typer.Exit(EXIT_FAILED)
    typer.echo(f"Report saved to {file_path}")


# =============================================================================
# rollback / backups commands
# =============================================================================


@app.command()
def rollback(
    backup_path: Annotated[
        Path,
        typer.Argument(help="Backup snapshot directory to restore"),
    ],
    project: Annotated[
        Path,
        typer.Option(
            "--project",
            "-p",
            help="Project the snapshot belongs to",
            exists=True,
            file_okay=False,
        ),
    ],
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Restore without asking",
        ),
    ] = False,
) -> None:
    """Restore a project's files from a backup snapshot."""
    from docscribe.storage.backup import BackupManager

    manager = BackupManager(_get_config().home_path)
    if not manager.validate_backup(backup_path):
        _logger.error(f"Not a valid backup: {backup_path}")
        raise typer.Exit(EXIT_FAILED)

    file_count = len(manager.list_backup_files(backup_path))
    if not yes and not typer.confirm(
        f"Restore {file_count} file(s) from {backup_path} into {project}?", default=True
    ):
        typer.echo("Rollback cancelled")
        raise typer.Exit(EXIT_OK)

    try:
        result = asyncio.run(manager.restore_backup(backup_path, project.resolve()))
    except BackupError as e:
        _logger.error(str(e))
        raise typer.Exit(EXIT_FAILED)

    typer.echo(f"Restored {result.files_restored} file(s) from {backup_path}")
    if not result.success:
        for failed in result.failed_files:
            typer.echo(f"  could not restore: {failed}", err=True)
        raise typer.Exit(EXIT_FAILED)


@app.command()
def backups(
    project: Annotated[
        Path,
        typer.Argument(
            help="Project directory",
            exists=True,
            file_okay=False,
        ),
    ],
) -> None:
    """List a project's backup snapshots, newest first."""
    from docscribe.storage.backup import BackupManager

    manager = BackupManager(_get_config().home_path)
    snapshots = manager.list_backups(project.resolve())
    if not snapshots:
        typer.echo("No backups found")
        return

    for snapshot in snapshots:
        file_count = len(manager.list_backup_files(snapshot))
        typer.echo(f"{snapshot}  ({file_count} file(s))")


# =============================================================================
# cache commands
# =============================================================================


@cache_app.command("clear")
def cache_clear(
    project: Annotated[
        Path,
        typer.Argument(
            help="Project directory",
            exists=True,
            file_okay=False,
        ),
    ],
) -> None:
    """Delete the dry-run cache of a project."""
    from docscribe.storage.dry_run_cache import DryRunCacheManager

    manager = DryRunCacheManager(_get_config().home_path)
    if manager.clear_cache(project.resolve()):
        typer.echo(f"Cleared dry-run cache for {project}")
    else:
        typer.echo(f"No dry-run cache for {project}")


# =============================================================================
# check command
# =============================================================================


@app.command()
def check(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results as JSON",
        ),
    ] = False,
) -> None:
    """Validate the Python parser and provider credentials.

    Exit codes:
        0: All checks passed
        1: A required check failed
        2: Passed with warnings
    """
    from docscribe.utils.preflight import PreflightChecker

    result = PreflightChecker().check_all(_get_config())

    if json_output:
        typer.echo(json_module.dumps(result.to_dict(), indent=2))
    else:
        typer.echo("\nPreflight Check Results\n")
        for check_result in result.checks:
            status = "ok " if check_result.available else "!! "
            version_str = f" ({check_result.version})" if check_result.version else ""
            required_str = "" if check_result.required else " [optional]"
            typer.echo(f"  {status} {check_result.name}{version_str}{required_str}")
            if check_result.message:
                typer.echo(f"      {check_result.message}")
        typer.echo()

    if not result.success:
        if not json_output:
            typer.echo("Preflight check FAILED")
            for error in result.errors:
                typer.echo(f"   - {error}")
        raise typer.Exit(EXIT_FAILED)
    if result.warnings:
        if not json_output:
            typer.echo("Preflight check passed with WARNINGS")
            for warning in result.warnings:
                typer.echo(f"   - {warning}")
        raise typer.Exit(2)
    if not json_output:
        typer.echo("All preflight checks passed")


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing config",
        ),
    ] = False,
) -> None:
    """Write a default configuration file.

    The file goes to $DOCSCRIBE_HOME/config.yaml, or ~/.docscribe/config.yaml.
    """
    from docscribe.utils.paths import atomic_write_bytes

    config_file = _default_config_file()

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(EXIT_FAILED)

    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_bytes(config_file, create_default_config().encode("utf-8"))
    except OSError as e:
        _logger.error(f"Failed to write config: {e}")
        raise typer.Exit(EXIT_FAILED)

    typer.echo("docscribe configuration initialized")
    typer.echo(f"   Config: {config_file}")


# =============================================================================
# config commands
# =============================================================================


def _config_target() -> Path:
    """File changed by the config commands: the loaded one, else the default."""
    return _get_config().config_path or _default_config_file()


def _checked_provider(provider: str) -> str:
    from docscribe.models.llm_config import VALID_PROVIDERS

    provider = provider.strip().lower()
    if provider not in VALID_PROVIDERS:
        _logger.error(
            f"Unknown provider '{provider}'. Supported: {', '.join(sorted(VALID_PROVIDERS))}"
        )
        raise typer.Exit(EXIT_FAILED)
    return provider


def _update_config(updates: dict[str, dict[str, object]]) -> DocscribeConfig:
    from docscribe.config import update_config_file
    from docscribe.exceptions import ConfigurationError

    global _config
    try:
        _config = update_config_file(_config_target(), updates)
    except (ConfigurationError, OSError) as e:
        _logger.error(f"Failed to update config: {e}")
        raise typer.Exit(EXIT_FAILED)
    return _config


@config_app.command("set-provider")
def config_set_provider(
    provider: Annotated[
        str,
        typer.Argument(help="Provider: claude, openai, gemini, ollama, bedrock"),
    ],
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model name (defaults to the provider's default)"),
    ] = None,
) -> None:
    """Set the primary provider and model."""
    from docscribe.models.llm_config import DEFAULT_MODELS

    provider = _checked_provider(provider)
    model = model or DEFAULT_MODELS[provider]
    updates: dict[str, object] = {"primary_provider": provider, "primary_model": model}
    if provider != _get_config().primary.provider:
        # A stored key belongs to the previous provider
        updates["api_key"] = None
    _update_config({"llm": updates})
    typer.echo(f"Primary provider set to: {provider} ({model})")


@config_app.command("set-fallback")
def config_set_fallback(
    provider: Annotated[
        str,
        typer.Argument(help="Provider: claude, openai, gemini, ollama, bedrock"),
    ],
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model name (defaults to the provider's default)"),
    ] = None,
) -> None:
    """Set the fallback provider and model."""
    from docscribe.models.llm_config import DEFAULT_MODELS

    provider = _checked_provider(provider)
    model = model or DEFAULT_MODELS[provider]
    fallback = _get_config().fallback
    updates: dict[str, object] = {"fallback_provider": provider, "fallback_model": model}
    if fallback is None or provider != fallback.provider:
        updates["fallback_api_key"] = None
    _update_config({"llm": updates})
    typer.echo(f"Fallback provider set to: {provider} ({model})")


@config_app.command("set-api-key")
def config_set_api_key(
    provider: Annotated[str, typer.Argument(help="Configured primary or fallback provider")],
) -> None:
    """Store an API key for the primary or fallback provider.

    The key is read without echo and saved in the config file, which is then
    readable by its owner only. A key set in the config file takes precedence
    over environment variables.
    """
    from docscribe.llm.secrets import mask_api_key
    from docscribe.models.llm_config import KEYED_PROVIDERS

    provider = _checked_provider(provider)
    if provider not in KEYED_PROVIDERS:
        _logger.error(f"{provider} does not authenticate with an API key")
        raise typer.Exit(EXIT_FAILED)

    config = _get_config()
    if provider == config.primary.provider:
        key_name = "api_key"
    elif config.fallback is not None and provider == config.fallback.provider:
        key_name = "fallback_api_key"
    else:
        _logger.error(
            f"{provider} is not the primary or fallback provider; "
            "run 'docscribe config set-provider' or 'set-fallback' first"
        )
        raise typer.Exit(EXIT_FAILED)

    api_key = typer.prompt(f"API key for {provider}", hide_input=True).strip()
    if not api_key:
        _logger.error("API key cannot be empty")
        raise typer.Exit(EXIT_FAILED)

    _update_config({"llm": {key_name: api_key}})
    typer.echo(f"API key saved for {provider}: {mask_api_key(api_key)}")


@config_app.command("show")
def config_show() -> None:
    """Display the effective configuration with API keys masked."""
    from docscribe.llm.secrets import SecretStore, mask_api_key

    config = _get_config()
    secrets = SecretStore()

    def key_status(llm_config) -> str:
        if llm_config.api_key:
            return f"key {mask_api_key(llm_config.api_key)} (config file)"
        return secrets.describe(llm_config.provider)

    typer.echo("\ndocscribe configuration\n")
    typer.echo(f"  Config file:        {config.config_path or '(none, using defaults)'}")
    typer.echo(f"  Primary provider:   {config.primary.provider} ({config.primary.model})")
    typer.echo(f"  Primary API key:    {key_status(config.primary)}")
    if config.fallback is None:
        typer.echo("  Fallback provider:  (none)")
    else:
        typer.echo(f"  Fallback provider:  {config.fallback.provider} ({config.fallback.model})")
        typer.echo(f"  Fallback API key:   {key_status(config.fallback)}")
    typer.echo(f"  Parallelism:        {config.generation.parallelism}")
    typer.echo(f"  Intensity:          {config.generation.intensity}")
    typer.echo(f"  Data directory:     {config.home_path}")


if __name__ == "__main__":
    app()

"""Preview rendering for generated documentation.

Renders suggestions grouped by file with Jinja2. Output is deterministic:
files and symbols are sorted by path and line.
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader

from docscribe.models.generation import GeneratedDocumentation
from docscribe.models.symbols import ApiSymbol

logger = logging.getLogger(__name__)

PREVIEW_TEMPLATE = "preview.txt.j2"


def group_by_file(
    suggestions: Iterable[GeneratedDocumentation],
    symbols: dict[str, ApiSymbol],
) -> dict[Path, list[tuple[ApiSymbol, GeneratedDocumentation]]]:
    """Group successful suggestions by the file they modify.

    Args:
        suggestions: Generated documentation entries
        symbols: Symbols of the run keyed by id

    Returns:
        Mapping of file path to (symbol, suggestion) pairs sorted by line
    """
    grouped: dict[Path, list[tuple[ApiSymbol, GeneratedDocumentation]]] = {}
    for suggestion in suggestions:
        if not suggestion.succeeded:
            continue
        symbol = symbols[suggestion.symbol_id]
        grouped.setdefault(symbol.file_path, []).append((symbol, suggestion))

    return {
        path: sorted(items, key=lambda pair: pair[0].line_number)
        for path, items in sorted(grouped.items())
    }


class PreviewRenderer:
    """Renders the preview shown before writing (or at the end of a dry run)."""

    def __init__(self) -> None:
        self._env = Environment(
            loader=PackageLoader("docscribe", "templates"),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def _context(
        self,
        project_path: Path,
        suggestions: list[GeneratedDocumentation],
        symbols: dict[str, ApiSymbol],
        dry_run: bool,
    ) -> dict[str, Any]:
        grouped = group_by_file(suggestions, symbols)
        files = []
        for path, items in grouped.items():
            try:
                display_path = path.relative_to(project_path).as_posix()
            except ValueError:
                display_path = str(path)
            files.append(
                {
                    "path": display_path,
                    "entries": [
                        {
                            "kind": symbol.symbol_type.value,
                            "qualified_name": symbol.qualified_name,
                            "line": symbol.line_number,
                            "status": symbol.documentation_status.value
                            if symbol.existing_docstring
                            else "",
                            "from_cache": suggestion.from_cache,
                            "text": suggestion.text,
                        }
                        for symbol, suggestion in items
                    ],
                }
            )

        return {
            "project_path": str(project_path),
            "files": files,
            "failures": [s for s in suggestions if not s.succeeded],
            "change_count": sum(len(f["entries"]) for f in files),
            "file_count": len(files),
            "dry_run": dry_run,
        }

    def build_preview(
        self,
        project_path: str | Path,
        suggestions: list[GeneratedDocumentation],
        symbols: dict[str, ApiSymbol],
        dry_run: bool = True,
    ) -> str:
        """Render the preview text.

        Args:
            project_path: Project root, used to shorten file paths
            suggestions: Entries of the run, failures included
            symbols: Symbols of the run keyed by id
            dry_run: Word the summary for a dry run

        Returns:
            Rendered preview
        """
        template = self._env.get_template(PREVIEW_TEMPLATE)
        context = self._context(Path(project_path), suggestions, symbols, dry_run)
        logger.debug(
            "Rendering preview: %d change(s) in %d file(s)",
            context["change_count"],
            context["file_count"],
        )
        return template.render(**context)

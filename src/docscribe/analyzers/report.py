"""Documentation coverage reports.

Renders an AnalysisReport as plain text or Markdown with Jinja2 templates,
or as JSON. Symbols that need documentation are listed grouped by file and
sorted by line, so the same project always gives the same report.
"""

import json
import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader

from docscribe.models.symbols import AnalysisReport, ApiContext, ApiSymbol, DocumentationStatus

logger = logging.getLogger(__name__)

REPORT_FORMATS = ("text", "json", "markdown")

_TEMPLATES = {
    "text": "report.txt.j2",
    "markdown": "report.md.j2",
}


def escape_table_cell(value: str) -> str:
    """Make a value safe inside a Markdown table cell."""
    return " ".join(value.split()).replace("|", "\\|")


class CoverageReportRenderer:
    """Renders the `docscribe analyze` report."""

    def __init__(self) -> None:
        self._env = Environment(
            loader=PackageLoader("docscribe", "templates"),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._env.filters["cell"] = escape_table_cell

    def _display_path(self, report: AnalysisReport, path: Path) -> str:
        try:
            return path.relative_to(report.project_path).as_posix()
        except ValueError:
            return str(path)

    def _entry(
        self,
        report: AnalysisReport,
        symbol: ApiSymbol,
        context: ApiContext | None,
    ) -> dict[str, Any]:
        return {
            "id": symbol.id,
            "qualified_name": symbol.qualified_name,
            "kind": symbol.symbol_type.value,
            "status": symbol.documentation_status.value,
            "signature": symbol.signature,
            "path": self._display_path(report, symbol.file_path),
            "line": symbol.line_number,
            "context": context,
        }

    def _context(
        self,
        report: AnalysisReport,
        contexts: dict[str, ApiContext] | None,
    ) -> dict[str, Any]:
        pending = sorted(
            (s for s in report.symbols if s.documentation_status != DocumentationStatus.DOCUMENTED),
            key=lambda s: (str(s.file_path), s.line_number),
        )
        files: dict[str, list[dict[str, Any]]] = {}
        for symbol in pending:
            entry = self._entry(report, symbol, (contexts or {}).get(symbol.id))
            files.setdefault(entry["path"], []).append(entry)

        return {
            "project_name": report.project_path.name,
            "project_path": str(report.project_path),
            "total": len(report.symbols),
            "counts": report.count_by_status(),
            "coverage": report.coverage_percentage,
            "files_scanned": report.files_scanned,
            "files": [{"path": path, "entries": entries} for path, entries in files.items()],
            "pending_count": len(pending),
            "diagnostics": report.diagnostics,
            "include_context": contexts is not None,
        }

    def render(
        self,
        report: AnalysisReport,
        output_format: str = "text",
        contexts: dict[str, ApiContext] | None = None,
    ) -> str:
        """Render a coverage report.

        Args:
            report: Analyzer output
            output_format: One of REPORT_FORMATS
            contexts: Collected prompt context keyed by symbol id; when given,
                the report includes it

        Returns:
            Rendered report

        Raises:
            ValueError: If the format is unknown
        """
        if output_format not in REPORT_FORMATS:
            raise ValueError(
                f"Unknown report format '{output_format}'. "
                f"Must be one of: {', '.join(REPORT_FORMATS)}"
            )

        context = self._context(report, contexts)
        logger.debug(
            "Rendering %s report for %s (%d symbol(s))",
            output_format,
            report.project_path,
            context["total"],
        )

        if output_format == "json":
            return self._render_json(context)
        return self._env.get_template(_TEMPLATES[output_format]).render(**context)

    def _render_json(self, context: dict[str, Any]) -> str:
        symbols = []
        for file in context["files"]:
            for entry in file["entries"]:
                item = {key: value for key, value in entry.items() if key != "context"}
                if context["include_context"]:
                    item["context"] = entry["context"].to_dict() if entry["context"] else None
                symbols.append(item)

        data = {
            "project_name": context["project_name"],
            "project_path": context["project_path"],
            "files_scanned": context["files_scanned"],
            "total_apis": context["total"],
            "counts": context["counts"],
            "coverage_percentage": context["coverage"],
            "symbols": symbols,
            "diagnostics": context["diagnostics"],
        }
        return json.dumps(data, indent=2) + "\n"

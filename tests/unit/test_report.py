"""Unit tests for documentation coverage reports."""

import json
from dataclasses import replace
from pathlib import Path

import pytest

from docscribe.analyzers.report import CoverageReportRenderer, escape_table_cell
from docscribe.models.symbols import AnalysisReport, ApiContext, DocumentationStatus, SymbolType


@pytest.fixture
def renderer() -> CoverageReportRenderer:
    """Return a report renderer."""
    return CoverageReportRenderer()


@pytest.fixture
def report(make_symbol, tmp_path: Path) -> AnalysisReport:
    """Return a report with one undocumented, one stale and one documented symbol."""
    return AnalysisReport(
        project_path=tmp_path,
        symbols=[
            make_symbol("b", file_name="other.py", line_number=3, status=DocumentationStatus.STALE),
            make_symbol("a"),
            make_symbol("c", line_number=9, status=DocumentationStatus.DOCUMENTED),
        ],
        files_scanned=2,
    )


def context_for(symbol_id: str) -> ApiContext:
    return ApiContext(
        symbol_id=symbol_id,
        qualified_name=symbol_id.split("::")[-1],
        symbol_type=SymbolType.FUNCTION,
        signature="def a():",
        implementation_excerpt="def a():\n    return 1",
        call_sites=("app.py:3: a()",),
        token_estimate=42,
    )


class TestTextReport:
    """Tests for the text report."""

    def test_summary_and_listing(self, renderer: CoverageReportRenderer, report) -> None:
        """Test counts, coverage and the grouped listing of pending symbols."""
        text = renderer.render(report, "text")

        assert "Documentation Coverage Report: " in text
        assert "  Total APIs:            3" in text
        assert "  Stale:                 1" in text
        assert "  Coverage:              33.33%" in text
        assert "APIs needing documentation (2):" in text
        assert text.index("\nmod.py\n") < text.index("\nother.py\n")
        assert "  - function a [undocumented]" in text
        assert "      Location:  other.py:3" in text
        assert "function c" not in text

    def test_fully_documented(self, renderer: CoverageReportRenderer, tmp_path: Path) -> None:
        """Test an empty project reports full coverage."""
        text = renderer.render(AnalysisReport(project_path=tmp_path), "text")

        assert "Coverage:              100.00%" in text
        assert "Every public API is documented." in text

    def test_context_summary(self, renderer: CoverageReportRenderer, report) -> None:
        """Test collected context is summarised and missing context is flagged."""
        text = renderer.render(report, "text", contexts={"mod.py::a": context_for("mod.py::a")})

        assert "Implementation:  2 line(s)" in text
        assert "Call sites:      1" in text
        assert "Token estimate:  42" in text
        assert "Context:           unavailable" in text

    def test_diagnostics_listed(self, renderer: CoverageReportRenderer, report) -> None:
        """Test analyzer diagnostics close the report."""
        report.diagnostics.append("bad.py: syntax errors, results may be incomplete")

        text = renderer.render(report, "text")

        assert "Diagnostics (1):\n  - bad.py: syntax errors" in text


class TestMarkdownReport:
    """Tests for the Markdown report."""

    def test_table(self, renderer: CoverageReportRenderer, report) -> None:
        """Test pending symbols are rendered as table rows."""
        markdown = renderer.render(report, "markdown")

        assert markdown.startswith("# Documentation Coverage Report: ")
        assert "- **Coverage:** 33.33%" in markdown
        assert "## APIs Needing Documentation (2)" in markdown
        assert "| mod.py | `a` | function | undocumented | `def a():` | 1 |\n" in markdown
        assert "| other.py | `b` | function | stale | `def b():` | 3 |\n" in markdown

    def test_pipes_escaped(self, renderer: CoverageReportRenderer, make_symbol, tmp_path) -> None:
        """Test a union annotation does not break the table."""
        symbol = replace(make_symbol("f"), signature="def f(x: int | None):")

        markdown = renderer.render(AnalysisReport(tmp_path, [symbol]), "markdown")

        assert "`def f(x: int \\| None):`" in markdown

    def test_context_columns(self, renderer: CoverageReportRenderer, report) -> None:
        """Test call-site and token columns appear with context."""
        markdown = renderer.render(
            report, "markdown", contexts={"mod.py::a": context_for("mod.py::a")}
        )

        assert "| Call sites | Tokens |" in markdown
        assert "| `def a():` | 1 | 1 | 42 |\n" in markdown
        assert "| `def b():` | 3 | - | - |\n" in markdown


class TestJsonReport:
    """Tests for the JSON report."""

    def test_structure(self, renderer: CoverageReportRenderer, report) -> None:
        """Test totals and the pending symbol list."""
        data = json.loads(renderer.render(report, "json"))

        assert data["total_apis"] == 3
        assert data["coverage_percentage"] == 33.33
        assert data["counts"]["undocumented"] == 1
        assert [s["qualified_name"] for s in data["symbols"]] == ["a", "b"]
        assert data["symbols"][1]["path"] == "other.py"
        assert "context" not in data["symbols"][0]

    def test_context_included(self, renderer: CoverageReportRenderer, report) -> None:
        """Test context is serialised when requested."""
        data = json.loads(
            renderer.render(report, "json", contexts={"mod.py::a": context_for("mod.py::a")})
        )

        assert data["symbols"][0]["context"]["token_estimate"] == 42
        assert data["symbols"][0]["context"]["call_sites"] == ["app.py:3: a()"]
        assert data["symbols"][1]["context"] is None


def test_unknown_format(renderer: CoverageReportRenderer, report) -> None:
    """Test an unsupported format is rejected."""
    with pytest.raises(ValueError, match="Unknown report format"):
        renderer.render(report, "html")


def test_escape_table_cell() -> None:
    """Test pipes are escaped and whitespace collapsed."""
    assert escape_table_cell("def f(\n    a: int | None,\n):") == "def f( a: int \\| None, ):"

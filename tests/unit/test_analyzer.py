"""Unit tests for public API discovery and context collection.

These tests parse real source with tree-sitter.
"""

from pathlib import Path

import pytest

from docscribe.analyzers.context import ContextCollector
from docscribe.analyzers.symbols import (
    PythonAnalyzer,
    classify_documentation,
    documented_parameters,
)
from docscribe.exceptions import AnalysisError
from docscribe.models.symbols import DocumentationStatus, SymbolType

Status = DocumentationStatus


@pytest.fixture
def analyzer() -> PythonAnalyzer:
    """Return an analyzer with its own parser."""
    return PythonAnalyzer()


class TestClassifyDocumentation:
    """Tests for the documentation status rules."""

    def test_no_docstring(self) -> None:
        """Test a missing docstring is UNDOCUMENTED."""
        status = classify_documentation(SymbolType.FUNCTION, None, ["x"], "int")

        assert status == Status.UNDOCUMENTED

    def test_complete_docstring(self) -> None:
        """Test Args and Returns sections make a symbol DOCUMENTED."""
        docstring = "Do it.\n\nArgs:\n    x: Input\n\nReturns:\n    Output"

        status = classify_documentation(SymbolType.FUNCTION, docstring, ["x"], "int")

        assert status == Status.DOCUMENTED

    def test_missing_args_section(self) -> None:
        """Test parameters without an Args section are PARTIALLY_DOCUMENTED."""
        status = classify_documentation(SymbolType.FUNCTION, "Do it.", ["x"], None)

        assert status == Status.PARTIALLY_DOCUMENTED

    def test_missing_returns_section(self) -> None:
        """Test a non-None return without Returns is PARTIALLY_DOCUMENTED."""
        status = classify_documentation(SymbolType.METHOD, "Do it.", [], "str")

        assert status == Status.PARTIALLY_DOCUMENTED

    def test_none_return_needs_no_returns_section(self) -> None:
        """Test `-> None` does not require a Returns section."""
        status = classify_documentation(SymbolType.FUNCTION, "Do it.", [], "None")

        assert status == Status.DOCUMENTED

    def test_removed_parameter_is_stale(self) -> None:
        """Test documenting a parameter that no longer exists is STALE."""
        docstring = "Do it.\n\nArgs:\n    x: Input\n    old: Gone"

        status = classify_documentation(SymbolType.FUNCTION, docstring, ["x"], None)

        assert status == Status.STALE

    def test_class_with_docstring(self) -> None:
        """Test any class docstring counts as DOCUMENTED."""
        status = classify_documentation(SymbolType.CLASS, "A thing.", [], None)

        assert status == Status.DOCUMENTED

    def test_documented_parameters(self) -> None:
        """Test parameter names are read from the Args section only."""
        docstring = (
            "Summary.\n\n"
            "Args:\n"
            "    first (int): The first\n"
            "        continuation: not a parameter\n"
            "    *args: Extra\n"
            "    **kwargs: Options\n\n"
            "Returns:\n"
            "    value: not a parameter"
        )

        assert documented_parameters(docstring) == {"first", "args", "kwargs"}


class TestPythonAnalyzer:
    """Tests for PythonAnalyzer against the sample project."""

    def test_discovers_public_symbols(
        self, analyzer: PythonAnalyzer, sample_project: Path
    ) -> None:
        """Test public symbols are found and private ones skipped."""
        report = analyzer.analyze_project(sample_project)

        ids = [s.id for s in report.symbols]
        assert ids == [
            "pkg/app.py::run",
            "pkg/core.py::add",
            "pkg/core.py::greet",
            "pkg/core.py::Store",
            "pkg/core.py::Store.get",
            "pkg/util.py::slugify",
            "pkg/util.py::merge",
        ]
        assert report.files_scanned == 4
        assert report.diagnostics == []

    def test_statuses(self, analyzer: PythonAnalyzer, sample_project: Path) -> None:
        """Test each symbol gets the expected status."""
        report = analyzer.analyze_project(sample_project)

        statuses = {s.qualified_name: s.documentation_status for s in report.symbols}
        assert statuses == {
            "run": Status.UNDOCUMENTED,
            "add": Status.UNDOCUMENTED,
            "greet": Status.DOCUMENTED,
            "Store": Status.UNDOCUMENTED,
            "Store.get": Status.UNDOCUMENTED,
            "slugify": Status.UNDOCUMENTED,
            "merge": Status.STALE,
        }
        assert report.count_by_status()["undocumented"] == 5

    def test_symbol_details(self, analyzer: PythonAnalyzer, sample_project: Path) -> None:
        """Test type, location and signature of a method."""
        report = analyzer.analyze_project(sample_project)
        method = next(s for s in report.symbols if s.qualified_name == "Store.get")

        assert method.symbol_type == SymbolType.METHOD
        assert method.name == "get"
        assert method.file_path == sample_project.resolve() / "pkg" / "core.py"
        assert method.line_number == 18
        assert method.signature == "def get(self, key: str) -> str:"

    def test_ids_are_stable(self, analyzer: PythonAnalyzer, sample_project: Path) -> None:
        """Test two analyses produce the same identifiers."""
        first = [s.id for s in analyzer.analyze_project(sample_project).symbols]
        second = [s.id for s in analyzer.analyze_project(sample_project).symbols]

        assert first == second

    def test_syntax_error_is_a_diagnostic(
        self, analyzer: PythonAnalyzer, tmp_path: Path
    ) -> None:
        """Test a broken file is reported, not raised."""
        (tmp_path / "broken.py").write_text("def broken(:\n    pass\n")

        report = analyzer.analyze_project(tmp_path)

        assert len(report.diagnostics) == 1
        assert "broken.py" in report.diagnostics[0]

    def test_decorated_definitions(self, analyzer: PythonAnalyzer, tmp_path: Path) -> None:
        """Test decorated functions and methods are discovered."""
        (tmp_path / "mod.py").write_text(
            "import functools\n\n\n"
            "@functools.cache\n"
            "def cached(x):\n"
            "    return x\n\n\n"
            "class Box:\n"
            '    """A box."""\n\n'
            "    @property\n"
            "    def size(self) -> int:\n"
            "        return 1\n"
        )

        report = analyzer.analyze_project(tmp_path)

        assert [s.qualified_name for s in report.symbols] == ["cached", "Box", "Box.size"]
        box = report.symbols[1]
        assert box.documentation_status == Status.DOCUMENTED
        assert box.existing_docstring == "A box."

    def test_missing_project(self, analyzer: PythonAnalyzer, tmp_path: Path) -> None:
        """Test a missing directory raises AnalysisError."""
        with pytest.raises(AnalysisError):
            analyzer.analyze_project(tmp_path / "absent")


class TestContextCollector:
    """Tests for ContextCollector."""

    def test_collects_context(self, analyzer: PythonAnalyzer, sample_project: Path) -> None:
        """Test signature, annotations, excerpt and call sites are collected."""
        report = analyzer.analyze_project(sample_project)
        slugify = next(s for s in report.symbols if s.qualified_name == "slugify")
        collector = ContextCollector(sample_project, parser=analyzer.parser)

        context = collector.collect_context(slugify)

        assert context.symbol_id == "pkg/util.py::slugify"
        assert context.parameter_types == {"text": "str"}
        assert context.return_type == "str"
        assert context.implementation_excerpt.startswith("def slugify(text: str) -> str:")
        assert context.call_sites == ("pkg/app.py:5: return slugify(title)",)
        assert context.token_estimate > 0

    def test_related_types(self, tmp_path: Path) -> None:
        """Test capitalised annotation names become related types."""
        (tmp_path / "mod.py").write_text(
            "def load(path: Path, opts: Optional[Options]) -> Result:\n    return None\n"
        )
        analyzer = PythonAnalyzer()
        symbol = analyzer.analyze_project(tmp_path).symbols[0]

        context = ContextCollector(tmp_path).collect_context(symbol)

        assert context.related_types == ("Options", "Path", "Result")

    def test_call_sites_are_capped(self, tmp_path: Path) -> None:
        """Test at most max_call_sites excerpts are returned."""
        calls = "\n".join(f"ping({i})" for i in range(10))
        (tmp_path / "mod.py").write_text(f"def ping(n):\n    return n\n\n\n{calls}\n")
        analyzer = PythonAnalyzer()
        symbol = analyzer.analyze_project(tmp_path).symbols[0]

        context = ContextCollector(tmp_path, max_call_sites=3).collect_context(symbol)

        assert len(context.call_sites) == 3

    def test_vanished_symbol_raises(self, analyzer: PythonAnalyzer, sample_project: Path) -> None:
        """Test a symbol removed since analysis raises AnalysisError."""
        report = analyzer.analyze_project(sample_project)
        add = next(s for s in report.symbols if s.qualified_name == "add")
        add.file_path.write_text("x = 1\n")

        with pytest.raises(AnalysisError, match="not found"):
            ContextCollector(sample_project).collect_context(add)

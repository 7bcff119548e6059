"""Public API discovery for Python projects.

Walks a project, parses every Python file with tree-sitter and reports the
public classes, functions and methods together with their documentation
status. Private names (leading underscore, including dunders) and anything
nested inside a private class are skipped.
"""

import logging
import re
from pathlib import Path

from docscribe.analyzers.tree import (
    Definition,
    PythonSourceParser,
    extract_docstring,
    iter_definitions,
    parameter_annotations,
    return_annotation,
    signature_text,
)
from docscribe.exceptions import AnalysisError
from docscribe.models.symbols import AnalysisReport, ApiSymbol, DocumentationStatus, SymbolType

logger = logging.getLogger(__name__)

EXCLUDED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".venv",
        "venv",
        ".tox",
        ".nox",
        "__pycache__",
        "node_modules",
        "build",
        "dist",
        ".mypy_cache",
        ".pytest_cache",
        "site-packages",
    }
)

ARGS_HEADERS = ("Args", "Arguments", "Parameters", "Params")
RETURNS_HEADERS = ("Returns", "Return", "Yields", "Yield")
IMPLICIT_PARAMS = frozenset({"self", "cls"})

_SECTION_HEADER = re.compile(r"^(\s*)([A-Za-z ]+):\s*$")
_PARAM_LINE = re.compile(r"^\s*\*{0,2}([A-Za-z_]\w*)\s*(\([^)]*\))?\s*:")


def _has_section(docstring: str, headers: tuple[str, ...]) -> bool:
    for line in docstring.splitlines():
        match = _SECTION_HEADER.match(line)
        if match and match.group(2).strip() in headers:
            return True
    return False


def documented_parameters(docstring: str) -> set[str]:
    """Names listed in the Args section of a Google-style docstring.

    Args:
        docstring: Cleaned docstring text

    Returns:
        Parameter names without leading stars
    """
    names: set[str] = set()
    lines = docstring.splitlines()
    in_args = False
    header_indent = 0
    entry_indent: int | None = None

    for line in lines:
        if not line.strip():
            continue
        indent = len(line) - len(line.lstrip())
        header = _SECTION_HEADER.match(line)

        if in_args and indent <= header_indent:
            in_args = False
        if header and header.group(2).strip() in ARGS_HEADERS:
            in_args = True
            header_indent = indent
            entry_indent = None
            continue
        if not in_args:
            continue

        if entry_indent is None:
            entry_indent = indent
        if indent != entry_indent:
            continue
        match = _PARAM_LINE.match(line)
        if match:
            names.add(match.group(1))

    return names


def classify_documentation(
    symbol_type: SymbolType,
    docstring: str | None,
    parameters: list[str],
    return_type: str | None,
) -> DocumentationStatus:
    """Decide the documentation status of a symbol.

    Args:
        symbol_type: Kind of symbol
        docstring: Cleaned docstring, if any
        parameters: Parameter names, excluding self/cls
        return_type: Return annotation, if any

    Returns:
        UNDOCUMENTED without a docstring; STALE when the docstring documents a
        parameter that no longer exists; PARTIALLY_DOCUMENTED when Args or
        Returns sections are missing; DOCUMENTED otherwise
    """
    if not docstring:
        return DocumentationStatus.UNDOCUMENTED
    if symbol_type == SymbolType.CLASS:
        return DocumentationStatus.DOCUMENTED

    if documented_parameters(docstring) - set(parameters):
        return DocumentationStatus.STALE
    if parameters and not _has_section(docstring, ARGS_HEADERS):
        return DocumentationStatus.PARTIALLY_DOCUMENTED
    if return_type and return_type != "None" and not _has_section(docstring, RETURNS_HEADERS):
        return DocumentationStatus.PARTIALLY_DOCUMENTED
    return DocumentationStatus.DOCUMENTED


def iter_python_files(project_path: Path) -> list[Path]:
    """List Python files under a project, skipping tool and virtualenv dirs."""
    files = []
    for path in project_path.rglob("*.py"):
        relative_parts = path.relative_to(project_path).parts[:-1]
        if any(part in EXCLUDED_DIRS or part.startswith(".") for part in relative_parts):
            continue
        if path.is_file():
            files.append(path)
    return sorted(files)


class PythonAnalyzer:
    """Discovers public API symbols and their documentation status."""

    def __init__(self, parser: PythonSourceParser | None = None) -> None:
        self.parser = parser or PythonSourceParser()

    def analyze_project(self, project_path: str | Path) -> AnalysisReport:
        """Analyze every Python file of a project.

        Args:
            project_path: Project root directory

        Returns:
            AnalysisReport with symbols and diagnostics

        Raises:
            AnalysisError: If the project directory does not exist
            TreeSitterUnavailableError: If tree-sitter is not available
        """
        root = Path(project_path).expanduser().resolve()
        if not root.is_dir():
            raise AnalysisError(f"Project directory not found: {root}")

        report = AnalysisReport(project_path=root)
        for file_path in iter_python_files(root):
            report.files_scanned += 1
            try:
                source = file_path.read_bytes()
            except OSError as e:
                report.diagnostics.append(f"{file_path}: unreadable ({e})")
                continue
            report.symbols.extend(self.analyze_source(root, file_path, source, report.diagnostics))

        logger.info(
            "Analyzed %d file(s): %d public symbol(s), %d diagnostic(s)",
            report.files_scanned,
            len(report.symbols),
            len(report.diagnostics),
        )
        return report

    def analyze_source(
        self,
        project_root: Path,
        file_path: Path,
        source: bytes,
        diagnostics: list[str] | None = None,
    ) -> list[ApiSymbol]:
        """Extract public symbols from one file's source.

        Args:
            project_root: Project root, used for stable identifiers
            file_path: Absolute file path
            source: File content
            diagnostics: List to append parse problems to

        Returns:
            Symbols in source order
        """
        tree = self.parser.parse(source)
        if tree.root_node.has_error and diagnostics is not None:
            diagnostics.append(f"{file_path}: syntax errors, results may be incomplete")

        relative = file_path.relative_to(project_root).as_posix()
        symbols = []
        for definition in iter_definitions(tree.root_node, source):
            if any(part.startswith("_") for part in definition.qualified_name.split(".")):
                continue
            symbols.append(self._build_symbol(relative, file_path, source, definition))
        return symbols

    def _build_symbol(
        self,
        relative: str,
        file_path: Path,
        source: bytes,
        definition: Definition,
    ) -> ApiSymbol:
        node = definition.node
        if definition.is_class:
            symbol_type = SymbolType.CLASS
            params: list[str] = []
            returns = None
        else:
            symbol_type = SymbolType.METHOD if definition.in_class else SymbolType.FUNCTION
            params = [p for p in parameter_annotations(source, node) if p not in IMPLICIT_PARAMS]
            returns = return_annotation(source, node)

        docstring = extract_docstring(source, node)
        return ApiSymbol(
            id=f"{relative}::{definition.qualified_name}",
            qualified_name=definition.qualified_name,
            name=definition.name,
            symbol_type=symbol_type,
            file_path=file_path,
            line_number=node.start_point[0] + 1,
            signature=signature_text(source, node),
            documentation_status=classify_documentation(symbol_type, docstring, params, returns),
            existing_docstring=docstring,
        )

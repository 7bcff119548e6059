"""Context collection for docstring prompts.

For one symbol, gathers its signature, parameter and return annotations, the
leading lines of its implementation, a few call sites elsewhere in the
project and the capitalised type names its signature mentions.
"""

import logging
import re
from dataclasses import replace
from pathlib import Path

from docscribe.analyzers.symbols import IMPLICIT_PARAMS, iter_python_files
from docscribe.analyzers.tree import (
    PythonSourceParser,
    find_definition,
    node_text,
    parameter_annotations,
    return_annotation,
)
from docscribe.exceptions import AnalysisError
from docscribe.llm.prompts import build_docstring_prompt, estimate_tokens
from docscribe.models.symbols import ApiContext, ApiSymbol, SymbolType

logger = logging.getLogger(__name__)

MAX_EXCERPT_LINES = 40
MAX_CALL_SITES = 5

_TYPE_NAME = re.compile(r"\b([A-Z][A-Za-z0-9_]*)\b")
_BUILTIN_TYPES = frozenset(
    {"None", "Any", "Optional", "Union", "Callable", "Literal", "True", "False"}
)


class ContextCollector:
    """Builds ApiContext objects for symbols of one project."""

    def __init__(
        self,
        project_path: str | Path,
        parser: PythonSourceParser | None = None,
        max_call_sites: int = MAX_CALL_SITES,
    ) -> None:
        """Initialize the collector.

        Args:
            project_path: Project root searched for call sites
            parser: Shared tree-sitter parser
            max_call_sites: Maximum call-site excerpts per symbol
        """
        self.project_path = Path(project_path).expanduser().resolve()
        self.parser = parser or PythonSourceParser()
        self.max_call_sites = max_call_sites
        self._files: list[Path] | None = None
        self._lines: dict[Path, list[str]] = {}

    def _project_files(self) -> list[Path]:
        if self._files is None:
            self._files = iter_python_files(self.project_path)
        return self._files

    def _file_lines(self, path: Path) -> list[str]:
        if path not in self._lines:
            try:
                text = path.read_text(encoding="utf-8", errors="replace")
                self._lines[path] = text.splitlines()
            except OSError as e:
                logger.debug("Cannot read %s for call sites: %s", path, e)
                self._lines[path] = []
        return self._lines[path]

    def find_call_sites(self, symbol: ApiSymbol) -> tuple[str, ...]:
        """Find lines that call or instantiate the symbol.

        Args:
            symbol: Symbol to look for

        Returns:
            Up to max_call_sites "relative/path.py:line: code" excerpts
        """
        pattern = re.compile(rf"(?<![\w]){re.escape(symbol.name)}\s*\(")
        sites: list[str] = []
        for path in self._project_files():
            for index, line in enumerate(self._file_lines(path), start=1):
                if path == symbol.file_path and index == symbol.line_number:
                    continue
                stripped = line.strip()
                if stripped.startswith(("def ", "async def ", "class ", "#")):
                    continue
                if pattern.search(line):
                    relative = path.relative_to(self.project_path).as_posix()
                    sites.append(f"{relative}:{index}: {stripped}")
                    if len(sites) >= self.max_call_sites:
                        return tuple(sites)
        return tuple(sites)

    def collect_context(self, symbol: ApiSymbol) -> ApiContext:
        """Collect prompt evidence for a symbol.

        Args:
            symbol: Symbol from the analyzer

        Returns:
            Immutable ApiContext

        Raises:
            AnalysisError: If the file cannot be read or the symbol is gone
        """
        try:
            source = symbol.file_path.read_bytes()
        except OSError as e:
            raise AnalysisError(f"Cannot read {symbol.file_path}: {e}") from e

        tree = self.parser.parse(source)
        definition = find_definition(tree.root_node, source, symbol.qualified_name)
        if definition is None:
            raise AnalysisError(f"{symbol.qualified_name} not found in {symbol.file_path}")

        node = definition.node
        parameters: dict[str, str] = {}
        returns = None
        if symbol.symbol_type != SymbolType.CLASS:
            parameters = {
                name: annotation
                for name, annotation in parameter_annotations(source, node).items()
                if name not in IMPLICIT_PARAMS
            }
            returns = return_annotation(source, node)

        excerpt_lines = node_text(source, node).splitlines()[:MAX_EXCERPT_LINES]
        annotations = " ".join([*parameters.values(), returns or ""])
        related = sorted(
            {name for name in _TYPE_NAME.findall(annotations) if name not in _BUILTIN_TYPES}
        )

        context = ApiContext(
            symbol_id=symbol.id,
            qualified_name=symbol.qualified_name,
            symbol_type=symbol.symbol_type,
            signature=symbol.signature,
            parameter_types=parameters,
            return_type=returns,
            implementation_excerpt="\n".join(excerpt_lines),
            call_sites=self.find_call_sites(symbol),
            related_types=tuple(related),
            existing_docstring=symbol.existing_docstring,
        )
        token_estimate = estimate_tokens(build_docstring_prompt(context))
        return replace(context, token_estimate=token_estimate)

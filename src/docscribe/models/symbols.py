"""Symbol entities produced by the analyzer and context collector."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class SymbolType(Enum):
    """Kind of documentable API element."""

    CLASS = "class"
    FUNCTION = "function"
    METHOD = "method"


class DocumentationStatus(Enum):
    """Documentation state of a symbol.

    UNDOCUMENTED: no docstring at all
    PARTIALLY_DOCUMENTED: docstring present but missing Args/Returns sections
    STALE: docstring describes parameters that no longer exist
    DOCUMENTED: nothing to do
    """

    UNDOCUMENTED = "undocumented"
    PARTIALLY_DOCUMENTED = "partially_documented"
    STALE = "stale"
    DOCUMENTED = "documented"


@dataclass
class ApiSymbol:
    """One public API element discovered by analysis.

    Attributes:
        id: Stable identifier, "<relative path>::<qualified name>"
        qualified_name: Dotted name within its module (e.g., "Client.connect")
        name: Simple name
        symbol_type: Class, function or method
        file_path: Absolute path of the defining file
        line_number: 1-based line of the definition
        signature: Definition line(s) up to the trailing colon
        documentation_status: Current documentation state
        existing_docstring: Current docstring text, if any
    """

    id: str
    qualified_name: str
    name: str
    symbol_type: SymbolType
    file_path: Path
    line_number: int
    signature: str
    documentation_status: DocumentationStatus = DocumentationStatus.UNDOCUMENTED
    existing_docstring: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "id": self.id,
            "qualified_name": self.qualified_name,
            "name": self.name,
            "symbol_type": self.symbol_type.value,
            "file_path": str(self.file_path),
            "line_number": self.line_number,
            "signature": self.signature,
            "documentation_status": self.documentation_status.value,
            "existing_docstring": self.existing_docstring,
        }


@dataclass(frozen=True)
class ApiContext:
    """Evidence bundle used to prompt the provider for one symbol.

    Attributes:
        symbol_id: Identifier of the described symbol
        qualified_name: Dotted name of the symbol
        symbol_type: Kind of symbol
        signature: Definition signature
        parameter_types: Parameter name to annotation ("" when unannotated)
        return_type: Return annotation, if any
        implementation_excerpt: Leading lines of the definition
        call_sites: "path:line: code" excerpts of usages
        related_types: Capitalised type names referenced by the signature
        existing_docstring: Docstring being replaced, if any
        token_estimate: Rough prompt size in tokens
    """

    symbol_id: str
    qualified_name: str
    symbol_type: SymbolType
    signature: str
    parameter_types: dict[str, str] = field(default_factory=dict)
    return_type: str | None = None
    implementation_excerpt: str = ""
    call_sites: tuple[str, ...] = ()
    related_types: tuple[str, ...] = ()
    existing_docstring: str | None = None
    token_estimate: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "symbol_id": self.symbol_id,
            "qualified_name": self.qualified_name,
            "symbol_type": self.symbol_type.value,
            "signature": self.signature,
            "parameter_types": dict(self.parameter_types),
            "return_type": self.return_type,
            "implementation_excerpt": self.implementation_excerpt,
            "call_sites": list(self.call_sites),
            "related_types": list(self.related_types),
            "existing_docstring": self.existing_docstring,
            "token_estimate": self.token_estimate,
        }


@dataclass
class AnalysisReport:
    """Result of analyzing a project.

    Attributes:
        project_path: Analyzed project root
        symbols: Discovered public symbols
        diagnostics: Non-fatal problems (unreadable files, parse errors)
        files_scanned: Number of source files visited
    """

    project_path: Path
    symbols: list[ApiSymbol] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)
    files_scanned: int = 0

    def count_by_status(self) -> dict[str, int]:
        """Count symbols per documentation status."""
        counts = {status.value: 0 for status in DocumentationStatus}
        for symbol in self.symbols:
            counts[symbol.documentation_status.value] += 1
        return counts

    @property
    def coverage_percentage(self) -> float:
        """Share of symbols that are fully documented (100.0 for an empty project)."""
        if not self.symbols:
            return 100.0
        documented = self.count_by_status()[DocumentationStatus.DOCUMENTED.value]
        return round(documented * 100.0 / len(self.symbols), 2)

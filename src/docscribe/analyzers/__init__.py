"""Source analysis for docscribe.

Uses tree-sitter to discover public API symbols, classify their
documentation, and collect prompt context.
"""

from docscribe.analyzers.context import ContextCollector
from docscribe.analyzers.symbols import (
    PythonAnalyzer,
    classify_documentation,
    documented_parameters,
    iter_python_files,
)
from docscribe.analyzers.tree import PythonSourceParser, TreeSitterUnavailableError

__all__ = [
    "ContextCollector",
    "PythonAnalyzer",
    "PythonSourceParser",
    "TreeSitterUnavailableError",
    "classify_documentation",
    "documented_parameters",
    "iter_python_files",
]

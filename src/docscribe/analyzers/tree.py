"""Tree-sitter helpers for Python source.

Shared by the analyzer, the context collector and the docstring writer so
that all three agree on what a definition, its body and its docstring are.
Offsets reported by tree-sitter are byte offsets, so source is always
handled as UTF-8 bytes here.
"""

import inspect
import logging
import re
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFINITION_TYPES = ("function_definition", "class_definition")

_STRING_PREFIX = re.compile(r"^[rRuUbBfF]{0,2}")


class TreeSitterUnavailableError(Exception):
    """Raised when the tree-sitter Python grammar cannot be loaded.

    Run `docscribe check` to verify dependencies.
    """

    def __init__(self, message: str | None = None) -> None:
        self.message = message or (
            "tree-sitter is not available. Run `docscribe check` to verify dependencies."
        )
        super().__init__(self.message)


@dataclass
class Definition:
    """A class or function definition found in a module.

    Attributes:
        qualified_name: Dotted name within the module
        node: The class_definition or function_definition node
        in_class: True when defined directly inside a class body
    """

    qualified_name: str
    node: Any
    in_class: bool

    @property
    def name(self) -> str:
        return self.qualified_name.rsplit(".", 1)[-1]

    @property
    def is_class(self) -> bool:
        return self.node.type == "class_definition"


class PythonSourceParser:
    """Lazily initialized tree-sitter parser for Python."""

    def __init__(self) -> None:
        self._parser: Any = None
        self._init_error: str | None = None
        # Parser objects are not safe to share between threads
        self._lock = threading.Lock()

    def _ensure_initialized(self) -> None:
        """Load the Python grammar.

        Raises:
            TreeSitterUnavailableError: If tree-sitter cannot be initialized
        """
        if self._parser is not None:
            return
        if self._init_error:
            raise TreeSitterUnavailableError(self._init_error)

        try:
            from tree_sitter_language_pack import get_parser

            self._parser = get_parser("python")
            logger.debug("Initialized tree-sitter parser for python")
        except Exception as e:
            self._init_error = f"tree-sitter Python grammar unavailable: {e}"
            raise TreeSitterUnavailableError(self._init_error) from e

    def check_available(self) -> bool:
        """Check if tree-sitter is available.

        Returns:
            True if the Python grammar loads
        """
        try:
            self._ensure_initialized()
            return True
        except TreeSitterUnavailableError:
            return False

    def parse(self, source: bytes) -> Any:
        """Parse Python source into a tree-sitter tree.

        Raises:
            TreeSitterUnavailableError: If tree-sitter is not available
        """
        with self._lock:
            self._ensure_initialized()
            return self._parser.parse(source)


def node_text(source: bytes, node: Any) -> str:
    """Return the source text of a node."""
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _unwrap(node: Any) -> Any:
    """Return the definition inside a decorated_definition."""
    if node.type == "decorated_definition":
        return node.child_by_field_name("definition")
    return node


def iter_definitions(
    root: Any,
    source: bytes,
    prefix: str = "",
    in_class: bool = False,
) -> Iterator[Definition]:
    """Yield module-level and class-level definitions in source order.

    Function bodies are not entered; nested classes are.

    Args:
        root: Module node or class body block
        source: Source bytes
        prefix: Qualified name of the enclosing class
        in_class: Whether root is a class body
    """
    for child in root.children:
        node = _unwrap(child)
        if node is None or node.type not in DEFINITION_TYPES:
            continue
        name_node = node.child_by_field_name("name")
        if name_node is None:
            continue
        name = node_text(source, name_node)
        qualified_name = f"{prefix}.{name}" if prefix else name
        yield Definition(qualified_name=qualified_name, node=node, in_class=in_class)

        if node.type == "class_definition":
            body = node.child_by_field_name("body")
            if body is not None:
                yield from iter_definitions(body, source, qualified_name, in_class=True)


def find_definition(root: Any, source: bytes, qualified_name: str) -> Definition | None:
    """Locate a definition by its dotted name within a module."""
    for definition in iter_definitions(root, source):
        if definition.qualified_name == qualified_name:
            return definition
    return None


def docstring_node(definition_node: Any) -> Any | None:
    """Return the expression_statement holding the docstring, if any."""
    body = definition_node.child_by_field_name("body")
    if body is None:
        return None
    for child in body.named_children:
        if child.type == "comment":
            continue
        if child.type == "expression_statement":
            first = child.named_children[0] if child.named_children else None
            if first is not None and first.type in ("string", "concatenated_string"):
                return child
        elif child.type == "string":
            return child
        return None
    return None


def clean_docstring(raw: str) -> str:
    """Strip prefix, quotes and common indentation from a string literal."""
    text = _STRING_PREFIX.sub("", raw.strip(), count=1)
    for quote in ('"""', "'''", '"', "'"):
        if text.startswith(quote) and text.endswith(quote) and len(text) >= 2 * len(quote):
            text = text[len(quote) : -len(quote)]
            break
    return inspect.cleandoc(text)


def extract_docstring(source: bytes, definition_node: Any) -> str | None:
    """Return the cleaned docstring of a definition, or None."""
    node = docstring_node(definition_node)
    if node is None:
        return None
    return clean_docstring(node_text(source, node)) or None


def signature_text(source: bytes, definition_node: Any) -> str:
    """Return the definition header up to and including its colon."""
    body = definition_node.child_by_field_name("body")
    end = body.start_byte if body is not None else definition_node.end_byte
    header = source[definition_node.start_byte : end].decode("utf-8", errors="replace")
    return header.rstrip()


def parameter_annotations(source: bytes, function_node: Any) -> dict[str, str]:
    """Map parameter names to their annotation text ("" when unannotated).

    Star parameters keep their name without stars; bare separators
    (`*`, `/`) are skipped.
    """
    params: dict[str, str] = {}
    parameters = function_node.child_by_field_name("parameters")
    if parameters is None:
        return params

    for param in parameters.named_children:
        annotation = ""
        if param.type in ("typed_parameter", "typed_default_parameter"):
            type_node = param.child_by_field_name("type")
            annotation = node_text(source, type_node) if type_node is not None else ""

        name_node = param.child_by_field_name("name")
        if name_node is None:
            for sub in [param, *param.named_children]:
                if sub.type == "identifier":
                    name_node = sub
                    break
                if sub.type in ("list_splat_pattern", "dictionary_splat_pattern"):
                    name_node = next(
                        (n for n in sub.named_children if n.type == "identifier"), None
                    )
                    break
        if name_node is None:
            continue
        params[node_text(source, name_node)] = annotation

    return params


def return_annotation(source: bytes, function_node: Any) -> str | None:
    """Return the return annotation text, if any."""
    type_node = function_node.child_by_field_name("return_type")
    if type_node is None:
        return None
    return node_text(source, type_node).strip() or None

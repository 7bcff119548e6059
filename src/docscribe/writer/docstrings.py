"""Docstring insertion into Python source files.

The writer locates a definition by its dotted name with tree-sitter, then
either replaces its existing docstring or inserts a new one as the first
statement of its body. Files keep their line endings and are replaced
atomically.
"""

import logging
import re
import textwrap
from pathlib import Path
from typing import Any

from docscribe.analyzers.tree import PythonSourceParser, docstring_node, find_definition
from docscribe.utils.paths import atomic_write_bytes

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```[\w-]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


def normalize_generated_text(text: str) -> str:
    """Strip markdown fences and surrounding quotes from provider output."""
    body = text.strip()
    fenced = _FENCE.match(body)
    if fenced:
        body = fenced.group(1).strip()
    for quote in ('"""', "'''"):
        if body.startswith(quote):
            body = body[len(quote) :]
        if body.endswith(quote):
            body = body[: -len(quote)]
    return body.strip()


def format_docstring(text: str, indent: str) -> list[str]:
    """Render docstring lines at the given indentation.

    Args:
        text: Docstring body
        indent: Leading whitespace of the body statements

    Returns:
        Source lines without line terminators
    """
    body = normalize_generated_text(text).replace('"""', '\\"\\"\\"')
    if body.endswith("\\"):
        body += " "
    lines = body.splitlines() or [""]
    summary = lines[0].strip()
    rest = textwrap.dedent("\n".join(lines[1:])).splitlines()

    if not any(line.strip() for line in rest):
        return [f'{indent}"""{summary}"""']

    rendered = [f'{indent}"""{summary}']
    rendered.extend(f"{indent}{line}".rstrip() if line.strip() else "" for line in rest)
    rendered.append(f'{indent}"""')
    return rendered


def _leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def _colon_row(definition_node: Any) -> int | None:
    """Row of the colon that ends a definition header."""
    row = None
    for child in definition_node.children:
        if child.type == ":":
            row = child.start_point[0]
        elif child.type == "block":
            break
    return row


class DocstringWriter:
    """Writes generated docstrings into source files."""

    def __init__(self, parser: PythonSourceParser | None = None) -> None:
        self.parser = parser or PythonSourceParser()

    def insert_documentation(
        self,
        file_path: str | Path,
        symbol_identifier: str,
        text: str,
    ) -> bool:
        """Insert or replace the docstring of a symbol.

        Args:
            file_path: Source file containing the symbol
            symbol_identifier: Dotted name of the symbol within the file
            text: Docstring body

        Returns:
            True on success; False if the symbol cannot be found or its body
            shares a line with its header

        Raises:
            OSError: If the file cannot be read or replaced
        """
        path = Path(file_path)
        source = path.read_bytes()
        try:
            content = source.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Cannot write %s: not UTF-8", path)
            return False

        tree = self.parser.parse(source)
        definition = find_definition(tree.root_node, source, symbol_identifier)
        if definition is None:
            logger.warning("Symbol %s not found in %s", symbol_identifier, path)
            return False

        node = definition.node
        body = node.child_by_field_name("body")
        if body is None or body.start_point[0] == _colon_row(node):
            logger.warning("Cannot document %s: body is on the definition line", symbol_identifier)
            return False

        crlf = "\r\n" in content
        lines = content.split("\n")

        existing = docstring_node(node)
        if existing is not None:
            start_row, end_row = existing.start_point[0], existing.end_point[0]
            indent = _leading_whitespace(lines[start_row])
        else:
            first_statement = next(
                (child for child in body.named_children if child.type != "comment"), None
            )
            start_row = (first_statement or body).start_point[0]
            end_row = start_row - 1
            indent = _leading_whitespace(lines[start_row])

        new_lines = [line + "\r" if crlf else line for line in format_docstring(text, indent)]
        lines[start_row : end_row + 1] = new_lines

        atomic_write_bytes(path, "\n".join(lines).encode("utf-8"))
        logger.debug(
            "%s docstring for %s in %s",
            "Replaced" if existing is not None else "Inserted",
            symbol_identifier,
            path,
        )
        return True

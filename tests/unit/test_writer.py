"""Unit tests for docstring insertion."""

from pathlib import Path

import pytest

from docscribe.writer.docstrings import (
    DocstringWriter,
    format_docstring,
    normalize_generated_text,
)


@pytest.fixture
def writer() -> DocstringWriter:
    """Return a writer with its own parser."""
    return DocstringWriter()


class TestFormatting:
    """Tests for text normalization and docstring rendering."""

    def test_strips_fences_and_quotes(self) -> None:
        """Test markdown fences and triple quotes are removed."""
        raw = '```python\n"""Add two numbers."""\n```'

        assert normalize_generated_text(raw) == "Add two numbers."

    def test_one_line(self) -> None:
        """Test a summary-only docstring stays on one line."""
        assert format_docstring("Add two numbers.", "    ") == ['    """Add two numbers."""']

    def test_multi_line(self) -> None:
        """Test sections are indented under the opening quotes."""
        text = "Add two numbers.\n\nArgs:\n    a: First\n    b: Second"

        assert format_docstring(text, "    ") == [
            '    """Add two numbers.',
            "",
            "    Args:",
            "        a: First",
            "        b: Second",
            '    """',
        ]

    def test_embedded_triple_quotes_escaped(self) -> None:
        """Test generated text cannot terminate the docstring early."""
        lines = format_docstring('Use """ carefully.', "")

        assert lines == ['"""Use \\"\\"\\" carefully."""']


class TestInsertDocumentation:
    """Tests for DocstringWriter.insert_documentation."""

    def test_insert_into_function(self, writer: DocstringWriter, tmp_path: Path) -> None:
        """Test a docstring is inserted as the first body statement."""
        path = tmp_path / "mod.py"
        path.write_text("def add(a: int, b: int) -> int:\n    return a + b\n")

        assert writer.insert_documentation(path, "add", "Add two numbers.")

        assert path.read_text() == (
            'def add(a: int, b: int) -> int:\n    """Add two numbers."""\n    return a + b\n'
        )

    def test_insert_into_method(self, writer: DocstringWriter, tmp_path: Path) -> None:
        """Test nested definitions are addressed by dotted name."""
        path = tmp_path / "mod.py"
        path.write_text(
            "class Store:\n"
            "    def get(self, key):\n"
            "        # look it up\n"
            "        return key\n"
        )

        text = "Fetch a value.\n\nArgs:\n    key: Key"

        assert writer.insert_documentation(path, "Store.get", text)

        assert path.read_text() == (
            "class Store:\n"
            "    def get(self, key):\n"
            "        # look it up\n"
            '        """Fetch a value.\n'
            "\n"
            "        Args:\n"
            "            key: Key\n"
            '        """\n'
            "        return key\n"
        )

    def test_replace_existing_docstring(self, writer: DocstringWriter, tmp_path: Path) -> None:
        """Test an existing docstring is replaced, not duplicated."""
        path = tmp_path / "mod.py"
        path.write_text(
            "def merge(left, right):\n"
            '    """Merge two mappings.\n'
            "\n"
            "    Args:\n"
            "        extra: Removed\n"
            '    """\n'
            "    return {**left, **right}\n"
        )

        assert writer.insert_documentation(path, "merge", "Merge two mappings.")

        assert path.read_text() == (
            "def merge(left, right):\n"
            '    """Merge two mappings."""\n'
            "    return {**left, **right}\n"
        )

    def test_preserves_crlf(self, writer: DocstringWriter, tmp_path: Path) -> None:
        """Test Windows line endings are kept."""
        path = tmp_path / "mod.py"
        path.write_bytes(b"def f(x):\r\n    return x\r\n")

        assert writer.insert_documentation(path, "f", "Identity.")

        assert path.read_bytes() == b'def f(x):\r\n    """Identity."""\r\n    return x\r\n'

    def test_one_line_body_is_refused(self, writer: DocstringWriter, tmp_path: Path) -> None:
        """Test a body on the definition line is left alone."""
        path = tmp_path / "mod.py"
        original = "def f(x): return x\n"
        path.write_text(original)

        assert not writer.insert_documentation(path, "f", "Identity.")
        assert path.read_text() == original

    def test_missing_symbol(self, writer: DocstringWriter, tmp_path: Path) -> None:
        """Test an unknown symbol returns False and leaves the file untouched."""
        path = tmp_path / "mod.py"
        path.write_text("def f(x):\n    return x\n")

        assert not writer.insert_documentation(path, "g", "Nope.")
        assert path.read_text() == "def f(x):\n    return x\n"

    def test_no_temp_file_left(self, writer: DocstringWriter, tmp_path: Path) -> None:
        """Test the atomic replace leaves only the target file."""
        path = tmp_path / "mod.py"
        path.write_text("def f(x):\n    return x\n")

        writer.insert_documentation(path, "f", "Identity.")

        assert [p.name for p in tmp_path.iterdir()] == ["mod.py"]

    def test_missing_file_raises(self, writer: DocstringWriter, tmp_path: Path) -> None:
        """Test I/O errors propagate to the caller."""
        with pytest.raises(OSError):
            writer.insert_documentation(tmp_path / "absent.py", "f", "Nope.")

"""Source file writers."""

from docscribe.writer.docstrings import DocstringWriter, format_docstring, normalize_generated_text

__all__ = ["DocstringWriter", "format_docstring", "normalize_generated_text"]

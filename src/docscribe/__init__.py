"""docscribe - LLM-assisted API documentation for Python projects.

docscribe finds public classes, functions and methods that lack docstrings,
drafts documentation for them with an LLM provider, and writes the drafts
back into the source files behind a backup that can be rolled back.

Core guarantees:
- Bounded concurrency: provider calls never exceed the configured parallelism
- Partial failure isolation: one failing symbol never aborts the batch
- Free repeat dry runs: responses are cached per project for 24 hours
- Reversible writes: every write is preceded by a complete file snapshot
"""

__version__ = "0.1.0"
__author__ = "docscribe Contributors"

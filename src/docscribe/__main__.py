"""Entry point for running docscribe as a module.

Usage:
    python -m docscribe [command] [options]

Example:
    python -m docscribe generate ./my_project --dry-run
    python -m docscribe check
"""

from docscribe.cli import app

if __name__ == "__main__":
    app()

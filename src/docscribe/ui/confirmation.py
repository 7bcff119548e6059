"""User confirmation surfaces.

The orchestrator asks for confirmation at two points: before a batch write
and before rolling back a failed write. Implementations:
- ConsoleConfirmation: interactive typer prompts (an empty answer means yes)
- AutoConfirmation: fixed answers for --yes, CI and tests
"""

import logging
from pathlib import Path
from typing import Protocol

import typer

logger = logging.getLogger(__name__)


class ConfirmationPrompt(Protocol):
    """Decisions the orchestrator delegates to the user."""

    def confirm_batch_write(self, change_count: int, file_count: int) -> bool: ...

    def confirm_rollback(self, file_count: int, backup_path: Path) -> bool: ...


class ConsoleConfirmation:
    """Asks on the terminal."""

    def confirm_batch_write(self, change_count: int, file_count: int) -> bool:
        """Ask whether to write the suggestions."""
        return typer.confirm(
            f"Write {change_count} documentation entr{'y' if change_count == 1 else 'ies'} "
            f"to {file_count} file(s)?",
            default=True,
        )

    def confirm_rollback(self, file_count: int, backup_path: Path) -> bool:
        """Ask whether to restore the backup after a failed write."""
        typer.echo(f"Writing failed. Backup of {file_count} file(s) is at {backup_path}")
        return typer.confirm("Roll back all files to the backup?", default=True)


class AutoConfirmation:
    """Answers every prompt with fixed values.

    Attributes:
        write_answer: Answer to confirm_batch_write
        rollback_answer: Answer to confirm_rollback
        write_requests: (change_count, file_count) of every write prompt
        rollback_requests: (file_count, backup_path) of every rollback prompt
    """

    def __init__(self, write_answer: bool = True, rollback_answer: bool = True) -> None:
        self.write_answer = write_answer
        self.rollback_answer = rollback_answer
        self.write_requests: list[tuple[int, int]] = []
        self.rollback_requests: list[tuple[int, Path]] = []

    def confirm_batch_write(self, change_count: int, file_count: int) -> bool:
        self.write_requests.append((change_count, file_count))
        logger.info(
            "Auto-%s writing %d change(s) to %d file(s)",
            "confirmed" if self.write_answer else "declined",
            change_count,
            file_count,
        )
        return self.write_answer

    def confirm_rollback(self, file_count: int, backup_path: Path) -> bool:
        self.rollback_requests.append((file_count, backup_path))
        logger.info(
            "Auto-%s rollback of %d file(s) from %s",
            "confirmed" if self.rollback_answer else "declined",
            file_count,
            backup_path,
        )
        return self.rollback_answer

"""Backup and rollback of source files.

Snapshots live under a project-scoped directory:
    <home>/backups/<project hash>/backup-YYYY-MM-DD-HHMMSS-ffffff[-N]/<relative path>

A snapshot directory is claimed atomically; when the name is taken a numeric
suffix is appended, so two snapshots never share a directory. Every file is
copied to a sibling temp file and renamed into place.
"""

import asyncio
import logging
import shutil
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import Path

from docscribe.exceptions import BackupError
from docscribe.models.backup import BackupSnapshot, RestoreResult
from docscribe.utils.paths import atomic_copy, compute_project_hash, resolve_home

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup-"
TEMP_SUFFIX = ".tmp"


class BackupManager:
    """Creates and restores file snapshots."""

    def __init__(
        self,
        home: str | Path | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            home: docscribe data directory (defaults to ~/.docscribe)
            clock: Time source used to name snapshots
        """
        self.home = resolve_home(home)
        self._clock = clock or (lambda: datetime.now(UTC))

    def get_project_backup_root(self, project_path: str | Path) -> Path:
        """Directory holding every snapshot of a project."""
        return self.home / "backups" / compute_project_hash(project_path)

    def _claim_directory(self, parent: Path, created_at: datetime) -> Path:
        """Create a new, unused snapshot directory."""
        parent.mkdir(parents=True, exist_ok=True)
        base_name = f"{BACKUP_PREFIX}{created_at.strftime('%Y-%m-%d-%H%M%S-%f')}"

        candidate = parent / base_name
        suffix = 0
        while True:
            try:
                candidate.mkdir(exist_ok=False)
                return candidate
            except FileExistsError:
                suffix += 1
                candidate = parent / f"{base_name}-{suffix}"

    def _select_files(self, project_root: Path, files: Iterable[str | Path]) -> list[Path]:
        """Keep absolute, existing files inside the project, warning about the rest."""
        selected: list[Path] = []
        seen: set[Path] = set()
        for raw in files:
            path = Path(raw)
            if not path.is_absolute():
                logger.warning("Skipping backup of non-absolute path: %s", path)
                continue
            if not path.is_file():
                logger.warning("Skipping backup of missing file: %s", path)
                continue
            resolved = path.resolve()
            if not resolved.is_relative_to(project_root):
                logger.warning("Skipping backup of file outside the project: %s", path)
                continue
            if resolved not in seen:
                seen.add(resolved)
                selected.append(resolved)
        return selected

    async def create_backup(
        self,
        project_path: str | Path,
        files: Iterable[str | Path],
    ) -> BackupSnapshot:
        """Snapshot files before they are modified.

        Args:
            project_path: Project root the files are relative to
            files: Absolute paths of the files about to change

        Returns:
            The created snapshot

        Raises:
            BackupError: If the snapshot cannot be completed; the partial
                directory is removed
        """
        project_root = Path(project_path).expanduser().resolve()
        try:
            selected = self._select_files(project_root, files)
        except OSError as e:
            raise BackupError(f"Cannot inspect files to back up: {e}") from e
        created_at = self._clock()

        try:
            backup_dir = self._claim_directory(
                self.get_project_backup_root(project_root), created_at
            )
        except OSError as e:
            raise BackupError(f"Cannot create backup directory: {e}") from e

        relative_files: list[Path] = []
        try:
            for source in selected:
                relative = source.relative_to(project_root)
                await asyncio.to_thread(atomic_copy, source, backup_dir / relative)
                relative_files.append(relative)
        except OSError as e:
            shutil.rmtree(backup_dir, ignore_errors=True)
            raise BackupError(f"Backup failed while copying {source}: {e}") from e

        logger.info("Backed up %d file(s) to %s", len(relative_files), backup_dir)
        return BackupSnapshot(
            path=backup_dir,
            project_path=project_root,
            project_hash=compute_project_hash(project_root),
            created_at=created_at,
            files=tuple(relative_files),
        )

    def validate_backup(self, backup_path: str | Path) -> bool:
        """Check that a backup directory exists (no structural validation).

        Args:
            backup_path: Snapshot directory; a leading ~ is expanded

        Returns:
            True if the directory exists
        """
        return Path(backup_path).expanduser().is_dir()

    def list_backup_files(self, backup_path: str | Path) -> list[Path]:
        """List the files of a snapshot relative to its directory."""
        backup_dir = Path(backup_path).expanduser()
        return sorted(
            p.relative_to(backup_dir)
            for p in backup_dir.rglob("*")
            if p.is_file() and not p.name.endswith(TEMP_SUFFIX)
        )

    async def restore_backup(
        self,
        backup_path: str | Path,
        project_path: str | Path,
    ) -> RestoreResult:
        """Copy every file of a snapshot back into the project.

        Restoration is best-effort per file: a failing file is logged and
        recorded, and the remaining files are still restored.

        Args:
            backup_path: Snapshot directory
            project_path: Project root to restore into

        Returns:
            RestoreResult with the number of restored files and the failures

        Raises:
            BackupError: If the snapshot directory does not exist
        """
        if not self.validate_backup(backup_path):
            raise BackupError(f"Backup not found: {backup_path}")

        backup_dir = Path(backup_path).expanduser().resolve()
        project_root = Path(project_path).expanduser().resolve()
        result = RestoreResult(backup_path=backup_dir)

        for relative in self.list_backup_files(backup_dir):
            try:
                await asyncio.to_thread(atomic_copy, backup_dir / relative, project_root / relative)
                result.files_restored += 1
                logger.debug("Restored %s", relative)
            except OSError as e:
                logger.error("Failed to restore %s: %s", relative, e)
                result.failed_files.append(str(relative))

        if result.failed_files:
            logger.warning(
                "Restored %d file(s) from %s, %d failed",
                result.files_restored,
                backup_dir,
                len(result.failed_files),
            )
        else:
            logger.info("Restored %d file(s) from %s", result.files_restored, backup_dir)
        return result

    def list_backups(self, project_path: str | Path) -> list[Path]:
        """List a project's snapshots, newest first."""
        root = self.get_project_backup_root(project_path)
        if not root.is_dir():
            return []
        backups = [p for p in root.iterdir() if p.is_dir() and p.name.startswith(BACKUP_PREFIX)]
        return sorted(backups, key=lambda p: p.name, reverse=True)

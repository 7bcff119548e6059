"""Backup snapshot entities."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class BackupSnapshot:
    """A complete, timestamped copy of a file set.

    Attributes:
        path: Snapshot directory
        project_path: Project root the files are relative to
        project_hash: Stable hash of the project path
        created_at: Snapshot creation time
        files: Backed-up paths relative to the project root
    """

    path: Path
    project_path: Path
    project_hash: str
    created_at: datetime
    files: tuple[Path, ...] = ()

    @property
    def file_count(self) -> int:
        """Number of files in the snapshot."""
        return len(self.files)


@dataclass
class RestoreResult:
    """Outcome of restoring a snapshot.

    Attributes:
        backup_path: Snapshot that was restored
        files_restored: Number of files copied back
        failed_files: Relative paths that could not be restored
    """

    backup_path: Path
    files_restored: int = 0
    failed_files: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when every file was restored."""
        return not self.failed_files

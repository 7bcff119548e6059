"""Filesystem helpers shared by the cache and backup stores."""

import hashlib
import os
from pathlib import Path

DEFAULT_HOME = Path("~/.docscribe")


def resolve_home(home: str | Path | None = None) -> Path:
    """Return the absolute docscribe data directory.

    Args:
        home: Explicit directory; defaults to ~/.docscribe

    Returns:
        Expanded absolute path (not necessarily existing)
    """
    return Path(home or DEFAULT_HOME).expanduser().resolve()


def compute_project_hash(project_path: str | Path) -> str:
    """Compute the stable identifier of a project.

    The identifier is the first 16 lowercase hex characters of the SHA-256
    digest of the canonical absolute project path, so the same project maps to
    the same cache and backup directories on every run.

    Args:
        project_path: Project root (relative paths are resolved against cwd)

    Returns:
        16-character hex string
    """
    canonical = str(Path(project_path).expanduser().resolve())
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def atomic_write_bytes(destination: Path, data: bytes) -> None:
    """Write bytes to a sibling temp file and rename it over the destination.

    Args:
        destination: Final file path
        data: Content to write

    Raises:
        OSError: If writing or renaming fails (the temp file is removed)
    """
    temp_path = destination.with_name(destination.name + ".tmp")
    try:
        with open(temp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, destination)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


def atomic_copy(source: Path, destination: Path) -> None:
    """Copy a file using the temp-then-rename pattern.

    Args:
        source: File to copy
        destination: Target path; parent directories are created

    Raises:
        OSError: If the copy fails
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    atomic_write_bytes(destination, source.read_bytes())

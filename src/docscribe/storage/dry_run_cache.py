"""Dry-run response cache.

One JSON file per project:
    <home>/cache/<project hash>/dry-run-cache.json

Entries are keyed by (symbol id, provider) and are fresh for 24 hours.
Writes go through a temp file and an atomic rename, so a crash mid-write
leaves the previous cache intact.
"""

import json
import logging
import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path

from docscribe.models.cache import DryRunCache, DryRunCacheEntry
from docscribe.utils.paths import atomic_write_bytes, compute_project_hash, resolve_home

logger = logging.getLogger(__name__)

CACHE_FILENAME = "dry-run-cache.json"
CACHE_TTL = timedelta(hours=24)


def is_cache_expired(cached_at: datetime, now: datetime | None = None) -> bool:
    """Check whether an entry is too old to be served.

    Args:
        cached_at: When the entry was cached
        now: Reference time (defaults to the current UTC time)

    Returns:
        True if the entry is older than 24 hours
    """
    if cached_at.tzinfo is None:
        cached_at = cached_at.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)
    return now - cached_at > CACHE_TTL


class DryRunCacheManager:
    """Loads, updates and clears per-project dry-run caches.

    Saves are serialized by an in-process lock; concurrent writers in
    separate processes are not supported.
    """

    def __init__(self, home: str | Path | None = None) -> None:
        """Initialize the manager.

        Args:
            home: docscribe data directory (defaults to ~/.docscribe)
        """
        self.home = resolve_home(home)
        self._lock = threading.Lock()

    def get_cache_file_path(self, project_path: str | Path) -> Path:
        """Return the cache file location for a project."""
        return self.home / "cache" / compute_project_hash(project_path) / CACHE_FILENAME

    def load_cache(self, project_path: str | Path) -> DryRunCache | None:
        """Load a project's cache.

        Args:
            project_path: Project root

        Returns:
            The cache, or None if it is absent, unreadable or malformed
        """
        cache_file = self.get_cache_file_path(project_path)
        if not cache_file.exists():
            logger.debug("No dry-run cache at %s", cache_file)
            return None

        try:
            data = json.loads(cache_file.read_text(encoding="utf-8"))
            cache = DryRunCache.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable dry-run cache %s: %s", cache_file, e)
            return None

        logger.debug("Loaded %d cached entries from %s", len(cache.entries), cache_file)
        return cache

    def save_entry(self, project_path: str | Path, entry: DryRunCacheEntry) -> DryRunCache:
        """Add or replace the entry for (symbol id, provider) and persist the cache.

        Args:
            project_path: Project root
            entry: Entry to store

        Returns:
            The cache as written

        Raises:
            OSError: If the cache file cannot be written
        """
        cache_file = self.get_cache_file_path(project_path)
        with self._lock:
            cache = self.load_cache(project_path) or DryRunCache(
                project_hash=compute_project_hash(project_path),
                project_path=str(Path(project_path).expanduser().resolve()),
            )
            updated = cache.with_entry(entry)

            cache_file.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(updated.to_dict(), indent=2).encode("utf-8")
            atomic_write_bytes(cache_file, payload)

        logger.debug("Cached %s for provider %s", entry.symbol_id, entry.provider)
        return updated

    def get_fresh_entry(
        self,
        cache: DryRunCache | None,
        symbol_id: str,
        provider: str,
        now: datetime | None = None,
    ) -> DryRunCacheEntry | None:
        """Return a cache hit, or None when absent or expired."""
        if cache is None:
            return None
        entry = cache.find(symbol_id, provider)
        if entry is None:
            return None
        if is_cache_expired(entry.cached_at, now):
            logger.debug("Cached entry for %s expired", symbol_id)
            return None
        return entry

    def clear_cache(self, project_path: str | Path) -> bool:
        """Delete a project's cache file.

        Args:
            project_path: Project root

        Returns:
            True if a file was deleted, False if there was none
        """
        cache_file = self.get_cache_file_path(project_path)
        with self._lock:
            if not cache_file.exists():
                return False
            cache_file.unlink(missing_ok=True)
        logger.info("Cleared dry-run cache %s", cache_file)
        return True

    # Expose the module-level check on instances for callers holding a manager
    is_cache_expired = staticmethod(is_cache_expired)

"""Persistent state owned by docscribe: the dry-run cache and file backups."""

from docscribe.storage.backup import BackupManager
from docscribe.storage.dry_run_cache import CACHE_TTL, DryRunCacheManager, is_cache_expired

__all__ = [
    "CACHE_TTL",
    "BackupManager",
    "DryRunCacheManager",
    "is_cache_expired",
]

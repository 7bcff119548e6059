"""Dry-run cache entities.

Entries are frozen; refreshing a stale entry produces a new entry and a new
cache object rather than mutating the stored one.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class DryRunCacheEntry:
    """One cached provider response for a (symbol, provider) pair.

    Attributes:
        symbol_id: Symbol the text documents
        provider: Provider that produced the text
        model: Model that produced the text
        text: Generated documentation
        cached_at: When the response was cached (UTC)
    """

    symbol_id: str
    provider: str
    model: str
    text: str
    cached_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def key(self) -> tuple[str, str]:
        """Cache key of this entry."""
        return (self.symbol_id, self.provider)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "symbol_id": self.symbol_id,
            "provider": self.provider,
            "model": self.model,
            "text": self.text,
            "cached_at": self.cached_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DryRunCacheEntry":
        """Create an entry from a dictionary.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the timestamp is malformed
        """
        return cls(
            symbol_id=str(data["symbol_id"]),
            provider=str(data["provider"]),
            model=str(data.get("model", "")),
            text=str(data["text"]),
            cached_at=_parse_timestamp(str(data["cached_at"])),
        )


@dataclass(frozen=True)
class DryRunCache:
    """Whole-project cache file contents.

    Attributes:
        project_hash: Stable hash of the project path
        project_path: Project root as given when the cache was created
        created_at: When the cache file was first written
        entries: Entries in insertion order
    """

    project_hash: str
    project_path: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    entries: tuple[DryRunCacheEntry, ...] = ()

    def find(self, symbol_id: str, provider: str) -> DryRunCacheEntry | None:
        """Look up the entry for a (symbol, provider) pair."""
        for entry in self.entries:
            if entry.key == (symbol_id, provider):
                return entry
        return None

    def with_entry(self, entry: DryRunCacheEntry) -> "DryRunCache":
        """Return a new cache with the entry added or replaced by key."""
        kept = tuple(e for e in self.entries if e.key != entry.key)
        return DryRunCache(
            project_hash=self.project_hash,
            project_path=self.project_path,
            created_at=self.created_at,
            entries=(*kept, entry),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "project_hash": self.project_hash,
            "project_path": self.project_path,
            "created_at": self.created_at.isoformat(),
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DryRunCache":
        """Create a cache from a dictionary.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a timestamp is malformed
        """
        return cls(
            project_hash=str(data["project_hash"]),
            project_path=str(data.get("project_path", "")),
            created_at=_parse_timestamp(str(data["created_at"])),
            entries=tuple(DryRunCacheEntry.from_dict(e) for e in data.get("entries", [])),
        )

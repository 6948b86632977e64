"""Reconciliation state carried from stage to stage.

Each stage of a run receives a ReconciliationContext and returns a new one.
Nothing is mutated in place, so a stage's effect on the run is exactly
the difference between its input and output contexts.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Self


if TYPE_CHECKING:
    from collections.abc import Iterable

    from cachereclaim.core.models import CacheEntry, DeletionRecord


@dataclass(frozen=True, slots=True)
class ReconciliationContext:
    """Immutable state of one reconciliation run.

    Attributes:
        entries: Non-persisted cache entries loaded at the start of the run.
        indexed: Content ids still present in the index (shrinks on eviction).
        protected_locations: Locations of persisted entries; never severed.
        excluded: Content ids some catalog still needs. Append-only,
            duplicates permitted, membership tested by containment.
        records: Deletion records in the order they were produced.
        degraded_sources: Providers that failed and were treated as empty.
        severed_removed: Number of severed folders removed from disk.
    """

    entries: tuple[CacheEntry, ...] = ()
    indexed: frozenset[str] = frozenset()
    protected_locations: tuple[str, ...] = ()
    excluded: tuple[str, ...] = ()
    records: tuple[DeletionRecord, ...] = ()
    degraded_sources: tuple[str, ...] = ()
    severed_removed: int = 0

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[CacheEntry],
        protected_locations: Iterable[str] = (),
    ) -> Self:
        """Start a run from the loaded cache index.

        Args:
            entries: Non-persisted entries, in index order.
            protected_locations: Locations of persisted entries.

        Returns:
            A context where every loaded entry is still indexed.
        """
        loaded = tuple(entries)
        return cls(
            entries=loaded,
            indexed=frozenset(e.content_id for e in loaded),
            protected_locations=tuple(protected_locations),
        )

    def find_entry(self, content_id: str) -> CacheEntry | None:
        """Return the loaded entry for content_id if it is still indexed."""
        if content_id not in self.indexed:
            return None
        for entry in self.entries:
            if entry.content_id == content_id:
                return entry
        return None

    def is_excluded(self, content_id: str) -> bool:
        """Check whether any catalog marked content_id as still needed."""
        return content_id in self.excluded

    def with_excluded(self, content_ids: Iterable[str]) -> Self:
        """Return a new context with content_ids appended to the exclusions."""
        return replace(self, excluded=self.excluded + tuple(content_ids))

    def with_record(self, record: DeletionRecord) -> Self:
        """Return a new context with record appended and its id unindexed."""
        return replace(
            self,
            records=(*self.records, record),
            indexed=self.indexed - {record.content_id},
        )

    def with_degraded(self, source: str) -> Self:
        """Return a new context noting that source was treated as empty."""
        if source in self.degraded_sources:
            return self
        return replace(self, degraded_sources=(*self.degraded_sources, source))

    def with_severed_removed(self, count: int) -> Self:
        """Return a new context counting count more removed severed folders."""
        return replace(self, severed_removed=self.severed_removed + count)


"""Unit tests for ReconciliationContext."""

import pytest

from cachereclaim.core.context import ReconciliationContext
from cachereclaim.core.models import CacheEntry, DeletionRecord, DeletionStatus


def _entries() -> list[CacheEntry]:
    return [
        CacheEntry(content_id="A", location=r"C:\ccmcache\a"),
        CacheEntry(content_id="B", location=r"C:\ccmcache\b"),
    ]


@pytest.mark.core
@pytest.mark.tier(0)
class TestReconciliationContext:
    """Tests for the immutable run state."""

    def test_from_entries_indexes_every_entry(self) -> None:
        """All loaded entries start out indexed."""
        ctx = ReconciliationContext.from_entries(_entries())
        assert ctx.indexed == frozenset({"A", "B"})
        assert ctx.find_entry("A") == _entries()[0]

    def test_find_entry_returns_none_for_unknown(self) -> None:
        """Unknown content ids are not found."""
        ctx = ReconciliationContext.from_entries(_entries())
        assert ctx.find_entry("Z") is None

    def test_with_record_unindexes_content_id(self) -> None:
        """An evicted entry is no longer found."""
        ctx = ReconciliationContext.from_entries(_entries())
        record = DeletionRecord("App", "A", r"C:\ccmcache\a", 1.0, DeletionStatus.DELETED)

        after = ctx.with_record(record)

        assert after.find_entry("A") is None
        assert after.records == (record,)
        # The original context is untouched
        assert ctx.find_entry("A") is not None
        assert ctx.records == ()

    def test_exclusions_are_append_only_with_duplicates(self) -> None:
        """Exclusions accumulate, duplicates included."""
        ctx = ReconciliationContext().with_excluded(["A"]).with_excluded(["A", "B"])
        assert ctx.excluded == ("A", "A", "B")
        assert ctx.is_excluded("B")
        assert not ctx.is_excluded("C")

    def test_with_degraded_records_each_source_once(self) -> None:
        """Degraded sources are listed once, in order."""
        ctx = (
            ReconciliationContext()
            .with_degraded("packages")
            .with_degraded("updates")
            .with_degraded("packages")
        )
        assert ctx.degraded_sources == ("packages", "updates")

    def test_with_severed_removed_accumulates(self) -> None:
        """Severed removal counts add up."""
        ctx = ReconciliationContext().with_severed_removed(2).with_severed_removed(1)
        assert ctx.severed_removed == 3

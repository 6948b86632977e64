"""Unit tests for the orphan and severed folder scans."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from cachereclaim.adapters.filesystem import LocalFilesystem
from cachereclaim.core.cache_maintenance import (
    clean_orphaned_entries,
    expected_locations,
    find_severed_folders,
    remove_severed_folders,
)
from cachereclaim.core.context import ReconciliationContext
from cachereclaim.core.eviction import EvictionExecutor
from cachereclaim.core.models import (
    ORPHANED_ITEM_NAME,
    SEVERED_FOLDER_NAME,
    CacheEntry,
    DeletionStatus,
    normalize_location,
)


@pytest.mark.maintenance
@pytest.mark.tra("Service.OrphanScanner")
@pytest.mark.tier(1)
class TestCleanOrphanedEntries:
    """Tests for clean_orphaned_entries()."""

    def test_unclassified_entry_is_evicted_as_orphan(
        self,
        make_entry: Callable[..., CacheEntry],
        filesystem: LocalFilesystem,
        make_inventory: Callable[..., Any],
        make_manager: Callable[..., Any],
    ) -> None:
        """An entry no catalog mentioned is evicted as an orphan."""
        b = make_entry("B")
        inventory = make_inventory(entries=[b])
        ctx = ReconciliationContext.from_entries([b])

        ctx = clean_orphaned_entries(
            ctx, EvictionExecutor(make_manager(inventory), filesystem)
        )

        (record,) = ctx.records
        assert record.name == ORPHANED_ITEM_NAME
        assert record.content_id == "B"
        assert record.status is DeletionStatus.DELETED

    def test_excluded_entry_is_kept(
        self,
        make_entry: Callable[..., CacheEntry],
        filesystem: LocalFilesystem,
        make_inventory: Callable[..., Any],
        make_manager: Callable[..., Any],
    ) -> None:
        """Entries some catalog still needs are not orphans."""
        a = make_entry("A")
        manager = make_manager(make_inventory(entries=[a]))
        ctx = ReconciliationContext.from_entries([a]).with_excluded(["A"])

        ctx = clean_orphaned_entries(ctx, EvictionExecutor(manager, filesystem))

        assert ctx.records == ()
        assert manager.enumerated == []

    def test_entries_already_evicted_are_not_recorded_twice(
        self,
        make_entry: Callable[..., CacheEntry],
        filesystem: LocalFilesystem,
        make_inventory: Callable[..., Any],
        make_manager: Callable[..., Any],
    ) -> None:
        """Entries evicted by a catalog scan are only logged by the orphan scan."""
        a = make_entry("A")
        manager = make_manager(make_inventory(entries=[a]))
        executor = EvictionExecutor(manager, filesystem)
        ctx = executor.delete(ReconciliationContext.from_entries([a]), "A", "App")

        ctx = clean_orphaned_entries(ctx, executor)

        assert len(ctx.records) == 1
        assert manager.enumerated == ["A"]


@pytest.mark.maintenance
@pytest.mark.tra("Service.SeveredFolderScanner")
@pytest.mark.tier(1)
class TestRemoveSeveredFolders:
    """Tests for remove_severed_folders()."""

    def test_unindexed_folder_is_removed(
        self,
        cache_root: Path,
        make_entry: Callable[..., CacheEntry],
        filesystem: LocalFilesystem,
    ) -> None:
        """Folders without an index entry are deleted from disk."""
        indexed = make_entry("A")
        (cache_root / "stray").mkdir()
        (cache_root / "stray" / "file.msi").write_bytes(b"data")
        ctx = ReconciliationContext.from_entries([indexed])

        ctx = remove_severed_folders(ctx, filesystem, cache_root)

        assert not (cache_root / "stray").exists()
        assert Path(indexed.location).exists()
        assert ctx.severed_removed == 1
        assert ctx.records == ()

    def test_staging_folder_protects_itself_and_stripped_name(
        self, cache_root: Path, filesystem: LocalFilesystem
    ) -> None:
        """X.BDRTEMP keeps both itself and X; other folders go."""
        (cache_root / "X.BDRTEMP").mkdir()
        (cache_root / "X").mkdir()
        (cache_root / "Y").mkdir()
        ctx = ReconciliationContext.from_entries([])

        ctx = remove_severed_folders(ctx, filesystem, cache_root, ".BDRTEMP")

        assert (cache_root / "X.BDRTEMP").exists()
        assert (cache_root / "X").exists()
        assert not (cache_root / "Y").exists()
        assert ctx.severed_removed == 1

    def test_index_match_is_case_insensitive(
        self, cache_root: Path, filesystem: LocalFilesystem
    ) -> None:
        """Index locations match on-disk folders regardless of case."""
        (cache_root / "abc").mkdir()
        entry = CacheEntry("A", str(cache_root / "ABC"))
        ctx = ReconciliationContext.from_entries([entry])

        remove_severed_folders(ctx, filesystem, cache_root)

        assert (cache_root / "abc").exists()

    def test_persisted_locations_are_kept(
        self, cache_root: Path, filesystem: LocalFilesystem
    ) -> None:
        """Folders of persisted entries are never severed."""
        (cache_root / "keep").mkdir()
        ctx = ReconciliationContext.from_entries(
            [], protected_locations=[str(cache_root / "keep")]
        )

        remove_severed_folders(ctx, filesystem, cache_root)

        assert (cache_root / "keep").exists()

    def test_skipped_when_index_unavailable(
        self, cache_root: Path, filesystem: LocalFilesystem
    ) -> None:
        """Without an index nothing on disk is touched."""
        (cache_root / "any").mkdir()
        ctx = ReconciliationContext().with_degraded("cache_index")

        ctx = remove_severed_folders(ctx, filesystem, cache_root)

        assert (cache_root / "any").exists()
        assert ctx.severed_removed == 0

    def test_removal_failure_is_recorded(
        self, cache_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A folder that cannot be removed yields a Failed record."""
        (cache_root / "locked").mkdir()
        filesystem = LocalFilesystem()

        def _deny(path: Path) -> None:
            raise PermissionError(f"denied: {path}")

        monkeypatch.setattr(filesystem, "remove_tree", _deny)

        ctx = remove_severed_folders(
            ReconciliationContext.from_entries([]), filesystem, cache_root
        )

        (record,) = ctx.records
        assert record.name == SEVERED_FOLDER_NAME
        assert record.status is DeletionStatus.FAILED
        assert ctx.severed_removed == 0

    def test_find_severed_folders_does_not_delete(
        self, cache_root: Path, filesystem: LocalFilesystem
    ) -> None:
        """find_severed_folders() only lists."""
        (cache_root / "stray").mkdir()

        folders = find_severed_folders(
            ReconciliationContext.from_entries([]), filesystem, cache_root
        )

        assert folders == [cache_root / "stray"]
        assert (cache_root / "stray").exists()

    @pytest.mark.parametrize("name", [".BDRTEMP", ".bdrtemp"])
    def test_bare_staging_folder_is_kept(
        self, cache_root: Path, filesystem: LocalFilesystem, name: str
    ) -> None:
        """A folder named only by the staging suffix is staging, not severed."""
        (cache_root / name).mkdir()
        (cache_root / "stray").mkdir()

        folders = find_severed_folders(
            ReconciliationContext.from_entries([]), filesystem, cache_root
        )

        assert folders == [cache_root / "stray"]
        keep = expected_locations(
            ReconciliationContext.from_entries([]), [cache_root / name]
        )
        assert keep == {normalize_location(str(cache_root / name))}

    def test_skipped_when_index_describes_another_directory(
        self,
        cache_root: Path,
        filesystem: LocalFilesystem,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """An index whose locations all lie elsewhere leaves cache_root untouched."""
        (cache_root / "app").mkdir()
        (cache_root / "pkg").mkdir()
        ctx = ReconciliationContext.from_entries(
            [CacheEntry("A", r"C:\Windows\ccmcache\app")],
            protected_locations=[r"C:\Windows\ccmcache\pkg"],
        )

        with caplog.at_level(logging.WARNING, logger="cachereclaim"):
            ctx = remove_severed_folders(ctx, filesystem, cache_root)

        assert (cache_root / "app").exists()
        assert (cache_root / "pkg").exists()
        assert ctx.severed_removed == 0
        assert "skipping severed folder scan" in caplog.text

    def test_runs_when_some_locations_lie_under_cache_root(
        self,
        cache_root: Path,
        make_entry: Callable[..., CacheEntry],
        filesystem: LocalFilesystem,
    ) -> None:
        """One indexed folder under cache_root is enough to trust the index."""
        local = make_entry("A")
        (cache_root / "stray").mkdir()
        ctx = ReconciliationContext.from_entries(
            [local, CacheEntry("B", r"C:\Windows\ccmcache\b")]
        )

        ctx = remove_severed_folders(ctx, filesystem, cache_root)

        assert Path(local.location).exists()
        assert not (cache_root / "stray").exists()
        assert ctx.severed_removed == 1

"""Unit tests for the Reconciler service."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from cachereclaim.adapters.filesystem import LocalFilesystem
from cachereclaim.core.exceptions import ProviderUnavailableError
from cachereclaim.core.models import (
    ORPHANED_ITEM_NAME,
    ApplicationDeployment,
    CacheEntry,
    DeletionStatus,
    FailurePolicy,
    InstallState,
    LastRunStatus,
    PackageProgram,
    RepeatRunBehavior,
    SoftwareUpdate,
    UpdateStatus,
)
from cachereclaim.core.services import Reconciler

ReconcilerFactory = Callable[..., tuple[Reconciler, Any, Any, Any]]


@pytest.fixture
def build_reconciler(
    cache_root: Path,
    make_manager: Callable[..., Any],
    audit_sink: Any,
    inventory_trigger: Any,
) -> ReconcilerFactory:
    """Wire a Reconciler over one inventory with recording doubles."""

    def _build(
        inventory: Any, policy: FailurePolicy = FailurePolicy.FAIL_OPEN
    ) -> tuple[Reconciler, Any, Any, Any]:
        manager = make_manager(inventory)
        reconciler = Reconciler(
            index=inventory,
            applications=inventory,
            packages=inventory,
            updates=inventory,
            manager=manager,
            filesystem=LocalFilesystem(),
            audit=audit_sink,
            cache_root=cache_root,
            trigger=inventory_trigger,
            policy=policy,
        )
        return reconciler, manager, audit_sink, inventory_trigger

    return _build


@pytest.fixture
def populated(
    cache_root: Path,
    make_entry: Callable[..., CacheEntry],
    make_inventory: Callable[..., Any],
) -> Any:
    """A cache with one item of every kind plus a severed folder."""
    entries = [
        make_entry("APP1"),
        make_entry("APP2"),
        make_entry("PKG1", size=3 * 1024 * 1024),
        make_entry("UPD1", size=2 * 1024 * 1024),
        make_entry("ORPHAN"),
        make_entry("EMPTY", size=0),
        make_entry("PERSIST", persistent=True),
    ]
    (cache_root / "severed").mkdir()
    (cache_root / "inflight.BDRTEMP").mkdir()
    (cache_root / "inflight").mkdir()
    return make_inventory(
        entries=entries,
        applications=[
            ApplicationDeployment("App One", "APP1", InstallState.INSTALLED, True),
            ApplicationDeployment("App Two", "APP2", InstallState.NOT_INSTALLED, True),
        ],
        programs=[
            PackageProgram(
                "PKG1",
                "Package One",
                "PKG1",
                LastRunStatus.SUCCEEDED,
                RepeatRunBehavior.RERUN_NEVER,
            )
        ],
        updates=[
            SoftwareUpdate("UPD1", "KB0001", UpdateStatus.INSTALLED),
            SoftwareUpdate("EMPTY", "KB0002", UpdateStatus.INSTALLED),
        ],
    )


@pytest.mark.core
@pytest.mark.tra("Service.Reconciler")
@pytest.mark.tier(2)
class TestReconcilerRun:
    """Tests for Reconciler.run()."""

    def test_full_run(
        self,
        populated: Any,
        cache_root: Path,
        run_timestamp: datetime,
        build_reconciler: ReconcilerFactory,
    ) -> None:
        """Every stage contributes to one report written to the audit sink."""
        reconciler, manager, audit, trigger = build_reconciler(populated)

        report = reconciler.run(timestamp=run_timestamp)

        names = {r.content_id: r.name for r in report.records}
        assert names == {
            "PKG1": "Package One",
            "UPD1": "KB0001",
            "APP1": "App One",
            "ORPHAN": ORPHANED_ITEM_NAME,
        }
        assert all(r.status is DeletionStatus.DELETED for r in report.records)
        # Largest first
        assert report.records[0].content_id == "PKG1"
        assert report.summary.render_total() == "7.00"
        assert report.summary.severed_removed == 1

        # Kept on disk
        assert (cache_root / "app2").exists()
        assert (cache_root / "empty").exists()
        assert (cache_root / "persist").exists()
        assert (cache_root / "inflight").exists()
        assert (cache_root / "inflight.BDRTEMP").exists()
        assert not (cache_root / "severed").exists()

        assert audit.begun == 1
        assert audit.reports == [report]
        assert trigger.fired == 1
        assert "APP2" not in manager.enumerated

    def test_second_run_deletes_nothing(
        self,
        populated: Any,
        cache_root: Path,
        run_timestamp: datetime,
        build_reconciler: ReconcilerFactory,
    ) -> None:
        """Re-running without external changes evicts nothing."""
        reconciler, manager, audit, _ = build_reconciler(populated)
        reconciler.run(timestamp=run_timestamp)
        calls_after_first = len(manager.deleted)

        second = reconciler.run(timestamp=run_timestamp)

        assert second.records == ()
        assert second.summary.total_mb is None
        assert second.summary.render_total() == "none"
        assert len(manager.deleted) == calls_after_first
        assert len(audit.reports) == 2

    def test_each_entry_evicted_at_most_once(
        self,
        populated: Any,
        cache_root: Path,
        run_timestamp: datetime,
        build_reconciler: ReconcilerFactory,
    ) -> None:
        """No content id is enumerated twice in one run."""
        reconciler, manager, _, _ = build_reconciler(populated)

        reconciler.run(timestamp=run_timestamp)

        assert len(manager.enumerated) == len(set(manager.enumerated))

    def test_fail_open_marks_degraded_sources(
        self,
        populated: Any,
        cache_root: Path,
        run_timestamp: datetime,
        build_reconciler: ReconcilerFactory,
    ) -> None:
        """Unavailable catalogs are named in the summary; the run completes."""
        populated.unavailable = {"applications", "updates"}
        reconciler, _, audit, _ = build_reconciler(populated)

        report = reconciler.run(timestamp=run_timestamp)

        assert report.summary.degraded_sources == ("applications", "updates")
        assert audit.reports == [report]

    def test_fail_open_without_index_evicts_nothing(
        self,
        populated: Any,
        cache_root: Path,
        run_timestamp: datetime,
        build_reconciler: ReconcilerFactory,
    ) -> None:
        """Without an index no cache item or folder is touched."""
        populated.unavailable = {"cache_index"}
        reconciler, manager, _, _ = build_reconciler(populated)

        report = reconciler.run(timestamp=run_timestamp)

        assert report.records == ()
        assert manager.enumerated == []
        assert (cache_root / "severed").exists()

    def test_fail_fast_aborts_before_writing(
        self,
        populated: Any,
        cache_root: Path,
        run_timestamp: datetime,
        build_reconciler: ReconcilerFactory,
    ) -> None:
        """Under fail-fast the error propagates and nothing is recorded."""
        populated.unavailable = {"packages"}
        reconciler, _, audit, trigger = build_reconciler(populated, FailurePolicy.FAIL_FAST)

        with pytest.raises(ProviderUnavailableError):
            reconciler.run(timestamp=run_timestamp)

        assert audit.reports == []
        assert trigger.fired == 0

"""Core domain services for cachereclaim."""

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from cachereclaim.core.cache_maintenance import (
    DEFAULT_STAGING_SUFFIX,
    clean_orphaned_entries,
    remove_severed_folders,
)
from cachereclaim.core.context import ReconciliationContext
from cachereclaim.core.eviction import EvictionExecutor
from cachereclaim.core.models import FailurePolicy, RunReport
from cachereclaim.core.ports import (
    ApplicationCatalogPort,
    AuditSinkPort,
    CacheIndexPort,
    CacheManagerPort,
    FilesystemPort,
    InventoryTriggerPort,
    NullInventoryTrigger,
    NullProgressReporter,
    PackageCatalogPort,
    ProgressReporter,
    UpdateCatalogPort,
)
from cachereclaim.core.reporting import build_report
from cachereclaim.core.scanners import (
    load_cache_index,
    scan_applications,
    scan_packages,
    scan_updates,
)


if TYPE_CHECKING:
    from cachereclaim.config import Settings


logger = logging.getLogger(__name__)


class Reconciler:
    """Orchestrates one reconciliation of the cache against its catalogs."""

    def __init__(
        self,
        index: CacheIndexPort,
        applications: ApplicationCatalogPort,
        packages: PackageCatalogPort,
        updates: UpdateCatalogPort,
        manager: CacheManagerPort,
        filesystem: FilesystemPort,
        audit: AuditSinkPort,
        cache_root: Path,
        trigger: InventoryTriggerPort | None = None,
        policy: FailurePolicy = FailurePolicy.FAIL_OPEN,
        staging_suffix: str = DEFAULT_STAGING_SUFFIX,
    ) -> None:
        self._index = index
        self._applications = applications
        self._packages = packages
        self._updates = updates
        self._filesystem = filesystem
        self._audit = audit
        self._trigger = trigger or NullInventoryTrigger()
        self._executor = EvictionExecutor(manager, filesystem)
        self._cache_root = cache_root
        self._policy = policy
        self._staging_suffix = staging_suffix

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Reconciler":
        """Create a Reconciler wired with the adapters named by settings.

        Args:
            settings: Run settings (see cachereclaim.config).

        Returns:
            Reconciler bound to the live client (source="cim") or to an
            inventory snapshot (source="snapshot").
        """
        from cachereclaim.adapters.audit import CsvAuditLog
        from cachereclaim.adapters.filesystem import LocalFilesystem
        from cachereclaim.adapters.trigger import PowerShellInventoryTrigger

        if settings.source == "snapshot" and settings.snapshot_path is not None:
            from cachereclaim.adapters.snapshot import (
                SnapshotCacheManager,
                SnapshotInventory,
            )

            inventory = SnapshotInventory.from_file(
                settings.snapshot_path, cache_root=settings.cache_root
            )
            index = applications = packages = updates = inventory
            manager: CacheManagerPort = SnapshotCacheManager(
                inventory, settings.cache_root
            )
            trigger: InventoryTriggerPort = NullInventoryTrigger()
        else:
            from cachereclaim.adapters.cim import (
                CimCacheManager,
                CimInventory,
                PowerShell,
            )

            shell = PowerShell(settings.powershell, timeout=settings.command_timeout)
            index = applications = packages = updates = CimInventory(shell)
            manager = CimCacheManager(shell)
            trigger = PowerShellInventoryTrigger(settings.powershell)

        if not settings.trigger_inventory:
            trigger = NullInventoryTrigger()

        return cls(
            index=index,
            applications=applications,
            packages=packages,
            updates=updates,
            manager=manager,
            filesystem=LocalFilesystem(),
            audit=CsvAuditLog(
                settings.audit_log,
                max_bytes=settings.audit_log_max_bytes,
                marker_dir=settings.marker_dir,
            ),
            cache_root=settings.cache_root,
            trigger=trigger,
            policy=settings.policy,
            staging_suffix=settings.staging_suffix,
        )

    @property
    def policy(self) -> FailurePolicy:
        """The failure policy of this reconciler."""
        return self._policy

    def load(self) -> ReconciliationContext:
        """Load the cache index without evicting anything."""
        return load_cache_index(self._index, self._policy)

    def reconcile(
        self,
        progress: ProgressReporter | None = None,
    ) -> ReconciliationContext:
        """Run every stage up to and including the severed folder scan.

        Args:
            progress: Optional progress reporter, one task per stage.

        Returns:
            The run state after the last stage.
        """
        progress = progress or NullProgressReporter()
        executor = self._executor
        policy = self._policy

        context = self.load()
        context = scan_applications(
            context, self._applications, executor, policy, progress
        )
        context = scan_packages(context, self._packages, executor, policy, progress)
        context = scan_updates(context, self._updates, executor, policy, progress)
        context = clean_orphaned_entries(context, executor, progress)
        return remove_severed_folders(
            context,
            self._filesystem,
            self._cache_root,
            self._staging_suffix,
            progress,
        )

    def run(
        self,
        progress: ProgressReporter | None = None,
        timestamp: datetime | None = None,
    ) -> RunReport:
        """Reconcile the cache, record the outcome and trigger inventory.

        Args:
            progress: Optional progress reporter.
            timestamp: Timestamp for the summary (defaults to now).

        Returns:
            The report that was written to the audit sink.

        Raises:
            ProviderUnavailableError: If a provider failed under fail-fast.
            AuditWriteError: If the audit trail could not be written.
        """
        self._audit.begin()
        context = self.reconcile(progress)
        report = build_report(context, timestamp, self._policy)
        self._audit.write(report)
        logger.info(
            "Reconciliation finished: %d record(s), total %s",
            len(report.records),
            report.summary.render_total(),
        )
        self._trigger.fire()
        return report

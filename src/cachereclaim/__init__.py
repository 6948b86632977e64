"""cachereclaim - Reclaim disk space from a managed-endpoint content cache.

This library reconciles the local cache index against the application,
package and update catalogs of the management client, evicts content
that is no longer needed, removes orphaned and severed cache folders and
records the outcome in an audit log.

Example:
    >>> from pathlib import Path
    >>> from cachereclaim import Reconciler, Settings
    >>> settings = Settings(
    ...     source="snapshot",
    ...     snapshot_path=Path("inventory.json"),
    ...     cache_root=Path("ccmcache"),
    ... )
    >>> report = Reconciler.from_settings(settings).run()
    >>> report.summary.render_total()
    'none'
"""

from cachereclaim.adapters import (
    CimCacheManager,
    CimInventory,
    CsvAuditLog,
    LocalFilesystem,
    PowerShell,
    PowerShellInventoryTrigger,
    SnapshotCacheManager,
    SnapshotInventory,
)
from cachereclaim.config import Settings, find_config_file, load_settings
from cachereclaim.core.context import ReconciliationContext
from cachereclaim.core.eviction import EvictionExecutor
from cachereclaim.core.exceptions import (
    AuditReadError,
    AuditWriteError,
    CacheManagerError,
    CacheReclaimError,
    ConfigurationError,
    ProviderUnavailableError,
    SnapshotLoadError,
)
from cachereclaim.core.models import (
    ApplicationDeployment,
    CacheEntry,
    DeletionRecord,
    DeletionStatus,
    FailurePolicy,
    PackageProgram,
    RunReport,
    RunSummary,
    SoftwareUpdate,
)
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
    ProgressCallback,
    ProgressReporter,
    UpdateCatalogPort,
)
from cachereclaim.core.services import Reconciler
from cachereclaim.progress import RichProgressReporter


__version__ = "0.1.0"

__all__ = [
    "ApplicationCatalogPort",
    "ApplicationDeployment",
    "AuditReadError",
    "AuditSinkPort",
    "AuditWriteError",
    "CacheEntry",
    "CacheIndexPort",
    "CacheManagerError",
    "CacheManagerPort",
    "CacheReclaimError",
    "CimCacheManager",
    "CimInventory",
    "ConfigurationError",
    "CsvAuditLog",
    "DeletionRecord",
    "DeletionStatus",
    "EvictionExecutor",
    "FailurePolicy",
    "FilesystemPort",
    "InventoryTriggerPort",
    "LocalFilesystem",
    "NullInventoryTrigger",
    "NullProgressReporter",
    "PackageCatalogPort",
    "PackageProgram",
    "PowerShell",
    "PowerShellInventoryTrigger",
    "ProgressCallback",
    "ProgressReporter",
    "ProviderUnavailableError",
    "Reconciler",
    "ReconciliationContext",
    "RichProgressReporter",
    "RunReport",
    "RunSummary",
    "Settings",
    "SnapshotCacheManager",
    "SnapshotInventory",
    "SnapshotLoadError",
    "SoftwareUpdate",
    "UpdateCatalogPort",
    "__version__",
    "find_config_file",
    "load_settings",
]

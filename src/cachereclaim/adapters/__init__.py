"""Adapters binding the core ports to the client, the disk and the audit log."""

from cachereclaim.adapters.audit import CsvAuditLog
from cachereclaim.adapters.cim import CimCacheManager, CimInventory, PowerShell
from cachereclaim.adapters.filesystem import LocalFilesystem
from cachereclaim.adapters.snapshot import SnapshotCacheManager, SnapshotInventory
from cachereclaim.adapters.trigger import PowerShellInventoryTrigger


__all__ = [
    "CimCacheManager",
    "CimInventory",
    "CsvAuditLog",
    "LocalFilesystem",
    "PowerShell",
    "PowerShellInventoryTrigger",
    "SnapshotCacheManager",
    "SnapshotInventory",
]

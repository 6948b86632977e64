"""Core domain module for cachereclaim.

This module contains the domain models, the port definitions and the
reconciliation stages. Adapters are injected; the core itself only
measures and removes folders through FilesystemPort.
"""

from cachereclaim.core.context import ReconciliationContext
from cachereclaim.core.models import (
    CacheEntry,
    DeletionRecord,
    DeletionStatus,
    FailurePolicy,
    RunReport,
    RunSummary,
)
from cachereclaim.core.ports import (
    AuditSinkPort,
    CacheIndexPort,
    CacheManagerPort,
    FilesystemPort,
    ProgressCallback,
)


__all__ = [
    "AuditSinkPort",
    "CacheEntry",
    "CacheIndexPort",
    "CacheManagerPort",
    "DeletionRecord",
    "DeletionStatus",
    "FailurePolicy",
    "FilesystemPort",
    "ProgressCallback",
    "ReconciliationContext",
    "RunReport",
    "RunSummary",
]

"""Aggregation of deletion records into a run report."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from cachereclaim.core.models import (
    DeletionStatus,
    FailurePolicy,
    RunReport,
    RunSummary,
)


if TYPE_CHECKING:
    from cachereclaim.core.context import ReconciliationContext


def total_deleted_mb(context: ReconciliationContext) -> float | None:
    """Sum size_mb over Deleted records.

    Returns:
        The total, or None when nothing was deleted.
    """
    sizes = [r.size_mb for r in context.records if r.status is DeletionStatus.DELETED]
    total = sum(sizes)
    return total or None


def build_report(
    context: ReconciliationContext,
    timestamp: datetime | None = None,
    policy: FailurePolicy = FailurePolicy.FAIL_OPEN,
) -> RunReport:
    """Build the audit report of a finished run.

    Args:
        context: Run state after the last stage.
        timestamp: When the run finished (defaults to now).
        policy: Failure policy that was active.

    Returns:
        The records, largest first, and the run summary.
    """
    records = tuple(sorted(context.records, key=lambda r: r.size_mb, reverse=True))
    summary = RunSummary(
        total_mb=total_deleted_mb(context),
        timestamp=timestamp or datetime.now(),
        policy=policy,
        degraded_sources=context.degraded_sources,
        severed_removed=context.severed_removed,
    )
    return RunReport(records=records, summary=summary)

"""Cache index loading and catalog classification.

Each catalog scan classifies the items of one catalog as delete-eligible
or still needed. Eligible items are evicted through the EvictionExecutor;
the content ids of items still needed are appended to the exclusion set
so that the orphan scan leaves them alone.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from cachereclaim.core.context import ReconciliationContext
from cachereclaim.core.exceptions import ProviderUnavailableError
from cachereclaim.core.models import FailurePolicy
from cachereclaim.core.ports import NullProgressReporter


if TYPE_CHECKING:
    from collections.abc import Callable

    from cachereclaim.core.eviction import EvictionExecutor
    from cachereclaim.core.ports import (
        ApplicationCatalogPort,
        CacheIndexPort,
        PackageCatalogPort,
        ProgressReporter,
        UpdateCatalogPort,
    )


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _query(
    source: str,
    fetch: Callable[[], list[T]],
    policy: FailurePolicy,
) -> list[T] | None:
    """Run a provider query under the failure policy.

    Returns:
        The items, or None when the provider failed and the policy is
        fail-open.

    Raises:
        ProviderUnavailableError: If the provider failed under fail-fast.
    """
    try:
        return fetch()
    except ProviderUnavailableError as e:
        if policy is FailurePolicy.FAIL_FAST:
            raise
        logger.warning("%s unavailable, treating as empty: %s", source, e)
        return None


def load_cache_index(
    index: CacheIndexPort,
    policy: FailurePolicy = FailurePolicy.FAIL_OPEN,
) -> ReconciliationContext:
    """Load the non-persisted cache entries and start a run.

    Args:
        index: Cache index provider.
        policy: Failure policy for an unavailable index.

    Returns:
        A fresh context. Empty (and degraded) if the index was unavailable
        under fail-open, in which case no evictions happen this run.
    """
    entries = _query("cache_index", index.list_entries, policy)
    if entries is None:
        return ReconciliationContext().with_degraded("cache_index")

    loaded = [e for e in entries if not e.persistent]
    protected = [e.location for e in entries if e.persistent]
    logger.info(
        "Loaded %d cache entries (%d persisted entries kept)",
        len(loaded),
        len(protected),
    )
    return ReconciliationContext.from_entries(loaded, protected_locations=protected)


def scan_applications(
    context: ReconciliationContext,
    catalog: ApplicationCatalogPort,
    executor: EvictionExecutor,
    policy: FailurePolicy = FailurePolicy.FAIL_OPEN,
    progress: ProgressReporter | None = None,
) -> ReconciliationContext:
    """Evict content of installed, machine-targeted applications.

    Args:
        context: Current run state.
        catalog: Application catalog provider.
        executor: Executor used for eligible items.
        policy: Failure policy for an unavailable catalog.
        progress: Optional progress reporter.

    Returns:
        The run state after the scan.
    """
    items = _query("applications", catalog.list_applications, policy)
    if items is None:
        return context.with_degraded("applications")

    progress = progress or NullProgressReporter()
    callback = progress.start_task("Applications", len(items))
    for done, app in enumerate(items, 1):
        if app.is_eligible and app.content_id:
            context = executor.delete(context, app.content_id, app.name)
        elif app.content_id:
            context = context.with_excluded([app.content_id])
        callback(done, len(items))
    progress.finish_task("Applications")
    return context


def scan_packages(
    context: ReconciliationContext,
    catalog: PackageCatalogPort,
    executor: EvictionExecutor,
    policy: FailurePolicy = FailurePolicy.FAIL_OPEN,
    progress: ProgressReporter | None = None,
) -> ReconciliationContext:
    """Evict content of packages whose programs will not run again.

    A package usually has several programs. A package is deleted only
    when at least one program is eligible and none is excluded; the
    decision is taken after every program has been classified.

    Args:
        context: Current run state.
        catalog: Package catalog provider.
        executor: Executor used for eligible packages.
        policy: Failure policy for an unavailable catalog.
        progress: Optional progress reporter.

    Returns:
        The run state after the scan.
    """
    programs = _query("packages", catalog.list_programs, policy)
    if programs is None:
        return context.with_degraded("packages")

    eligible: dict[str, list[tuple[str, str]]] = {}
    excluded: set[str] = set()
    for program in programs:
        if program.is_eligible:
            eligible.setdefault(program.package_id, []).append(
                (program.content_id, program.name)
            )
        else:
            excluded.add(program.package_id)
            context = context.with_excluded([program.content_id])

    to_delete = [pid for pid in eligible if pid not in excluded]
    logger.debug(
        "Packages: %d eligible, %d excluded, %d to delete",
        len(eligible),
        len(excluded),
        len(to_delete),
    )

    progress = progress or NullProgressReporter()
    callback = progress.start_task("Packages", len(to_delete))
    for done, package_id in enumerate(to_delete, 1):
        for content_id, name in eligible[package_id]:
            context = executor.delete(context, content_id, name)
        callback(done, len(to_delete))
    progress.finish_task("Packages")
    return context


def scan_updates(
    context: ReconciliationContext,
    catalog: UpdateCatalogPort,
    executor: EvictionExecutor,
    policy: FailurePolicy = FailurePolicy.FAIL_OPEN,
    progress: ProgressReporter | None = None,
) -> ReconciliationContext:
    """Evict content of installed software updates.

    Args:
        context: Current run state.
        catalog: Update catalog provider.
        executor: Executor used for eligible updates.
        policy: Failure policy for an unavailable catalog.
        progress: Optional progress reporter.

    Returns:
        The run state after the scan.
    """
    updates = _query("updates", catalog.list_updates, policy)
    if updates is None:
        return context.with_degraded("updates")

    progress = progress or NullProgressReporter()
    callback = progress.start_task("Updates", len(updates))
    for done, update in enumerate(updates, 1):
        if update.is_eligible:
            context = executor.delete(context, update.content_id, update.title)
        else:
            context = context.with_excluded([update.content_id])
        callback(done, len(updates))
    progress.finish_task("Updates")
    return context

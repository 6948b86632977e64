"""Cache maintenance operations run after the catalog scans.

This module contains the orphan scan, which evicts index entries no
catalog classified, and the severed folder scan, which removes folders
under the cache root that have no index entry at all.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from cachereclaim.core.models import (
    ORPHANED_ITEM_NAME,
    SEVERED_FOLDER_NAME,
    DeletionRecord,
    DeletionStatus,
    is_under,
    normalize_location,
)
from cachereclaim.core.ports import NullProgressReporter


if TYPE_CHECKING:
    from cachereclaim.core.context import ReconciliationContext
    from cachereclaim.core.eviction import EvictionExecutor
    from cachereclaim.core.ports import FilesystemPort, ProgressReporter


logger = logging.getLogger(__name__)

DEFAULT_STAGING_SUFFIX = ".BDRTEMP"


def clean_orphaned_entries(
    context: ReconciliationContext,
    executor: EvictionExecutor,
    progress: ProgressReporter | None = None,
) -> ReconciliationContext:
    """Evict loaded entries that no catalog marked as still needed.

    Entries already evicted by a catalog scan are no longer indexed, so
    the executor only logs them as already deleted.

    Args:
        context: Run state after the catalog scans.
        executor: Executor used for eviction.
        progress: Optional progress reporter.

    Returns:
        The run state after the scan.
    """
    orphaned = [e for e in context.entries if not context.is_excluded(e.content_id)]

    progress = progress or NullProgressReporter()
    callback = progress.start_task("Orphaned", len(orphaned))
    for done, entry in enumerate(orphaned, 1):
        context = executor.delete(context, entry.content_id, ORPHANED_ITEM_NAME)
        callback(done, len(orphaned))
    progress.finish_task("Orphaned")
    return context


def expected_locations(
    context: ReconciliationContext,
    folders: list[Path],
    staging_suffix: str = DEFAULT_STAGING_SUFFIX,
) -> set[str]:
    """Build the normalised set of folders that should exist.

    A folder named with the staging suffix is an in-progress download:
    both it and its suffix-stripped sibling are kept.

    Args:
        context: Current run state.
        folders: Folders found directly under the cache root.
        staging_suffix: Suffix of download-staging folders.

    Returns:
        Normalised locations (see normalize_location).
    """
    keep = {normalize_location(e.location) for e in context.entries}
    keep.update(normalize_location(loc) for loc in context.protected_locations)

    suffix = staging_suffix.lower()
    for folder in folders:
        if suffix and folder.name.lower().endswith(suffix):
            keep.add(normalize_location(str(folder)))
            stem = folder.name[: -len(suffix)]
            if stem:
                keep.add(normalize_location(str(folder.parent / stem)))
    return keep


def find_severed_folders(
    context: ReconciliationContext,
    filesystem: FilesystemPort,
    cache_root: Path,
    staging_suffix: str = DEFAULT_STAGING_SUFFIX,
) -> list[Path]:
    """List folders under cache_root that have no cache index entry.

    Args:
        context: Current run state.
        filesystem: Filesystem adapter.
        cache_root: The cache directory.
        staging_suffix: Suffix of download-staging folders.

    Returns:
        Severed folders, sorted by name.
    """
    folders = filesystem.list_folders(cache_root)
    keep = expected_locations(context, folders, staging_suffix)
    return [f for f in folders if normalize_location(str(f)) not in keep]


def remove_severed_folders(
    context: ReconciliationContext,
    filesystem: FilesystemPort,
    cache_root: Path,
    staging_suffix: str = DEFAULT_STAGING_SUFFIX,
    progress: ProgressReporter | None = None,
) -> ReconciliationContext:
    """Delete folders under cache_root that have no cache index entry.

    These folders are invisible to the cache manager, so they are
    removed directly from disk.

    Args:
        context: Run state after the orphan scan.
        filesystem: Filesystem adapter.
        cache_root: The cache directory.
        staging_suffix: Suffix of download-staging folders.
        progress: Optional progress reporter.

    Returns:
        The run state after the scan.
    """
    if "cache_index" in context.degraded_sources:
        # Without an index every folder would look severed.
        logger.warning("Cache index unavailable, skipping severed folder scan")
        return context

    known = [e.location for e in context.entries] + list(context.protected_locations)
    if known and not any(is_under(loc, str(cache_root)) for loc in known):
        # The index describes another directory; every folder would look severed.
        logger.warning(
            "No cache index location lies under %s, skipping severed folder scan",
            cache_root,
        )
        return context

    severed = find_severed_folders(context, filesystem, cache_root, staging_suffix)

    progress = progress or NullProgressReporter()
    callback = progress.start_task("Severed", len(severed))
    removed = 0
    for done, folder in enumerate(severed, 1):
        try:
            filesystem.remove_tree(folder)
        except OSError as e:
            logger.warning("Failed to remove severed folder %s: %s", folder, e)
            context = context.with_record(
                DeletionRecord(
                    name=SEVERED_FOLDER_NAME,
                    content_id=folder.name,
                    location=str(folder),
                    size_mb=0.0,
                    status=DeletionStatus.FAILED,
                    error=str(e),
                )
            )
        else:
            logger.info("Removed severed folder %s", folder)
            removed += 1
        callback(done, len(severed))
    progress.finish_task("Severed")
    return context.with_severed_removed(removed)

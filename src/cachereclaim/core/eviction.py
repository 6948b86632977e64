"""Eviction of a single cache item through the cache manager."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from cachereclaim.core.exceptions import CacheManagerError
from cachereclaim.core.models import BYTES_PER_MB, DeletionRecord, DeletionStatus


if TYPE_CHECKING:
    from cachereclaim.core.context import ReconciliationContext
    from cachereclaim.core.ports import CacheManagerPort, FilesystemPort


logger = logging.getLogger(__name__)


class EvictionExecutor:
    """Evicts index-known cache entries and records the outcome.

    The executor holds no run state. Every call takes the current
    ReconciliationContext and returns the context after the eviction, so
    the same executor can serve every scanner of a run.

    Example:
        >>> executor = EvictionExecutor(manager, filesystem)
        >>> ctx = executor.delete(ctx, "Content_1234", "7-Zip 23.01")
    """

    def __init__(self, manager: CacheManagerPort, filesystem: FilesystemPort) -> None:
        self._manager = manager
        self._filesystem = filesystem

    def delete(
        self,
        context: ReconciliationContext,
        content_id: str,
        name: str,
    ) -> ReconciliationContext:
        """Evict content_id if it is still indexed.

        Args:
            context: Current run state.
            content_id: Content identifier to evict.
            name: Display name for the audit record.

        Returns:
            The run state after the eviction. Unchanged when the item is
            no longer indexed or its folder is empty.
        """
        entry = context.find_entry(content_id)
        if entry is None:
            logger.info("AlreadyDeleted: %s (%s)", name, content_id)
            return context

        size = self._filesystem.directory_size(Path(entry.location))
        if size <= 0:
            # Nothing downloaded yet; the entry stays indexed and unreported.
            logger.debug("Skipping empty cache item %s at %s", content_id, entry.location)
            return context

        size_mb = size / BYTES_PER_MB
        try:
            elements = self._manager.enumerate(content_id)
            for element_id in elements:
                self._manager.delete(element_id)
        except CacheManagerError as e:
            logger.warning("Failed to evict %s (%s): %s", name, content_id, e)
            return context.with_record(
                DeletionRecord(
                    name=name,
                    content_id=content_id,
                    location=entry.location,
                    size_mb=size_mb,
                    status=DeletionStatus.FAILED,
                    error=str(e),
                )
            )

        if not elements:
            logger.debug("Cache manager reported no elements for %s", content_id)
        logger.info("Deleted: %s (%s) %.2f MB", name, content_id, size_mb)
        return context.with_record(
            DeletionRecord(
                name=name,
                content_id=content_id,
                location=entry.location,
                size_mb=size_mb,
                status=DeletionStatus.DELETED,
            )
        )

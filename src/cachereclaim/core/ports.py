"""Port interfaces for hexagonal architecture.

Ports define contracts that adapters must implement. The core domain
depends only on these protocols, never on concrete implementations.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    from pathlib import Path

    from cachereclaim.core.models import (
        ApplicationDeployment,
        CacheEntry,
        PackageProgram,
        RunReport,
        SoftwareUpdate,
    )

ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class CacheIndexPort(Protocol):
    """Local cache index (content id to cache folder)."""

    def list_entries(self) -> list[CacheEntry]:
        """List every cache index entry, persisted or not.

        Raises:
            ProviderUnavailableError: If the index cannot be queried.
        """
        ...


@runtime_checkable
class ApplicationCatalogPort(Protocol):
    """Catalog of application deployment types."""

    def list_applications(self) -> list[ApplicationDeployment]:
        """List all application deployment types known to the client.

        Raises:
            ProviderUnavailableError: If the catalog cannot be queried.
        """
        ...


@runtime_checkable
class PackageCatalogPort(Protocol):
    """Catalog of package programs."""

    def list_programs(self) -> list[PackageProgram]:
        """List all package programs known to the client.

        Raises:
            ProviderUnavailableError: If the catalog cannot be queried.
        """
        ...


@runtime_checkable
class UpdateCatalogPort(Protocol):
    """Catalog of software updates."""

    def list_updates(self) -> list[SoftwareUpdate]:
        """List all software updates in the update store.

        Raises:
            ProviderUnavailableError: If the catalog cannot be queried.
        """
        ...


@runtime_checkable
class CacheManagerPort(Protocol):
    """Native cache manager, the only way to evict index-known content."""

    def enumerate(self, content_id: str) -> list[str]:
        """List the native cache element ids holding content_id.

        Raises:
            CacheManagerError: If the cache manager cannot be queried.
        """
        ...

    def delete(self, element_id: str) -> None:
        """Delete one cache element, its folder and its index row.

        Raises:
            CacheManagerError: If the element cannot be deleted.
        """
        ...


@runtime_checkable
class FilesystemPort(Protocol):
    """Direct filesystem access for sizes and severed folders."""

    def directory_size(self, path: Path) -> int:
        """Total size in bytes of all files under path (0 if missing)."""
        ...

    def list_folders(self, root: Path) -> list[Path]:
        """List folders directly under root, sorted by name."""
        ...

    def remove_tree(self, path: Path) -> None:
        """Remove path recursively, including read-only files.

        Raises:
            OSError: If the folder cannot be removed.
        """
        ...


@runtime_checkable
class AuditSinkPort(Protocol):
    """Append-only audit trail of reconciliation runs."""

    def begin(self) -> None:
        """Prepare for a run (truncate an oversize log, clear the marker)."""
        ...

    def write(self, report: RunReport) -> None:
        """Persist the records and summary of a finished run.

        Raises:
            AuditWriteError: If the audit trail cannot be written.
        """
        ...


@runtime_checkable
class InventoryTriggerPort(Protocol):
    """Downstream inventory refresh, fired once a run has been recorded."""

    def fire(self) -> None:
        """Request an inventory refresh without waiting for it."""
        ...


@runtime_checkable
class ProgressReporter(Protocol):
    """Reports reconciliation progress to the user.

    This protocol defines the contract for progress display adapters.
    The core domain uses this to report progress without depending
    on any specific UI library.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Start tracking a stage.

        Args:
            name: Human-readable name of the stage.
            total: Number of items the stage will process.

        Returns:
            A ProgressCallback to call with (items_done, total_items).
        """
        ...

    def finish_task(self, name: str) -> None:
        """Mark a stage as complete.

        Args:
            name: The stage name passed to start_task().
        """
        ...


class NullProgressReporter:
    """A ProgressReporter that produces no output.

    Used as the default when no progress reporting is desired.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:  # noqa: ARG002
        """Return a no-op callback."""
        return lambda _done, _total: None

    def finish_task(self, name: str) -> None:
        """Do nothing."""
        _ = name  # Unused but required by protocol


class NullInventoryTrigger:
    """An InventoryTriggerPort that never triggers anything."""

    def fire(self) -> None:
        """Do nothing."""
        return None

"""Core domain models for cachereclaim.

These models are pure Python dataclasses with no I/O dependencies.
They represent the cache index, the three catalogs that decide what is
still needed, and the outcome of a reconciliation run.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import PureWindowsPath
from typing import Self


BYTES_PER_MB = 1024 * 1024

ORPHANED_ITEM_NAME = "Orphaned Cache Item"
SEVERED_FOLDER_NAME = "Severed Cache Folder"


class _ProviderEnum(str, Enum):
    """String enum that maps unrecognised provider values to UNKNOWN."""

    @classmethod
    def parse(cls, value: str | None) -> Self:
        """Convert a raw provider string, case-insensitively.

        Args:
            value: The string reported by the provider (may be None).

        Returns:
            The matching member, or the UNKNOWN member.
        """
        if value:
            for member in cls:
                if member.value.lower() == str(value).lower():
                    return member
        return cls("Unknown")


class InstallState(_ProviderEnum):
    """Install state of an application deployment type."""

    INSTALLED = "Installed"
    NOT_INSTALLED = "NotInstalled"
    UNKNOWN = "Unknown"


class LastRunStatus(_ProviderEnum):
    """Result of the last execution of a package program."""

    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class RepeatRunBehavior(_ProviderEnum):
    """Rerun behaviour of a package deployment."""

    RERUN_ALWAYS = "RerunAlways"
    RERUN_IF_FAILED = "RerunIfFail"
    RERUN_IF_SUCCESS = "RerunIfSuccess"
    RERUN_NEVER = "RerunNever"
    UNKNOWN = "Unknown"


class UpdateStatus(_ProviderEnum):
    """Status of a software update in the update store."""

    INSTALLED = "Installed"
    MISSING = "Missing"
    UNKNOWN = "Unknown"


class DeletionStatus(str, Enum):
    """Outcome of evicting a single cache item."""

    DELETED = "Deleted"
    ALREADY_DELETED = "AlreadyDeleted"
    FAILED = "Failed"


class FailurePolicy(str, Enum):
    """What to do when the cache index or a catalog cannot be queried.

    FAIL_OPEN treats the source as empty and carries on. FAIL_FAST aborts
    the run with ProviderUnavailableError.
    """

    FAIL_OPEN = "fail-open"
    FAIL_FAST = "fail-fast"


def normalize_location(location: str) -> str:
    """Normalise a cache path for comparison.

    Cache locations come from Windows, so comparison ignores case and
    treats both separators alike. Trailing separators are dropped.

    Args:
        location: A path as reported by the index or found on disk.

    Returns:
        A canonical string usable as a set member.
    """
    return str(PureWindowsPath(location.replace("/", "\\"))).rstrip("\\").lower()


def is_under(location: str, root: str) -> bool:
    """Return True if location lies strictly inside root (see normalize_location)."""
    prefix = normalize_location(root)
    normalized = normalize_location(location)
    if ".." in PureWindowsPath(normalized).parts:
        return False
    return normalized.startswith(prefix + "\\")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One row of the local cache index.

    Attributes:
        content_id: Unique key within the loaded index.
        location: Folder holding the downloaded content.
        persistent: Entries flagged persistent are never evicted.
    """

    content_id: str
    location: str
    persistent: bool = False

    def __post_init__(self) -> None:
        """Validate entry fields after initialization."""
        if not self.content_id:
            raise ValueError("CacheEntry content_id cannot be empty")
        if not self.location.strip():
            raise ValueError(f"CacheEntry {self.content_id} has no location")


@dataclass(frozen=True, slots=True)
class ApplicationDeployment:
    """An application deployment type from the application catalog.

    Attributes:
        name: Display name of the deployment type.
        content_id: Content resolved for the deployment type, if any.
        install_state: Whether the deployment type is installed.
        is_machine_target: True when the deployment targets the device.
    """

    name: str
    content_id: str | None
    install_state: InstallState = InstallState.UNKNOWN
    is_machine_target: bool = False

    @property
    def is_eligible(self) -> bool:
        """Installed, machine-targeted deployments with known content can go."""
        return (
            self.install_state is InstallState.INSTALLED
            and self.is_machine_target
            and bool(self.content_id)
        )


@dataclass(frozen=True, slots=True)
class PackageProgram:
    """A program of a classic package deployment.

    Attributes:
        package_id: Package identifier (shared by all programs of a package).
        name: Display name of the package.
        content_id: Cache content identifier of the package.
        last_run_status: Result of the last run.
        repeat_run_behavior: Rerun behaviour configured on the deployment.
    """

    package_id: str
    name: str
    content_id: str
    last_run_status: LastRunStatus = LastRunStatus.UNKNOWN
    repeat_run_behavior: RepeatRunBehavior = RepeatRunBehavior.UNKNOWN

    @property
    def is_eligible(self) -> bool:
        """Programs that succeeded and will not rerun no longer need content."""
        return self.last_run_status is LastRunStatus.SUCCEEDED and (
            self.repeat_run_behavior
            not in (RepeatRunBehavior.RERUN_ALWAYS, RepeatRunBehavior.RERUN_IF_SUCCESS)
        )


@dataclass(frozen=True, slots=True)
class SoftwareUpdate:
    """A software update from the update store.

    The update identifier doubles as its cache content identifier.
    """

    update_id: str
    title: str
    status: UpdateStatus = UpdateStatus.UNKNOWN

    @property
    def content_id(self) -> str:
        """Cache content identifier of the update."""
        return self.update_id

    @property
    def is_eligible(self) -> bool:
        """Installed updates no longer need their content."""
        return self.status is UpdateStatus.INSTALLED


@dataclass(frozen=True, slots=True)
class DeletionRecord:
    """Outcome of one eviction, as written to the audit log.

    Attributes:
        name: Display name of the catalog item (or a synthetic name).
        content_id: Content identifier that was evicted.
        location: Cache folder of the content.
        size_mb: Size of the folder before eviction, in MiB.
        status: Deleted, AlreadyDeleted or Failed.
        error: Error message for Failed records.
    """

    name: str
    content_id: str
    location: str
    size_mb: float
    status: DeletionStatus
    error: str | None = None


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Synthetic record closing the audit trail of one run.

    Attributes:
        total_mb: Total size deleted, or None when nothing was deleted.
        timestamp: When the run finished.
        policy: Failure policy that was active.
        degraded_sources: Providers that failed and were treated as empty.
        severed_removed: Number of severed folders removed from disk.
    """

    total_mb: float | None
    timestamp: datetime
    policy: FailurePolicy = FailurePolicy.FAIL_OPEN
    degraded_sources: tuple[str, ...] = ()
    severed_removed: int = 0

    def render_total(self) -> str:
        """Render the total for the audit trail.

        Returns:
            "none" when nothing was deleted, otherwise a two-decimal value.
        """
        if not self.total_mb:
            return "none"
        return f"{self.total_mb:.2f}"


@dataclass(frozen=True, slots=True)
class RunReport:
    """Records of a run (largest first) followed by its summary."""

    records: tuple[DeletionRecord, ...]
    summary: RunSummary

    def by_status(self, status: DeletionStatus) -> list[DeletionRecord]:
        """Return the records with the given status, in report order."""
        return [r for r in self.records if r.status is status]

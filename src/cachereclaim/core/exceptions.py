"""Domain exceptions for cachereclaim.

All library errors inherit from CacheReclaimError, allowing callers to catch
any library exception with a single except clause. Each exception provides
a recovery_hint property with guidance on resolving the error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from pathlib import Path


class CacheReclaimError(Exception):
    """Base class for all cachereclaim exceptions.

    Catch this to handle any error from the library.
    """

    @property
    def recovery_hint(self) -> str | None:
        """Optional guidance on how to resolve this error."""
        return None


class ProviderUnavailableError(CacheReclaimError):
    """Raised when the cache index or a catalog cannot be queried.

    Attributes:
        source: Name of the provider that failed ("cache_index", "applications", ...).
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        source: str,
        cause: Exception | None = None,
    ) -> None:
        self.source = source
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the client agent."""
        return (
            f"Check that the management client is running and '{self.source}' "
            "can be queried, or rerun without --fail-fast"
        )


class CacheManagerError(CacheReclaimError):
    """Raised when the cache-manager primitive fails to enumerate or delete.

    Attributes:
        content_id: The content identifier being evicted.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        content_id: str,
        cause: Exception | None = None,
    ) -> None:
        self.content_id = content_id
        self.cause = cause
        super().__init__(message)


class AuditWriteError(CacheReclaimError):
    """Raised when the audit log or marker cannot be written.

    Attributes:
        path: The file or directory that could not be written.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        path: Path,
        cause: Exception | None = None,
    ) -> None:
        self.path = path
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking permissions on the audit location."""
        return f"Check that {self.path} is writable"


class ConfigurationError(CacheReclaimError):
    """Raised for configuration problems (invalid or missing settings)."""

    pass


class SnapshotLoadError(CacheReclaimError):
    """Raised when an inventory snapshot file cannot be loaded.

    Attributes:
        snapshot_path: Path to the snapshot that failed to load.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        snapshot_path: Path,
        cause: Exception | None = None,
    ) -> None:
        self.snapshot_path = snapshot_path
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest re-exporting the snapshot."""
        return f"Check {self.snapshot_path.name} is valid JSON or export it again"


class AuditReadError(CacheReclaimError):
    """Raised when an existing audit log cannot be read or parsed.

    Attributes:
        path: The audit log file.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        path: Path,
        cause: Exception | None = None,
    ) -> None:
        self.path = path
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the audit log file."""
        return f"Check that {self.path} is a readable CSV file, or move it aside"

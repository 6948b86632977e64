"""Inventory snapshot adapter.

A snapshot is a JSON export of the cache index and the three catalogs,
taken on the endpoint. Reconciling against a snapshot lets a copied or
offline cache be cleaned without the management client.

Example snapshot::

    {
      "cache_index": [
        {"ContentId": "Content_1", "Location": "C:\\\\Windows\\\\ccmcache\\\\1", "PersistInCache": 0}
      ],
      "applications": [
        {"Name": "7-Zip", "ContentId": "Content_1", "InstallState": "Installed",
         "IsMachineTarget": true}
      ],
      "packages": [],
      "updates": []
    }

A section that is missing from the file is reported as an unavailable
provider, so the failure policy applies to it.
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import replace
from pathlib import Path, PureWindowsPath
from typing import TYPE_CHECKING, Any, Self

from cachereclaim.adapters.records import (
    parse_applications,
    parse_cache_entries,
    parse_programs,
    parse_updates,
)
from cachereclaim.core.exceptions import (
    CacheManagerError,
    ProviderUnavailableError,
    SnapshotLoadError,
)
from cachereclaim.core.models import is_under


if TYPE_CHECKING:
    from collections.abc import Callable

    from cachereclaim.core.models import (
        ApplicationDeployment,
        CacheEntry,
        PackageProgram,
        SoftwareUpdate,
    )


logger = logging.getLogger(__name__)

SECTIONS = ("cache_index", "applications", "packages", "updates")


class SnapshotInventory:
    """Serves the cache index and all three catalogs from a snapshot.

    Implements CacheIndexPort, ApplicationCatalogPort, PackageCatalogPort
    and UpdateCatalogPort.

    When a cache_root is given, index locations outside it (the cache
    directory of the endpoint the snapshot was taken on) are re-rooted
    onto cache_root by folder name, so a copied cache can be reconciled.

    Attributes:
        data: The parsed snapshot document.
        cache_root: Directory the cache folders are read from, if re-rooting.
    """

    def __init__(
        self,
        data: dict[str, Any],
        path: Path | None = None,
        cache_root: Path | None = None,
    ) -> None:
        """Initialize from a parsed snapshot document.

        Args:
            data: Snapshot sections keyed by name.
            path: File the snapshot was read from, for error messages.
            cache_root: Local cache directory to re-root locations onto.
        """
        self.data = data
        self.cache_root = cache_root
        self._path = path
        self._evicted: set[str] = set()

    @classmethod
    def from_file(cls, path: Path, cache_root: Path | None = None) -> Self:
        """Read a snapshot from a JSON file.

        Args:
            path: The snapshot file.
            cache_root: Local cache directory to re-root locations onto.

        Returns:
            The loaded inventory.

        Raises:
            SnapshotLoadError: If the file is missing or not a JSON object.
        """
        try:
            with path.open(encoding="utf-8-sig") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise SnapshotLoadError(
                f"Snapshot not found: {path}", snapshot_path=path, cause=e
            ) from e
        except json.JSONDecodeError as e:
            raise SnapshotLoadError(
                f"Snapshot is not valid JSON: {path}", snapshot_path=path, cause=e
            ) from e

        if not isinstance(data, dict):
            raise SnapshotLoadError(
                f"Snapshot must be a JSON object: {path}", snapshot_path=path
            )
        missing = [s for s in SECTIONS if s not in data]
        if missing:
            logger.warning("Snapshot %s has no section(s): %s", path, ", ".join(missing))
        return cls(data, path=path, cache_root=cache_root)

    def _section(self, name: str, parse: Callable[[object], list[Any]]) -> list[Any]:
        """Parse one section, reporting absence or bad rows as unavailability."""
        if name not in self.data:
            raise ProviderUnavailableError(
                f"Snapshot has no '{name}' section", source=name
            )
        try:
            return parse(self.data[name])
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailableError(
                f"Snapshot section '{name}' is malformed: {e}", source=name, cause=e
            ) from e

    def list_entries(self) -> list[CacheEntry]:
        """List cache index entries not evicted through this inventory."""
        entries: list[CacheEntry] = self._section("cache_index", parse_cache_entries)
        return [
            self._reroot(e) for e in entries if e.content_id not in self._evicted
        ]

    def _reroot(self, entry: CacheEntry) -> CacheEntry:
        """Move an entry located outside cache_root to the same folder name inside it."""
        if self.cache_root is None or is_under(entry.location, str(self.cache_root)):
            return entry
        name = PureWindowsPath(entry.location.replace("/", "\\")).name
        if not name:
            return entry
        return replace(entry, location=str(self.cache_root / name))

    def list_applications(self) -> list[ApplicationDeployment]:
        """List application deployment types from the snapshot."""
        return self._section("applications", parse_applications)

    def list_programs(self) -> list[PackageProgram]:
        """List package programs from the snapshot."""
        return self._section("packages", parse_programs)

    def list_updates(self) -> list[SoftwareUpdate]:
        """List software updates from the snapshot."""
        return self._section("updates", parse_updates)

    def find(self, content_id: str) -> CacheEntry | None:
        """Return the indexed entry for content_id, if any."""
        for entry in self.list_entries():
            if entry.content_id == content_id:
                return entry
        return None

    def mark_evicted(self, content_id: str) -> None:
        """Drop content_id from the index served by this inventory."""
        self._evicted.add(content_id)


class SnapshotCacheManager:
    """Cache manager for snapshots: one element per indexed content id.

    Element ids are the content ids themselves. Deleting an element removes
    its folder from disk and drops it from the inventory's index. Folders
    outside cache_root are never removed.
    """

    def __init__(self, inventory: SnapshotInventory, cache_root: Path) -> None:
        self._inventory = inventory
        self._cache_root = cache_root

    def enumerate(self, content_id: str) -> list[str]:
        """Return [content_id] if it is indexed, else []."""
        try:
            entry = self._inventory.find(content_id)
        except ProviderUnavailableError as e:
            raise CacheManagerError(
                f"Cannot enumerate cache elements: {e}", content_id=content_id, cause=e
            ) from e
        return [content_id] if entry is not None else []

    def delete(self, element_id: str) -> None:
        """Remove the element's folder and drop it from the index.

        Raises:
            CacheManagerError: If the folder lies outside the cache root or
                cannot be removed.
        """
        entry = self._inventory.find(element_id)
        if entry is None:
            return
        if not is_under(entry.location, str(self._cache_root)):
            raise CacheManagerError(
                f"Refusing to delete {entry.location!r} outside {self._cache_root}",
                content_id=element_id,
            )
        location = Path(entry.location)
        try:
            if location.exists():
                shutil.rmtree(location)
        except OSError as e:
            raise CacheManagerError(
                f"Cannot delete {location}: {e}", content_id=element_id, cause=e
            ) from e
        self._inventory.mark_evicted(element_id)

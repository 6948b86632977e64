"""Pytest configuration and shared fixtures.

This module registers custom markers for CI job separation and provides
in-memory fakes for every port of the core domain.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest

from cachereclaim.adapters.filesystem import LocalFilesystem
from cachereclaim.core.exceptions import CacheManagerError, ProviderUnavailableError
from cachereclaim.core.models import (
    ApplicationDeployment,
    CacheEntry,
    PackageProgram,
    RunReport,
    SoftwareUpdate,
)


RUN_TIMESTAMP = datetime(2026, 10, 17, 12, 0, 0)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "core: Core models, context and reporting")
    config.addinivalue_line("markers", "scan: Cache index and catalog scans")
    config.addinivalue_line("markers", "eviction: Eviction executor")
    config.addinivalue_line("markers", "maintenance: Orphan and severed folder scans")
    config.addinivalue_line("markers", "adapters: CIM, snapshot, filesystem adapters")
    config.addinivalue_line("markers", "audit: Audit log adapter")
    config.addinivalue_line("markers", "progress: Rich progress integration")
    config.addinivalue_line("markers", "cli: CLI tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line(
        "markers", "tra: Test Responsibility Anchor (TRA) - namespace.Anchor format"
    )
    config.addinivalue_line(
        "markers",
        "tier: Test tier for CI job separation (0=instant, 1=fast, 2=standard, 3=slow, 4=manual)",
    )


class FakeInventory:
    """In-memory cache index and catalogs.

    Any source listed in `unavailable` raises ProviderUnavailableError,
    like a catalog whose provider cannot be queried.
    """

    def __init__(
        self,
        entries: list[CacheEntry] | None = None,
        applications: list[ApplicationDeployment] | None = None,
        programs: list[PackageProgram] | None = None,
        updates: list[SoftwareUpdate] | None = None,
        unavailable: set[str] | None = None,
    ) -> None:
        self.entries = list(entries or [])
        self.applications = list(applications or [])
        self.programs = list(programs or [])
        self.updates = list(updates or [])
        self.unavailable = set(unavailable or ())

    def _check(self, source: str) -> None:
        if source in self.unavailable:
            raise ProviderUnavailableError(f"{source} is down", source=source)

    def list_entries(self) -> list[CacheEntry]:
        self._check("cache_index")
        return list(self.entries)

    def list_applications(self) -> list[ApplicationDeployment]:
        self._check("applications")
        return list(self.applications)

    def list_programs(self) -> list[PackageProgram]:
        self._check("packages")
        return list(self.programs)

    def list_updates(self) -> list[SoftwareUpdate]:
        self._check("updates")
        return list(self.updates)


class RecordingCacheManager:
    """Cache manager stub recording every call.

    Deleting an element removes its folder and its index row from the
    inventory, the way the native cache manager does.
    """

    def __init__(
        self,
        inventory: FakeInventory | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.inventory = inventory
        self.failing = set(failing or ())
        self.enumerated: list[str] = []
        self.deleted: list[str] = []

    def enumerate(self, content_id: str) -> list[str]:
        self.enumerated.append(content_id)
        if content_id in self.failing:
            raise CacheManagerError("access denied", content_id=content_id)
        if self.inventory is None:
            return [f"{content_id}-element"]
        return [
            f"{e.content_id}-element"
            for e in self.inventory.entries
            if e.content_id == content_id
        ]

    def delete(self, element_id: str) -> None:
        self.deleted.append(element_id)
        if self.inventory is None:
            return
        content_id = element_id.removesuffix("-element")
        for entry in list(self.inventory.entries):
            if entry.content_id == content_id:
                LocalFilesystem().remove_tree(Path(entry.location))
                self.inventory.entries.remove(entry)


class MemoryAuditSink:
    """Audit sink keeping reports in memory."""

    def __init__(self) -> None:
        self.begun = 0
        self.reports: list[RunReport] = []

    def begin(self) -> None:
        self.begun += 1

    def write(self, report: RunReport) -> None:
        self.reports.append(report)


class CountingTrigger:
    """Inventory trigger counting how often it fired."""

    def __init__(self) -> None:
        self.fired = 0

    def fire(self) -> None:
        self.fired += 1


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    """An empty cache directory."""
    root = tmp_path / "ccmcache"
    root.mkdir()
    return root


@pytest.fixture
def make_entry(cache_root: Path) -> Callable[..., CacheEntry]:
    """Create a cache folder holding `size` bytes and return its entry."""

    def _make(
        content_id: str,
        size: int = 1024 * 1024,
        folder: str | None = None,
        persistent: bool = False,
    ) -> CacheEntry:
        location = cache_root / (folder or content_id.lower())
        location.mkdir(parents=True, exist_ok=True)
        if size:
            (location / "payload.bin").write_bytes(b"x" * size)
        return CacheEntry(
            content_id=content_id, location=str(location), persistent=persistent
        )

    return _make


@pytest.fixture
def filesystem() -> LocalFilesystem:
    """The real filesystem adapter (tests work under tmp_path)."""
    return LocalFilesystem()


@pytest.fixture
def run_timestamp() -> datetime:
    """Fixed timestamp for run summaries."""
    return RUN_TIMESTAMP


@pytest.fixture
def make_inventory() -> Callable[..., FakeInventory]:
    """Factory for in-memory cache indexes and catalogs (see FakeInventory)."""
    return FakeInventory


@pytest.fixture
def make_manager() -> Callable[..., RecordingCacheManager]:
    """Factory for recording cache managers (see RecordingCacheManager)."""
    return RecordingCacheManager


@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    """An audit sink keeping reports in memory."""
    return MemoryAuditSink()


@pytest.fixture
def inventory_trigger() -> CountingTrigger:
    """An inventory trigger counting how often it fired."""
    return CountingTrigger()

"""Conversion of raw provider rows into domain records.

Both the live CIM adapter and the snapshot adapter receive rows as JSON
objects named after the client's WMI properties. This module turns those
rows into the typed records of cachereclaim.core.models.
"""

from __future__ import annotations

import logging
from typing import Any

from cachereclaim.core.models import (
    ApplicationDeployment,
    CacheEntry,
    InstallState,
    LastRunStatus,
    PackageProgram,
    RepeatRunBehavior,
    SoftwareUpdate,
    UpdateStatus,
)


logger = logging.getLogger(__name__)

Row = dict[str, Any]


def _as_bool(value: object) -> bool:
    """Interpret WMI booleans, which may arrive as bool, int or string."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _as_rows(data: object) -> list[Row]:
    """ConvertTo-Json emits a bare object for single results; normalise to a list."""
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    raise ValueError(f"Expected a JSON object or array, got {type(data).__name__}")


def parse_cache_entries(data: object) -> list[CacheEntry]:
    """Parse CacheInfoEx rows (ContentId, Location, PersistInCache).

    Rows without a location cannot be measured or removed and are skipped.
    """
    entries = []
    for row in _as_rows(data):
        if not row.get("ContentId"):
            continue
        location = str(row.get("Location") or "").strip()
        if not location:
            logger.warning("Skipping cache entry %s without a location", row["ContentId"])
            continue
        entries.append(
            CacheEntry(
                content_id=str(row["ContentId"]),
                location=location,
                persistent=_as_bool(row.get("PersistInCache", False)),
            )
        )
    return entries


def parse_applications(data: object) -> list[ApplicationDeployment]:
    """Parse flattened deployment type rows (Name, ContentId, InstallState, IsMachineTarget)."""
    return [
        ApplicationDeployment(
            name=str(row.get("Name") or ""),
            content_id=str(row["ContentId"]) if row.get("ContentId") else None,
            install_state=InstallState.parse(row.get("InstallState")),
            is_machine_target=_as_bool(row.get("IsMachineTarget", False)),
        )
        for row in _as_rows(data)
    ]


def parse_programs(data: object) -> list[PackageProgram]:
    """Parse CCM_Program rows (PackageID, PackageName, LastRunStatus, RepeatRunBehavior).

    The cache content id of a package is its package id unless the row
    carries an explicit ContentId.
    """
    return [
        PackageProgram(
            package_id=str(row["PackageID"]),
            name=str(row.get("PackageName") or row["PackageID"]),
            content_id=str(row.get("ContentId") or row["PackageID"]),
            last_run_status=LastRunStatus.parse(row.get("LastRunStatus")),
            repeat_run_behavior=RepeatRunBehavior.parse(row.get("RepeatRunBehavior")),
        )
        for row in _as_rows(data)
        if row.get("PackageID")
    ]


def parse_updates(data: object) -> list[SoftwareUpdate]:
    """Parse CCM_UpdateStatus rows (UniqueId, Title, Status)."""
    return [
        SoftwareUpdate(
            update_id=str(row["UniqueId"]),
            title=str(row.get("Title") or row["UniqueId"]),
            status=UpdateStatus.parse(row.get("Status")),
        )
        for row in _as_rows(data)
        if row.get("UniqueId")
    ]


def parse_element_ids(data: object) -> list[str]:
    """Parse cache element rows (CacheElementId)."""
    return [
        str(row["CacheElementId"])
        for row in _as_rows(data)
        if row.get("CacheElementId")
    ]

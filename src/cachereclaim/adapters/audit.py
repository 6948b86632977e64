"""CSV audit log adapter implementing AuditSinkPort."""

from __future__ import annotations

import csv
import json
import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cachereclaim.core.exceptions import AuditReadError, AuditWriteError


if TYPE_CHECKING:
    from cachereclaim.core.models import DeletionRecord, RunReport, RunSummary


logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("cachereclaim.audit")

FIELDNAMES = ["Name", "ID", "Location", "SizeMB", "Status", "Error"]

SUMMARY_NAME = "Total Deleted"
SUMMARY_STATUS = "Summary"


def record_row(record: DeletionRecord) -> dict[str, str]:
    """Render a deletion record as a CSV row."""
    return {
        "Name": record.name,
        "ID": record.content_id,
        "Location": record.location,
        "SizeMB": f"{record.size_mb:.2f}",
        "Status": record.status.value,
        "Error": record.error or "",
    }


def summary_row(summary: RunSummary) -> dict[str, str]:
    """Render the run summary as the synthetic closing CSV row.

    The ID column carries the run timestamp and the Location column the
    failure policy, followed by any degraded sources.
    """
    policy = summary.policy.value
    if summary.degraded_sources:
        policy += " (degraded: " + ", ".join(summary.degraded_sources) + ")"
    return {
        "Name": SUMMARY_NAME,
        "ID": summary.timestamp.isoformat(timespec="seconds"),
        "Location": policy,
        "SizeMB": summary.render_total(),
        "Status": SUMMARY_STATUS,
        "Error": "",
    }


def summary_payload(report: RunReport) -> dict[str, Any]:
    """Structured form of a run, for the system log entry."""
    summary = report.summary
    return {
        "total_mb": summary.render_total(),
        "timestamp": summary.timestamp.isoformat(timespec="seconds"),
        "policy": summary.policy.value,
        "degraded_sources": list(summary.degraded_sources),
        "severed_removed": summary.severed_removed,
        "records": [record_row(r) for r in report.records],
    }


class CsvAuditLog:
    """Append-only CSV audit log with an optional marker directory.

    Each run appends its records followed by one summary row. The log is
    truncated at the start of a run once it grows beyond max_bytes. After
    the rows are written a structured entry is emitted on the
    "cachereclaim.audit" logger and the marker directory is created.

    Attributes:
        path: The CSV file.
        max_bytes: Size above which the log is truncated by begin().
        marker_dir: Directory created after every successful write, if set.
    """

    def __init__(
        self,
        path: Path,
        max_bytes: int = 5 * 1024 * 1024,
        marker_dir: Path | None = None,
    ) -> None:
        self.path = path
        self.max_bytes = max_bytes
        self.marker_dir = marker_dir

    def begin(self) -> None:
        """Truncate an oversize log and remove the marker of the previous run.

        Raises:
            AuditWriteError: If the log or marker cannot be touched.
        """
        try:
            if self.path.exists() and self.path.stat().st_size > self.max_bytes:
                logger.info(
                    "Audit log %s exceeds %d bytes, truncating", self.path, self.max_bytes
                )
                self.path.unlink()
            if self.marker_dir is not None and self.marker_dir.exists():
                shutil.rmtree(self.marker_dir)
        except OSError as e:
            raise AuditWriteError(
                f"Cannot prepare audit log: {e}", path=self.path, cause=e
            ) from e

    def write(self, report: RunReport) -> None:
        """Append the report's records and summary, then mark the run done.

        Raises:
            AuditWriteError: If the log or marker cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            new_file = not self.path.exists() or self.path.stat().st_size == 0
            with self.path.open("a", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
                if new_file:
                    writer.writeheader()
                for record in report.records:
                    writer.writerow(record_row(record))
                writer.writerow(summary_row(report.summary))
        except OSError as e:
            raise AuditWriteError(
                f"Cannot write audit log: {e}", path=self.path, cause=e
            ) from e

        audit_logger.info(json.dumps(summary_payload(report)))

        if self.marker_dir is not None:
            try:
                self.marker_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise AuditWriteError(
                    f"Cannot create marker: {e}", path=self.marker_dir, cause=e
                ) from e

    def read(self) -> list[dict[str, str]]:
        """Read every row of the log, oldest first (empty if no log).

        Raises:
            AuditReadError: If the log exists but cannot be read or parsed.
        """
        if not self.path.exists():
            return []
        try:
            with self.path.open(newline="", encoding="utf-8") as f:
                return list(csv.DictReader(f))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise AuditReadError(
                f"Cannot read audit log {self.path}: {e}", path=self.path, cause=e
            ) from e

"""Shared formatting helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table
from rich.text import Text

from cachereclaim.core.formatting import format_size_mb, status_to_color


if TYPE_CHECKING:
    from cachereclaim.core.models import RunReport


def _format_status_with_color(status: str) -> Text:
    """Format status string with color coding.

    Args:
        status: Status string ("Deleted", "AlreadyDeleted", "Failed", "Summary")

    Returns:
        Rich Text object with the color from status_to_color().
    """
    color = status_to_color(status)
    return Text(status, style=color) if color else Text(status)


def report_table(report: RunReport) -> Table:
    """Build a table of a run's records, largest first, with a total row."""
    table = Table()
    table.add_column("Name")
    table.add_column("ID")
    table.add_column("Size", justify="right")
    table.add_column("Status")

    for record in report.records:
        table.add_row(
            record.name,
            record.content_id,
            format_size_mb(record.size_mb),
            _format_status_with_color(record.status.value),
        )
    table.add_row(
        "Total",
        "",
        report.summary.render_total(),
        _format_status_with_color("Summary"),
    )
    return table


def history_table(rows: list[dict[str, str]]) -> Table:
    """Build a table from audit log rows (see CsvAuditLog.read)."""
    table = Table()
    table.add_column("Name")
    table.add_column("ID")
    table.add_column("Location")
    table.add_column("SizeMB", justify="right")
    table.add_column("Status")

    for row in rows:
        table.add_row(
            row.get("Name", ""),
            row.get("ID", ""),
            row.get("Location", ""),
            row.get("SizeMB", ""),
            _format_status_with_color(row.get("Status", "")),
        )
    return table

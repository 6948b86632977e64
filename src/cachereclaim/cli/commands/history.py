"""History command for CLI."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from cachereclaim.cli.formatting import history_table
from cachereclaim.cli.main import _fail, app, load_settings_context
from cachereclaim.core.exceptions import CacheReclaimError


@app.command()
def history(
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (defaults to the nearest cachereclaim.toml).",
    ),
    audit_log: Path | None = typer.Option(
        None,
        "--audit-log",
        help="CSV audit log to read.",
    ),
    limit: int = typer.Option(
        50,
        "--limit",
        "-n",
        min=1,
        help="Show only the most recent rows.",
    ),
) -> None:
    """Show the audit log of previous runs."""
    from cachereclaim.adapters.audit import CsvAuditLog

    settings = load_settings_context(config, audit_log=audit_log)
    try:
        rows = CsvAuditLog(settings.audit_log).read()
    except CacheReclaimError as e:
        raise _fail(e) from None

    if not rows:
        typer.echo(f"No runs recorded in {settings.audit_log}.")
        return

    console = Console(force_terminal=True)
    console.print(history_table(rows[-limit:]))

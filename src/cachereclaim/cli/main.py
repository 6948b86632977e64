"""CLI commands for cachereclaim."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.logging import RichHandler

from cachereclaim.cli.formatting import report_table
from cachereclaim.core.exceptions import CacheReclaimError
from cachereclaim.core.models import FailurePolicy


if TYPE_CHECKING:
    from cachereclaim.config import Settings


app = typer.Typer(
    name="cachereclaim",
    help="Reclaim disk space from the managed-endpoint content cache.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    """Send library logging to stderr through Rich."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


@app.callback()
def _main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging.",
    ),
) -> None:
    """Reclaim disk space from the managed-endpoint content cache."""
    _configure_logging(verbose)


def _fail(e: CacheReclaimError) -> typer.Exit:
    """Report a library error with its hint and return the exit to raise."""
    typer.echo(f"Error: {e}", err=True)
    if e.recovery_hint:
        typer.echo(f"Hint: {e.recovery_hint}", err=True)
    return typer.Exit(1)


def load_settings_context(
    config: Path | None = None,
    **overrides: object,
) -> Settings:
    """Load settings for CLI commands and apply command-line overrides.

    Args:
        config: Explicit config file; otherwise cachereclaim.toml is searched.
        **overrides: Settings fields to override (None values are ignored).

    Returns:
        The effective settings.

    Raises:
        typer.Exit: If the configuration is invalid.
    """
    from cachereclaim.config import load_settings

    try:
        settings = load_settings(config)
        if overrides.get("snapshot_path") is not None:
            overrides["source"] = "snapshot"
        return settings.with_overrides(**overrides)
    except CacheReclaimError as e:
        raise _fail(e) from None


@app.command()
def run(
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (defaults to the nearest cachereclaim.toml).",
    ),
    cache_root: Path | None = typer.Option(
        None,
        "--cache-root",
        help="Cache directory to reconcile.",
    ),
    snapshot: Path | None = typer.Option(
        None,
        "--snapshot",
        "-s",
        help="Reconcile against an inventory snapshot instead of the live client.",
    ),
    audit_log: Path | None = typer.Option(
        None,
        "--audit-log",
        help="CSV audit log to append to.",
    ),
    marker_dir: Path | None = typer.Option(
        None,
        "--marker-dir",
        help="Marker directory to create after the run.",
    ),
    fail_fast: bool = typer.Option(
        False,
        "--fail-fast",
        help="Abort when the cache index or a catalog cannot be queried.",
    ),
    no_trigger: bool = typer.Option(
        False,
        "--no-trigger",
        help="Do not trigger an inventory refresh after the run.",
    ),
    no_progress: bool = typer.Option(
        False,
        "--no-progress",
        help="Do not show progress bars.",
    ),
) -> None:
    """Evict unneeded, orphaned and severed cache content."""
    from cachereclaim.core.services import Reconciler
    from cachereclaim.progress import RichProgressReporter

    settings = load_settings_context(
        config,
        cache_root=cache_root,
        snapshot_path=snapshot,
        audit_log=audit_log,
        marker_dir=marker_dir,
        policy=FailurePolicy.FAIL_FAST if fail_fast else None,
        trigger_inventory=False if no_trigger else None,
    )

    try:
        reconciler = Reconciler.from_settings(settings)
        if no_progress:
            report = reconciler.run()
        else:
            with RichProgressReporter(console=Console(stderr=True)) as reporter:
                report = reconciler.run(progress=reporter)
    except CacheReclaimError as e:
        raise _fail(e) from None

    console = Console()
    if report.records:
        console.print(report_table(report))
    typer.echo(f"Total deleted (MB): {report.summary.render_total()}")
    if report.summary.severed_removed:
        typer.echo(f"Severed folders removed: {report.summary.severed_removed}")
    if report.summary.degraded_sources:
        typer.echo(
            f"Unavailable sources ({report.summary.policy.value}): "
            f"{', '.join(report.summary.degraded_sources)}"
        )


def main() -> None:
    """Entry point for the CLI."""
    app()

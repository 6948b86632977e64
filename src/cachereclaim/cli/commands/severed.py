"""Severed command for CLI."""

from __future__ import annotations

from pathlib import Path

import typer

from cachereclaim.cli.main import _fail, app, load_settings_context
from cachereclaim.core.exceptions import CacheReclaimError


@app.command()
def severed(
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (defaults to the nearest cachereclaim.toml).",
    ),
    cache_root: Path | None = typer.Option(
        None,
        "--cache-root",
        help="Cache directory to inspect.",
    ),
    snapshot: Path | None = typer.Option(
        None,
        "--snapshot",
        "-s",
        help="Use an inventory snapshot instead of the live client.",
    ),
) -> None:
    """List cache folders with no index entry, without deleting them."""
    from cachereclaim.adapters.filesystem import LocalFilesystem
    from cachereclaim.core.cache_maintenance import find_severed_folders
    from cachereclaim.core.models import FailurePolicy
    from cachereclaim.core.services import Reconciler

    settings = load_settings_context(
        config,
        cache_root=cache_root,
        snapshot_path=snapshot,
        policy=FailurePolicy.FAIL_FAST,
        trigger_inventory=False,
    )

    try:
        context = Reconciler.from_settings(settings).load()
    except CacheReclaimError as e:
        raise _fail(e) from None

    folders = find_severed_folders(
        context, LocalFilesystem(), settings.cache_root, settings.staging_suffix
    )
    if not folders:
        typer.echo("No severed folders found.")
        return
    for folder in folders:
        typer.echo(str(folder))
    typer.echo(f"{len(folders)} severed folder(s).")

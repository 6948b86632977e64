"""CLI for cachereclaim."""

# Import commands to register them with the app
# These imports have side effects (registering commands with @app.command())
from cachereclaim.cli.commands import history as _history_module  # noqa: F401
from cachereclaim.cli.commands import severed as _severed_module  # noqa: F401
from cachereclaim.cli.main import app, main


__all__ = ["app", "main"]

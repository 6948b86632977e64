"""Configuration utilities for cachereclaim.

Settings are read from a TOML file (cachereclaim.toml) and may be
overridden on the command line.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Self

from cachereclaim.core.cache_maintenance import DEFAULT_STAGING_SUFFIX
from cachereclaim.core.exceptions import ConfigurationError
from cachereclaim.core.models import FailurePolicy


CONFIG_FILE_NAMES = ["cachereclaim.toml", ".cachereclaim.toml"]

DEFAULT_CACHE_ROOT = Path(r"C:\Windows\ccmcache")
DEFAULT_AUDIT_LOG = Path(r"C:\Windows\Logs\cachereclaim\CacheReclaim.csv")
DEFAULT_AUDIT_LOG_MAX_BYTES = 5 * 1024 * 1024

SOURCES = ("cim", "snapshot")


@dataclass(frozen=True, slots=True)
class Settings:
    """Settings of a reconciliation run.

    Attributes:
        cache_root: Directory holding the cache folders.
        staging_suffix: Suffix of in-progress download folders.
        audit_log: Delimited audit log file.
        audit_log_max_bytes: The audit log is truncated at run start above this size.
        marker_dir: Marker directory created after each run, if set.
        policy: Failure policy for unavailable providers.
        source: "cim" for the live client, "snapshot" for an exported inventory.
        snapshot_path: Inventory snapshot file (required for source="snapshot").
        powershell: PowerShell executable used by the cim source.
        command_timeout: Seconds to wait for a single PowerShell query.
        trigger_inventory: Fire an inventory refresh after the run.
    """

    cache_root: Path = DEFAULT_CACHE_ROOT
    staging_suffix: str = DEFAULT_STAGING_SUFFIX
    audit_log: Path = DEFAULT_AUDIT_LOG
    audit_log_max_bytes: int = DEFAULT_AUDIT_LOG_MAX_BYTES
    marker_dir: Path | None = None
    policy: FailurePolicy = FailurePolicy.FAIL_OPEN
    source: str = "cim"
    snapshot_path: Path | None = None
    powershell: str = "powershell.exe"
    command_timeout: float = 300.0
    trigger_inventory: bool = True

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.source not in SOURCES:
            raise ConfigurationError(
                f"Unknown source '{self.source}', expected one of: {', '.join(SOURCES)}"
            )
        if self.source == "snapshot" and self.snapshot_path is None:
            raise ConfigurationError("source 'snapshot' requires snapshot_path")
        if self.audit_log_max_bytes <= 0:
            raise ConfigurationError("audit_log_max_bytes must be positive")

    @classmethod
    def from_mapping(cls, data: dict[str, Any], base: Path | None = None) -> Self:
        """Build settings from a parsed TOML table.

        Relative paths are resolved against base (the config file's folder).

        Args:
            data: Parsed key/value pairs.
            base: Directory to resolve relative paths against.

        Returns:
            Validated settings.

        Raises:
            ConfigurationError: If a key is unknown or a value is invalid.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown setting(s): {', '.join(unknown)}")

        values: dict[str, Any] = dict(data)
        for key in ("cache_root", "audit_log", "marker_dir", "snapshot_path"):
            if values.get(key) is not None:
                path = Path(values[key])
                if base is not None and not path.is_absolute():
                    path = base / path
                values[key] = path
        if "policy" in values:
            try:
                values["policy"] = FailurePolicy(values["policy"])
            except ValueError:
                raise ConfigurationError(
                    f"Unknown policy '{values['policy']}', "
                    "expected 'fail-open' or 'fail-fast'"
                ) from None
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> Self:
        """Return new settings with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def find_config_file(start: Path | None = None) -> Path | None:
    """Find a config file by walking up from start directory.

    Searches each directory for, in priority order:
    1. cachereclaim.toml
    2. .cachereclaim.toml

    Args:
        start: Directory to start searching from. If None, uses current directory.

    Returns:
        Path to the config file, or None if no file was found.
    """
    if start is None:
        start = Path.cwd()

    current = start.resolve()
    for parent in [current, *current.parents]:
        for name in CONFIG_FILE_NAMES:
            candidate = parent / name
            if candidate.is_file():
                return candidate
    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from a TOML file.

    The file may hold the keys at top level or under a [cachereclaim] table.

    Args:
        path: Config file. If None, find_config_file() is used and defaults
            apply when nothing is found.

    Returns:
        Validated settings.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            return Settings()

    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Config file not found: {path}") from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e

    table = data.get("cachereclaim", data)
    return Settings.from_mapping(table, base=path.parent)

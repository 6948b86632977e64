"""Error handling patterns with recovery hints.

This example shows the two failure policies and how to use the
recovery_hint property to provide actionable guidance.
"""

from pathlib import Path

from cachereclaim import (
    CacheReclaimError,
    FailurePolicy,
    ProviderUnavailableError,
    Reconciler,
    RunReport,
    Settings,
)


settings = Settings(
    source="snapshot",
    snapshot_path=Path("inventory.json"),
    cache_root=Path("ccmcache"),
    audit_log=Path("logs/CacheReclaim.csv"),
)


# Pattern 1: Fail open and inspect what was skipped
def run_and_report_gaps(settings: Settings) -> RunReport:
    """Run with unavailable catalogs treated as empty."""
    report = Reconciler.from_settings(settings).run()
    if report.summary.degraded_sources:
        print(f"Skipped: {', '.join(report.summary.degraded_sources)}")
    return report


# Pattern 2: Fail fast when every catalog must be consulted
def run_strict(settings: Settings) -> RunReport | None:
    """Abort before any eviction if a catalog cannot be queried."""
    strict = settings.with_overrides(policy=FailurePolicy.FAIL_FAST)
    try:
        return Reconciler.from_settings(strict).run()
    except ProviderUnavailableError as e:
        print(f"{e.source} unavailable: {e}")
        print(f"Hint: {e.recovery_hint}")
        return None


# Pattern 3: Catch any library error
def run_safely(settings: Settings) -> RunReport | None:
    """Report any cachereclaim error with its hint."""
    try:
        return Reconciler.from_settings(settings).run()
    except CacheReclaimError as e:
        print(f"Error: {e}")
        if e.recovery_hint:
            print(f"Hint: {e.recovery_hint}")
        return None

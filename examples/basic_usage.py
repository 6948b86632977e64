"""Basic usage: reconcile a cache against an inventory snapshot.

This example loads settings from cachereclaim.toml (if present), points
the run at an exported snapshot and prints what was evicted.
"""

from pathlib import Path

from cachereclaim import Reconciler, RichProgressReporter, load_settings


settings = load_settings().with_overrides(
    source="snapshot",
    snapshot_path=Path("inventory.json"),
    cache_root=Path("ccmcache"),
    audit_log=Path("logs/CacheReclaim.csv"),
    trigger_inventory=False,
)

reconciler = Reconciler.from_settings(settings)

with RichProgressReporter() as progress:
    report = reconciler.run(progress=progress)

for record in report.records:
    print(f"{record.status.value:15} {record.size_mb:8.2f} MB  {record.name}")

print(f"Total deleted (MB): {report.summary.render_total()}")

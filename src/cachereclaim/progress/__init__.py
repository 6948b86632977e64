"""Progress reporters."""

from cachereclaim.progress.rich_progress import RichProgressReporter


__all__ = ["RichProgressReporter"]

"""Read-only site context for planners."""

from content_engine.context.snapshot import CollectionSummary, ContextSnapshotReporter

__all__ = ["CollectionSummary", "ContextSnapshotReporter"]

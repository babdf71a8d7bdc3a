"""Context snapshot for planning.

Read-only summary of every allow-listed collection, handed to an upstream
planner before it proposes a new plan. Never writes anything.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger
from pydantic import BaseModel

from content_engine.config.settings import Settings
from content_engine.config.settings import settings as default_settings
from content_engine.content.collections import CollectionStore, Document, parse_timestamp
from content_engine.content.resources import RESOURCE_TRAITS, ResourceName, ResourceTraits

PREVIEW_FIELDS = ("title", "name", "slug", "status", "published", "category")


class CollectionSummary(BaseModel):
    """Summary of one collection.

    Attributes:
        count: Total number of records
        recent: Previews of the most recent records
        published: Published records (None when the collection has no published flag)
        drafts: Records with ``published`` explicitly false (None when not publishable)
        stale: Records not modified within the staleness window (None if not tracked)
        missing_required: Records with at least one required field left empty
    """

    count: int = 0
    recent: list[dict[str, Any]] = []
    published: int | None = None
    drafts: int | None = None
    stale: int | None = None
    missing_required: int = 0

    @classmethod
    def empty(cls) -> "CollectionSummary":
        return cls()


def is_missing(value: Any) -> bool:
    """True for None, blank strings and empty lists."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return isinstance(value, list) and len(value) == 0


def preview(document: Document, description_chars: int) -> dict[str, Any]:
    summary: dict[str, Any] = {"id": document.get("id")}
    for field in PREVIEW_FIELDS:
        if field in document and document[field] is not None:
            summary[field] = document[field]
    description = document.get("description")
    if isinstance(description, str) and description:
        summary["description"] = description[:description_chars]
    return summary


def _is_stale(document: Document, cutoff: datetime) -> bool:
    try:
        updated_at = parse_timestamp(document.get("updated_at"))
    except ValueError:
        return False
    return updated_at is not None and updated_at < cutoff


class ContextSnapshotReporter:
    """Builds per-collection summaries from a CollectionStore."""

    def __init__(self, store: CollectionStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or default_settings

    async def snapshot(self, now: datetime | None = None) -> dict[ResourceName, CollectionSummary]:
        """Summarize every allow-listed collection.

        A collection that cannot be read degrades to an empty summary instead
        of failing the whole report.
        """
        now = now or datetime.now(timezone.utc)
        report: dict[ResourceName, CollectionSummary] = {}
        for resource in ResourceName:
            try:
                report[resource] = await self.summarize(resource, now)
            except Exception:
                logger.exception("Failed to summarize collection", resource=resource.value)
                report[resource] = CollectionSummary.empty()
        return report

    async def summarize(self, resource: ResourceName, now: datetime) -> CollectionSummary:
        traits: ResourceTraits = RESOURCE_TRAITS[resource]
        count = await self.store.count(resource)
        page = await self.store.list_recent(resource, self.settings.snapshot_scan_limit)

        summary = CollectionSummary(
            count=count,
            recent=[
                preview(document, self.settings.description_preview_chars)
                for document in page[: self.settings.snapshot_preview_limit]
            ],
            missing_required=sum(
                1 for document in page if any(is_missing(document.get(field)) for field in traits.required_fields)
            ),
        )

        if traits.publishable:
            summary.published = sum(1 for document in page if document.get("published") is True)
            summary.drafts = sum(1 for document in page if document.get("published") is False)

        if traits.tracks_staleness:
            cutoff = now - timedelta(days=self.settings.stale_after_days)
            summary.stale = sum(1 for document in page if _is_stale(document, cutoff))

        return summary

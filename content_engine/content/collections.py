"""Collection access primitive.

One async call per single-record operation. Each call is its own transaction,
so a record is either fully written or untouched; nothing spans two calls.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from content_engine.content.errors import DuplicateRecordError, RecordNotFoundError
from content_engine.content.resources import ResourceName
from content_engine.db.models import ContentRecord
from content_engine.db.session import SessionFactory, run_in_session

Document = dict[str, Any]

MANAGED_FIELDS = ("id", "created_at", "updated_at")


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way out)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str):
        return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    raise ValueError(f"Unsupported timestamp value: {value!r}")


def to_document(row: ContentRecord) -> Document:
    """Flatten a stored row into the document shape callers see."""
    document: Document = dict(row.data or {})
    document["id"] = row.id
    document["created_at"] = as_utc(row.created_at).isoformat()
    document["updated_at"] = as_utc(row.updated_at).isoformat()
    return document


def _split_payload(payload: Document) -> tuple[Document, Document]:
    fields = {key: value for key, value in payload.items() if key not in MANAGED_FIELDS}
    managed = {key: payload[key] for key in MANAGED_FIELDS if key in payload}
    return fields, managed


class CollectionStore(Protocol):
    """Async document store keyed by (resource, record id)."""

    async def insert(self, resource: ResourceName, payload: Document) -> Document: ...

    async def select_one(self, resource: ResourceName, record_id: str) -> Document | None: ...

    async def update(
        self, resource: ResourceName, record_id: str, payload: Document, *, replace: bool = False
    ) -> Document: ...

    async def delete(self, resource: ResourceName, record_id: str) -> bool: ...

    async def count(self, resource: ResourceName) -> int: ...

    async def list_recent(self, resource: ResourceName, limit: int) -> list[Document]: ...


def _get_row(session: Session, resource: ResourceName, record_id: str) -> ContentRecord | None:
    return session.execute(
        select(ContentRecord).where(
            ContentRecord.resource == resource.value,
            ContentRecord.id == record_id,
        )
    ).scalar_one_or_none()


class SqlDocumentStore:
    """CollectionStore backed by the ``content_records`` table."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory

    async def _run(self, work):
        return await run_in_session(work, self._session_factory)

    async def insert(self, resource: ResourceName, payload: Document) -> Document:
        """Insert a record and return it, including its assigned ID.

        A caller-supplied ``id`` (and timestamps) are kept, which is what lets
        a reverted delete bring a record back under its original ID.
        """
        fields, managed = _split_payload(payload)

        def work(session: Session) -> Document:
            record_id = managed.get("id")
            if record_id is not None:
                existing = session.get(ContentRecord, str(record_id))
                if existing is not None:
                    raise DuplicateRecordError(resource.value, str(record_id))

            row = ContentRecord(resource=resource.value, data=fields)
            if record_id is not None:
                row.id = str(record_id)
            created_at = parse_timestamp(managed.get("created_at"))
            updated_at = parse_timestamp(managed.get("updated_at"))
            if created_at is not None:
                row.created_at = created_at
            if updated_at is not None:
                row.updated_at = updated_at
            session.add(row)
            session.flush()
            return to_document(row)

        return await self._run(work)

    async def select_one(self, resource: ResourceName, record_id: str) -> Document | None:
        def work(session: Session) -> Document | None:
            row = _get_row(session, resource, record_id)
            return to_document(row) if row is not None else None

        return await self._run(work)

    async def update(
        self, resource: ResourceName, record_id: str, payload: Document, *, replace: bool = False
    ) -> Document:
        """Merge ``payload`` into an existing record and return the result.

        With ``replace=True`` the record's fields are overwritten wholesale
        instead of merged.

        Raises:
            RecordNotFoundError: If no such record exists
        """
        fields, managed = _split_payload(payload)

        def work(session: Session) -> Document:
            row = _get_row(session, resource, record_id)
            if row is None:
                raise RecordNotFoundError(resource.value, record_id)

            row.data = fields if replace else {**(row.data or {}), **fields}
            if "created_at" in managed:
                row.created_at = parse_timestamp(managed["created_at"]) or row.created_at
            row.updated_at = parse_timestamp(managed.get("updated_at")) or datetime.now(timezone.utc)
            session.flush()
            return to_document(row)

        return await self._run(work)

    async def delete(self, resource: ResourceName, record_id: str) -> bool:
        """Delete a record. Returns False if it was already gone."""

        def work(session: Session) -> bool:
            row = _get_row(session, resource, record_id)
            if row is None:
                return False
            session.delete(row)
            session.flush()
            return True

        return await self._run(work)

    async def count(self, resource: ResourceName) -> int:
        def work(session: Session) -> int:
            return session.execute(
                select(func.count()).select_from(ContentRecord).where(ContentRecord.resource == resource.value)
            ).scalar_one()

        return await self._run(work)

    async def list_recent(self, resource: ResourceName, limit: int) -> list[Document]:
        def work(session: Session) -> list[Document]:
            query = (
                select(ContentRecord)
                .where(ContentRecord.resource == resource.value)
                .order_by(ContentRecord.created_at.desc(), ContentRecord.id.desc())
                .limit(limit)
            )
            return [to_document(row) for row in session.execute(query).scalars().all()]

        return await self._run(work)


class Collection:
    """Typed handle onto one allow-listed collection."""

    def __init__(self, resource: ResourceName, store: CollectionStore) -> None:
        self.resource = resource
        self.store = store

    def __repr__(self) -> str:
        return f"Collection({self.resource.value!r})"

    async def insert(self, payload: Document) -> Document:
        return await self.store.insert(self.resource, payload)

    async def select_one(self, record_id: str) -> Document | None:
        return await self.store.select_one(self.resource, record_id)

    async def update(self, record_id: str, payload: Document, *, replace: bool = False) -> Document:
        return await self.store.update(self.resource, record_id, payload, replace=replace)

    async def delete(self, record_id: str) -> bool:
        return await self.store.delete(self.resource, record_id)

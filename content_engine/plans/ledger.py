"""Change ledger.

Append-only history of attempted actions with before/after snapshots.
Once written, an entry can only ever change by having ``reverted`` flipped
from False to True.
"""

from __future__ import annotations

from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import exists, select, update
from sqlalchemy.orm import Session

from content_engine.content.collections import Document, as_utc
from content_engine.db.models import ChangeHistoryEntry
from content_engine.db.session import SessionFactory, run_in_session
from content_engine.plans.types import ActionKind, ChangeRecord


def to_change_record(entry: ChangeHistoryEntry) -> ChangeRecord:
    return ChangeRecord(
        id=entry.id,
        plan_id=entry.plan_id,
        action_kind=ActionKind(entry.action_kind),
        resource=entry.resource,
        record_id=entry.record_id,
        previous_data=entry.previous_data,
        new_data=entry.new_data,
        reverted=entry.reverted,
        created_at=as_utc(entry.created_at),
    )


def append_change(
    session: Session,
    *,
    plan_id: str,
    action_kind: ActionKind,
    resource: str,
    record_id: str,
    previous_data: Document | None,
    new_data: Document | None,
) -> ChangeHistoryEntry:
    """Append a ledger entry for one attempted action.

    Args:
        session: Database session
        plan_id: Owning plan
        action_kind: Kind of the originating action
        resource: Collection the action touched
        record_id: Affected record
        previous_data: Full record before the action (None for creates)
        new_data: Full record after the action (deletion marker for deletes)

    Returns:
        Created ChangeHistoryEntry instance
    """
    entry = ChangeHistoryEntry(
        plan_id=plan_id,
        action_kind=action_kind.value,
        resource=resource,
        record_id=record_id,
        previous_data=previous_data,
        new_data=new_data,
        reverted=False,
        created_at=datetime.now(timezone.utc),
    )
    session.add(entry)
    session.flush()
    return entry


def pending_changes_for_plan(session: Session, plan_id: str) -> list[ChangeHistoryEntry]:
    """Non-reverted entries of a plan, most recent first.

    The id tiebreak keeps the order total when two entries share a timestamp.
    """
    query = (
        select(ChangeHistoryEntry)
        .where(
            ChangeHistoryEntry.plan_id == plan_id,
            ChangeHistoryEntry.reverted.is_(False),
        )
        .order_by(ChangeHistoryEntry.created_at.desc(), ChangeHistoryEntry.id.desc())
    )
    return list(session.execute(query).scalars().all())


def mark_change_reverted(session: Session, change_id: int) -> bool:
    """Flip ``reverted`` on an entry. Returns False if it was already flipped."""
    result = session.execute(
        update(ChangeHistoryEntry)
        .where(
            ChangeHistoryEntry.id == change_id,
            ChangeHistoryEntry.reverted.is_(False),
        )
        .values(reverted=True)
    )
    return result.rowcount == 1


def list_change_entries(
    session: Session,
    *,
    plan_id: str | None = None,
    limit: int = 50,
) -> list[ChangeHistoryEntry]:
    query = select(ChangeHistoryEntry)
    if plan_id is not None:
        query = query.where(ChangeHistoryEntry.plan_id == plan_id)
    query = query.order_by(ChangeHistoryEntry.created_at.desc(), ChangeHistoryEntry.id.desc()).limit(limit)
    return list(session.execute(query).scalars().all())


class ChangeLedger:
    """Async access to the change ledger."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory

    async def append(
        self,
        *,
        plan_id: str,
        action_kind: ActionKind,
        resource: str,
        record_id: str,
        previous_data: Document | None,
        new_data: Document | None,
    ) -> ChangeRecord:
        record = await run_in_session(
            lambda session: to_change_record(
                append_change(
                    session,
                    plan_id=plan_id,
                    action_kind=action_kind,
                    resource=resource,
                    record_id=record_id,
                    previous_data=previous_data,
                    new_data=new_data,
                )
            ),
            self._session_factory,
        )
        logger.debug(
            "Recorded change",
            change_id=record.id,
            plan_id=plan_id,
            action_kind=action_kind.value,
            resource=resource,
            record_id=record_id,
        )
        return record

    async def get(self, change_id: int) -> ChangeRecord | None:
        def work(session: Session) -> ChangeRecord | None:
            entry = session.get(ChangeHistoryEntry, change_id)
            return to_change_record(entry) if entry is not None else None

        return await run_in_session(work, self._session_factory)

    async def pending_for_plan(self, plan_id: str) -> list[ChangeRecord]:
        return await run_in_session(
            lambda session: [to_change_record(entry) for entry in pending_changes_for_plan(session, plan_id)],
            self._session_factory,
        )

    async def has_pending(self, plan_id: str) -> bool:
        return await run_in_session(
            lambda session: session.execute(
                select(
                    exists().where(
                        ChangeHistoryEntry.plan_id == plan_id,
                        ChangeHistoryEntry.reverted.is_(False),
                    )
                )
            ).scalar_one(),
            self._session_factory,
        )

    async def mark_reverted(self, change_id: int) -> bool:
        return await run_in_session(
            lambda session: mark_change_reverted(session, change_id),
            self._session_factory,
        )

    async def list_changes(self, plan_id: str | None = None, limit: int = 50) -> list[ChangeRecord]:
        return await run_in_session(
            lambda session: [
                to_change_record(entry) for entry in list_change_entries(session, plan_id=plan_id, limit=limit)
            ],
            self._session_factory,
        )

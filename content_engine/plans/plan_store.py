"""Repository functions for content plan persistence.

Handles creating and querying plan metadata. Plans are stored whether or not
their actions ever run.
"""

from __future__ import annotations

from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from content_engine.content.collections import as_utc
from content_engine.db.models import ContentPlanRecord
from content_engine.db.session import SessionFactory, run_in_session
from content_engine.plans.errors import PlanPersistenceError
from content_engine.plans.types import ContentAction, ContentPlan, PlanStatus


def to_content_plan(row: ContentPlanRecord) -> ContentPlan:
    return ContentPlan(
        id=row.id,
        title=row.title,
        summary=row.description or "",
        actions=[ContentAction.model_validate(action) for action in (row.actions or [])],
        status=PlanStatus(row.status),
        conversation_id=row.conversation_id,
        created_at=as_utc(row.created_at),
        executed_at=as_utc(row.executed_at) if row.executed_at else None,
    )


def create_content_plan(
    session: Session,
    *,
    plan: ContentPlan,
    status: PlanStatus,
) -> ContentPlanRecord:
    """Create a content plan record.

    Args:
        session: Database session
        plan: Plan to persist (its ``id`` and ``status`` are ignored)
        status: Status to store (saved, executed)

    Returns:
        Created ContentPlanRecord instance
    """
    now = datetime.now(timezone.utc)
    executed_at = now if status == PlanStatus.EXECUTED else None

    record = ContentPlanRecord(
        title=plan.title,
        description=plan.summary,
        actions=[action.model_dump(mode="json") for action in plan.actions],
        status=status.value,
        conversation_id=plan.conversation_id,
        created_at=now,
        executed_at=executed_at,
    )
    session.add(record)
    session.flush()
    return record


def get_content_plan(session: Session, plan_id: str) -> ContentPlanRecord | None:
    return session.execute(
        select(ContentPlanRecord).where(ContentPlanRecord.id == plan_id)
    ).scalar_one_or_none()


def update_plan_status(session: Session, *, plan_id: str, status: PlanStatus) -> bool:
    """Set a plan's status. Returns False if the plan does not exist."""
    record = get_content_plan(session, plan_id)
    if record is None:
        return False
    record.status = status.value
    session.flush()
    return True


def list_content_plans(
    session: Session,
    *,
    statuses: list[PlanStatus] | None = None,
    limit: int = 20,
) -> list[ContentPlanRecord]:
    """List plans ordered by creation time (newest first).

    Args:
        session: Database session
        statuses: Optional status filter
        limit: Maximum number of plans returned

    Returns:
        List of ContentPlanRecord instances, ordered by created_at DESC
    """
    query = select(ContentPlanRecord)
    if statuses:
        query = query.where(ContentPlanRecord.status.in_([status.value for status in statuses]))
    query = query.order_by(ContentPlanRecord.created_at.desc()).limit(limit)
    return list(session.execute(query).scalars().all())


def delete_content_plan(session: Session, *, plan_id: str, status: PlanStatus) -> bool:
    """Delete a plan only if it is currently in ``status``."""
    record = get_content_plan(session, plan_id)
    if record is None or record.status != status.value:
        return False
    session.delete(record)
    session.flush()
    return True


class PlanStore:
    """Async access to plan metadata."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory

    async def save(self, plan: ContentPlan, status: PlanStatus) -> ContentPlan:
        """Persist plan metadata with ``status`` and return the stored plan.

        Raises:
            PlanPersistenceError: If the plan could not be written
        """
        try:
            stored = await run_in_session(
                lambda session: to_content_plan(create_content_plan(session, plan=plan, status=status)),
                self._session_factory,
            )
        except Exception as e:
            logger.exception("Failed to save plan", title=plan.title, status=status.value)
            raise PlanPersistenceError(plan.title, e) from e

        logger.info("Saved plan", plan_id=stored.id, status=status.value, actions=len(plan.actions))
        return stored

    async def get(self, plan_id: str) -> ContentPlan | None:
        def work(session: Session) -> ContentPlan | None:
            record = get_content_plan(session, plan_id)
            return to_content_plan(record) if record is not None else None

        return await run_in_session(work, self._session_factory)

    async def set_status(self, plan_id: str, status: PlanStatus) -> bool:
        updated = await run_in_session(
            lambda session: update_plan_status(session, plan_id=plan_id, status=status),
            self._session_factory,
        )
        if not updated:
            logger.warning("Plan not found when updating status", plan_id=plan_id, status=status.value)
        return updated

    async def list_plans(self, statuses: list[PlanStatus] | None = None, limit: int = 20) -> list[ContentPlan]:
        return await run_in_session(
            lambda session: [
                to_content_plan(record) for record in list_content_plans(session, statuses=statuses, limit=limit)
            ],
            self._session_factory,
        )

    async def delete_saved(self, plan_id: str) -> bool:
        """Delete a plan that is still in ``saved`` status."""
        return await run_in_session(
            lambda session: delete_content_plan(session, plan_id=plan_id, status=PlanStatus.SAVED),
            self._session_factory,
        )

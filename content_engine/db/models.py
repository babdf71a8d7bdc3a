from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class ContentRecord(Base):
    """Document row backing every allow-listed content collection.

    The managed backend keeps one table per collection. Locally all of them
    share this table, partitioned by ``resource``:
    - id: Record ID (string UUID, caller-supplied IDs are kept)
    - resource: Collection name (one of ResourceName)
    - data: Free-form field map; per-collection schemas are not enforced here
    - created_at / updated_at: Managed timestamps (UTC)
    """

    __tablename__ = "content_records"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    resource: Mapped[str] = mapped_column(String, nullable=False, index=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_content_records_resource_created", "resource", "created_at"),  # Common query: newest records per collection
    )


class ContentPlanRecord(Base):
    """AI content plan metadata.

    Stored independently of whether the plan's actions ever ran:
    - status "saved" rows have no change history
    - status "executed" rows own the change history written while executing
    - actions: The proposed actions as submitted (JSON list)
    - executed_at: Set only when the plan is persisted as executed
    """

    __tablename__ = "ai_content_plans"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    actions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft", index=True)
    conversation_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    executed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class ChangeHistoryEntry(Base):
    """Append-only change ledger, one row per attempted action.

    Rows are immutable except for ``reverted``, which flips from False to
    True at most once.
    - previous_data: Full record before the action (None for creates)
    - new_data: Full record after the action ({"deleted": true} for deletes)
    """

    __tablename__ = "ai_change_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, index=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("ai_content_plans.id"), nullable=False, index=True)
    action_kind: Mapped[str] = mapped_column(String, nullable=False)  # create, update, delete
    resource: Mapped[str] = mapped_column(String, nullable=False)
    record_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    previous_data: Mapped[dict | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    new_data: Mapped[dict | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    reverted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_change_history_plan_reverted", "plan_id", "reverted"),  # Common query: pending changes of a plan
    )

"""Content plan types - proposed changes, their ledger entries, and outcomes.

A ContentPlan answers one question only:
"Which records should change, in which order, and why?"

A ChangeRecord answers the matching question after the fact:
"What did the record look like before and after, and has it been undone?"
"""

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from content_engine.content.collections import Document


DELETION_MARKER: Document = {"deleted": True}


class ActionKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class PlanStatus(StrEnum):
    DRAFT = "draft"
    SAVED = "saved"
    EXECUTED = "executed"
    REVERTED = "reverted"
    PARTIALLY_REVERTED = "partially_reverted"


class ContentAction(BaseModel):
    """A single proposed mutation.

    ``resource`` stays a plain string so an action naming a collection off the
    allow-list still parses; the executor rejects and counts it.

    Attributes:
        kind: create, update or delete
        resource: Target collection name
        record_id: Target record (required for update and delete)
        payload: Field map to insert or merge (required for create and update)
        description: Human-readable summary of the change
    """

    kind: ActionKind = Field(validation_alias=AliasChoices("kind", "type"))
    resource: str = Field(validation_alias=AliasChoices("resource", "table"))
    record_id: str | None = None
    payload: Document | None = Field(default=None, validation_alias=AliasChoices("payload", "data"))
    description: str = ""

    def validation_problem(self) -> str | None:
        """Return why this action cannot run, or None if it is well formed."""
        if self.kind in (ActionKind.UPDATE, ActionKind.DELETE) and not self.record_id:
            return f"{self.kind.value} action requires a record_id"
        if self.kind in (ActionKind.CREATE, ActionKind.UPDATE) and self.payload is None:
            return f"{self.kind.value} action requires a payload"
        return None


class ContentPlan(BaseModel):
    """Named, ordered batch of proposed actions.

    Action order is execution order; nothing reorders it.
    """

    id: str | None = None
    title: str
    summary: str = ""
    actions: list[ContentAction] = []
    status: PlanStatus = PlanStatus.DRAFT
    conversation_id: str | None = None
    created_at: datetime | None = None
    executed_at: datetime | None = None


class ChangeRecord(BaseModel):
    """Ledger entry for one attempted action. Immutable once read."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    plan_id: str
    action_kind: ActionKind
    resource: str
    record_id: str
    previous_data: Document | None = None
    new_data: Document | None = None
    reverted: bool = False
    created_at: datetime


OutcomeStatus = Literal["applied", "rejected", "skipped", "failed"]


class ActionOutcome(BaseModel):
    """What happened to one action of an executed plan."""

    index: int
    kind: ActionKind
    resource: str
    status: OutcomeStatus
    record_id: str | None = None
    change_id: int | None = None
    error: str | None = None


class ExecutionResult(BaseModel):
    """Result of executing a plan.

    ``success`` only says whether every action applied. The change ledger is
    the source of truth for what actually happened.
    """

    plan_id: str
    outcomes: list[ActionOutcome] = []

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def applied_count(self) -> int:
        return self.count("applied")

    @property
    def failed_count(self) -> int:
        """Every outcome that did not apply: rejected, skipped or failed."""
        return len(self.outcomes) - self.applied_count

    @property
    def success(self) -> bool:
        return self.failed_count == 0


class RevertResult(BaseModel):
    """Result of reverting a plan or a single change."""

    plan_id: str | None = None
    reverted: list[int] = []
    failed: list[int] = []
    skipped: list[int] = []
    status: PlanStatus | None = None

    @property
    def attempted(self) -> int:
        return len(self.reverted) + len(self.failed) + len(self.skipped)

    @property
    def success(self) -> bool:
        return not self.failed and not self.skipped

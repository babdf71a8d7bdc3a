"""Executor for content plans.

Applies a plan's actions one at a time, in plan order, and appends one
ledger entry per action that reached the collection.
"""

from __future__ import annotations

from loguru import logger

from content_engine.content.collections import Collection, Document
from content_engine.content.errors import RejectedResourceError
from content_engine.content.resources import ResourceRegistry
from content_engine.events.invalidation import ContentChanged, ContentEventBus, InvalidationSignal
from content_engine.plans.errors import EmptyPlanError, MalformedActionError
from content_engine.plans.ledger import ChangeLedger
from content_engine.plans.plan_store import PlanStore
from content_engine.plans.types import (
    DELETION_MARKER,
    ActionKind,
    ActionOutcome,
    ChangeRecord,
    ContentAction,
    ContentPlan,
    ExecutionResult,
    PlanStatus,
)


class ActionExecutor:
    """Runs content plans against the allow-listed collections."""

    def __init__(
        self,
        *,
        registry: ResourceRegistry,
        plans: PlanStore,
        ledger: ChangeLedger,
        bus: ContentEventBus,
    ) -> None:
        self.registry = registry
        self.plans = plans
        self.ledger = ledger
        self.bus = bus

    async def execute(self, plan: ContentPlan) -> ExecutionResult:
        """Persist and execute a plan.

        Flow:
        1. Reject empty plans before touching storage
        2. Persist the plan as executed (commit point)
        3. Apply each action in order, continuing past failures
        4. Publish one invalidation signal for the whole batch

        Args:
            plan: Plan to execute

        Returns:
            ExecutionResult with the stored plan ID and one outcome per action

        Raises:
            EmptyPlanError: If the plan has no actions
            PlanPersistenceError: If the plan could not be saved; no action ran
        """
        if not plan.actions:
            logger.warning("Refusing to execute empty plan", title=plan.title)
            raise EmptyPlanError(plan.title)

        stored = await self.plans.save(plan, PlanStatus.EXECUTED)
        plan_id = stored.id
        assert plan_id is not None

        logger.info("Executing plan", plan_id=plan_id, title=plan.title, actions=len(plan.actions))

        outcomes: list[ActionOutcome] = []
        changes: list[ContentChanged] = []
        for index, action in enumerate(plan.actions):
            outcome = await self._apply(plan_id, index, action)
            outcomes.append(outcome)
            if outcome.status == "applied" and outcome.record_id is not None:
                changes.append(
                    ContentChanged(resource=action.resource, record_id=outcome.record_id, action_kind=action.kind)
                )

        await self.bus.publish(InvalidationSignal(origin="execute", plan_id=plan_id, changes=tuple(changes)))

        result = ExecutionResult(plan_id=plan_id, outcomes=outcomes)
        logger.info(
            "Plan execution complete",
            plan_id=plan_id,
            applied=result.applied_count,
            failed=result.failed_count,
        )
        return result

    async def _apply(self, plan_id: str, index: int, action: ContentAction) -> ActionOutcome:
        try:
            collection = self.registry.collection(action.resource)
        except RejectedResourceError as e:
            logger.error("Action rejected", plan_id=plan_id, index=index, resource=action.resource)
            return self._outcome(index, action, "rejected", error=e.message)

        problem = action.validation_problem()
        if problem is not None:
            error = MalformedActionError(action.kind.value, problem)
            logger.error("Action skipped", plan_id=plan_id, index=index, reason=error.message)
            return self._outcome(index, action, "skipped", record_id=action.record_id, error=error.message)

        try:
            if action.kind == ActionKind.CREATE:
                change = await self._create(plan_id, collection, action)
            elif action.kind == ActionKind.UPDATE:
                change = await self._update(plan_id, collection, action)
            else:
                change = await self._delete(plan_id, collection, action)
        except Exception as e:
            logger.exception(
                "Action failed",
                plan_id=plan_id,
                index=index,
                kind=action.kind.value,
                resource=action.resource,
                record_id=action.record_id,
            )
            return self._outcome(index, action, "failed", record_id=action.record_id, error=f"{type(e).__name__}: {e}")

        return self._outcome(index, action, "applied", record_id=change.record_id, change_id=change.id)

    async def _create(self, plan_id: str, collection: Collection, action: ContentAction) -> ChangeRecord:
        created = await collection.insert(action.payload or {})
        return await self.ledger.append(
            plan_id=plan_id,
            action_kind=ActionKind.CREATE,
            resource=collection.resource.value,
            record_id=str(created["id"]),
            previous_data=None,
            new_data=created,
        )

    async def _update(self, plan_id: str, collection: Collection, action: ContentAction) -> ChangeRecord:
        record_id = action.record_id
        assert record_id is not None
        existing = await self._snapshot(plan_id, collection, record_id)
        updated = await collection.update(record_id, action.payload or {})
        return await self.ledger.append(
            plan_id=plan_id,
            action_kind=ActionKind.UPDATE,
            resource=collection.resource.value,
            record_id=record_id,
            previous_data=existing,
            new_data=updated,
        )

    async def _delete(self, plan_id: str, collection: Collection, action: ContentAction) -> ChangeRecord:
        record_id = action.record_id
        assert record_id is not None
        existing = await self._snapshot(plan_id, collection, record_id)
        await collection.delete(record_id)
        return await self.ledger.append(
            plan_id=plan_id,
            action_kind=ActionKind.DELETE,
            resource=collection.resource.value,
            record_id=record_id,
            previous_data=existing,
            new_data=dict(DELETION_MARKER),
        )

    async def _snapshot(self, plan_id: str, collection: Collection, record_id: str) -> Document | None:
        """Best-effort pre-image; a missing record is recorded as None."""
        existing = await collection.select_one(record_id)
        if existing is None:
            logger.warning(
                "No existing record to snapshot",
                plan_id=plan_id,
                resource=collection.resource.value,
                record_id=record_id,
            )
        return existing

    @staticmethod
    def _outcome(
        index: int,
        action: ContentAction,
        status: str,
        *,
        record_id: str | None = None,
        change_id: int | None = None,
        error: str | None = None,
    ) -> ActionOutcome:
        return ActionOutcome(
            index=index,
            kind=action.kind,
            resource=action.resource,
            status=status,
            record_id=record_id,
            change_id=change_id,
            error=error,
        )

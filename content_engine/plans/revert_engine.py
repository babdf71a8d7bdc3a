"""Revert engine for content plans.

Implements undo by applying the inverse of each ledger entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from loguru import logger

from content_engine.content.collections import Collection, Document
from content_engine.content.errors import RejectedResourceError
from content_engine.content.resources import ResourceRegistry
from content_engine.events.invalidation import ContentChanged, ContentEventBus, InvalidationSignal
from content_engine.plans.ledger import ChangeLedger
from content_engine.plans.plan_store import PlanStore
from content_engine.plans.types import ActionKind, ChangeRecord, PlanStatus, RevertResult

InverseOperation = Literal["delete", "update", "insert", "noop"]


@dataclass(frozen=True)
class InverseStep:
    """The operation that undoes one ledger entry."""

    operation: InverseOperation
    record_id: str
    payload: Document | None = None

    async def apply(self, collection: Collection) -> None:
        if self.operation == "delete":
            await collection.delete(self.record_id)
        elif self.operation == "update":
            await collection.update(self.record_id, self.payload or {}, replace=True)
        elif self.operation == "insert":
            await collection.insert(self.payload or {})


def inverse_of(change: ChangeRecord) -> InverseStep:
    """Compute the inverse of a ledger entry.

    - create -> delete the created record
    - update -> write the pre-image back (without its id), no-op without one
    - delete -> re-insert the pre-image, no-op without one
    """
    if change.action_kind == ActionKind.CREATE:
        return InverseStep("delete", change.record_id)

    if change.previous_data is None:
        return InverseStep("noop", change.record_id)

    if change.action_kind == ActionKind.UPDATE:
        restore = {key: value for key, value in change.previous_data.items() if key != "id"}
        return InverseStep("update", change.record_id, restore)

    return InverseStep("insert", change.record_id, dict(change.previous_data))


class RevertEngine:
    """Reverts whole plans or single changes using the change ledger."""

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

    async def revert_plan(self, plan_id: str) -> RevertResult:
        """Revert every non-reverted change of a plan.

        Flow:
        1. Load pending changes, most recent first
        2. Apply each inverse; flag the entry reverted only if it succeeded
        3. Set plan status: reverted if nothing is left pending,
           partially_reverted otherwise
        4. Publish one invalidation signal

        Entries that fail stay pending, so calling this again retries exactly
        the unfinished work. With nothing pending no data is touched and no
        signal is published; a plan still marked partially_reverted (its
        remaining entries were undone through revert_change) moves to
        reverted.

        Args:
            plan_id: Plan to revert

        Returns:
            RevertResult with reverted, failed and skipped change IDs
        """
        logger.info("Reverting plan", plan_id=plan_id)

        changes = await self.ledger.pending_for_plan(plan_id)
        if not changes:
            logger.info("Nothing to revert", plan_id=plan_id)
            return await self._settle_partial(plan_id)

        result = RevertResult(plan_id=plan_id)
        reverted_changes: list[ContentChanged] = []
        for change in changes:
            outcome = await self._revert_one(change)
            if outcome == "reverted":
                result.reverted.append(change.id)
                reverted_changes.append(self._changed(change))
            elif outcome == "failed":
                result.failed.append(change.id)
            else:
                result.skipped.append(change.id)

        status = PlanStatus.REVERTED if result.success else PlanStatus.PARTIALLY_REVERTED
        await self.plans.set_status(plan_id, status)
        result.status = status

        await self.bus.publish(
            InvalidationSignal(origin="revert_plan", plan_id=plan_id, changes=tuple(reverted_changes))
        )

        logger.info(
            "Plan revert complete",
            plan_id=plan_id,
            status=status.value,
            reverted=len(result.reverted),
            failed=len(result.failed),
            skipped=len(result.skipped),
        )
        return result

    async def revert_change(self, change_id: int) -> RevertResult:
        """Revert a single ledger entry. Never changes the plan's status.

        Args:
            change_id: Ledger entry to revert

        Returns:
            RevertResult for the single entry (empty if unknown or already reverted)
        """
        change = await self.ledger.get(change_id)
        if change is None:
            logger.warning("Change not found", change_id=change_id)
            return RevertResult()

        result = RevertResult(plan_id=change.plan_id)
        if change.reverted:
            logger.info("Change already reverted", change_id=change_id)
            return result

        outcome = await self._revert_one(change)
        if outcome == "reverted":
            result.reverted.append(change.id)
            await self.bus.publish(
                InvalidationSignal(origin="revert_change", plan_id=change.plan_id, changes=(self._changed(change),))
            )
        elif outcome == "failed":
            result.failed.append(change.id)
        else:
            result.skipped.append(change.id)
        return result

    async def _settle_partial(self, plan_id: str) -> RevertResult:
        """Close out a partially reverted plan whose last entries were undone one by one."""
        plan = await self.plans.get(plan_id)
        if plan is None or plan.status != PlanStatus.PARTIALLY_REVERTED:
            return RevertResult(plan_id=plan_id)

        await self.plans.set_status(plan_id, PlanStatus.REVERTED)
        logger.info("Plan fully reverted", plan_id=plan_id)
        return RevertResult(plan_id=plan_id, status=PlanStatus.REVERTED)

    async def _revert_one(self, change: ChangeRecord) -> Literal["reverted", "failed", "skipped"]:
        try:
            collection = self.registry.collection(change.resource)
        except RejectedResourceError:
            logger.error("Skipping change for disallowed resource", change_id=change.id, resource=change.resource)
            return "skipped"

        step = inverse_of(change)
        try:
            await step.apply(collection)
            flipped = await self.ledger.mark_reverted(change.id)
        except Exception:
            logger.exception(
                "Revert failed for change",
                change_id=change.id,
                plan_id=change.plan_id,
                action_kind=change.action_kind.value,
                resource=change.resource,
                record_id=change.record_id,
            )
            return "failed"

        if not flipped:
            logger.warning("Change was already flagged reverted", change_id=change.id)
        logger.debug("Reverted change", change_id=change.id, operation=step.operation)
        return "reverted"

    @staticmethod
    def _changed(change: ChangeRecord) -> ContentChanged:
        return ContentChanged(resource=change.resource, record_id=change.record_id, action_kind=change.action_kind)

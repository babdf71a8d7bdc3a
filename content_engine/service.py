"""Caller-facing content actions.

Single entry point for executing, saving and reverting content plans and for
briefing a planner on the current state of the site.
"""

from __future__ import annotations

from loguru import logger
from pydantic import BaseModel

import content_engine.core.logger  # noqa: F401  (configures loguru)
from content_engine.config.settings import Settings
from content_engine.content.collections import CollectionStore, SqlDocumentStore
from content_engine.content.resources import ResourceName, ResourceRegistry
from content_engine.context.snapshot import CollectionSummary, ContextSnapshotReporter
from content_engine.db.session import SessionFactory, build_engine, init_db, make_session_factory
from content_engine.events.invalidation import ContentEventBus
from content_engine.plans.errors import PlanNotFoundError
from content_engine.plans.executor import ActionExecutor
from content_engine.plans.ledger import ChangeLedger
from content_engine.plans.plan_store import PlanStore
from content_engine.plans.revert_engine import RevertEngine
from content_engine.plans.types import ChangeRecord, ContentPlan, ExecutionResult, PlanStatus, RevertResult

HISTORY_STATUSES = [PlanStatus.EXECUTED, PlanStatus.REVERTED, PlanStatus.PARTIALLY_REVERTED]


class PlanHistoryEntry(BaseModel):
    plan: ContentPlan
    changes: list[ChangeRecord] = []

    @property
    def has_pending(self) -> bool:
        return any(not change.reverted for change in self.changes)


class ContentActionService:
    """Executes, saves and reverts content plans.

    Usage:
        service = ContentActionService()
        service.bus.subscribe_invalidate_all(cache.clear)
        result = await service.execute_plan(plan)
        await service.revert_plan(result.plan_id)
    """

    def __init__(
        self,
        *,
        store: CollectionStore | None = None,
        session_factory: SessionFactory | None = None,
        bus: ContentEventBus | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store or SqlDocumentStore(session_factory)
        self.bus = bus or ContentEventBus()
        self.registry = ResourceRegistry(self.store)
        self.plans = PlanStore(session_factory)
        self.ledger = ChangeLedger(session_factory)
        self.executor = ActionExecutor(registry=self.registry, plans=self.plans, ledger=self.ledger, bus=self.bus)
        self.reverter = RevertEngine(registry=self.registry, plans=self.plans, ledger=self.ledger, bus=self.bus)
        self.reporter = ContextSnapshotReporter(self.store, settings)

    @classmethod
    def from_settings(cls, settings: Settings, *, bus: ContentEventBus | None = None) -> "ContentActionService":
        """Build a service on ``settings.database_url``, creating missing tables first.

        The service gets its own engine and session factory, so two services
        built from different settings never share a database. ``settings``
        also tunes the context snapshot.
        """
        engine = build_engine(settings.database_url)
        init_db(engine)
        logger.info("Content service bound to database", database_url=engine.url.render_as_string(hide_password=True))
        return cls(session_factory=make_session_factory(engine), bus=bus, settings=settings)

    async def execute_plan(self, plan: ContentPlan) -> ExecutionResult:
        """Persist ``plan`` as executed and apply its actions.

        Raises:
            EmptyPlanError: If the plan has no actions
            PlanPersistenceError: If the plan could not be saved
        """
        return await self.executor.execute(plan)

    async def save_plan_for_later(self, plan: ContentPlan) -> str:
        """Persist ``plan`` with status saved without running it.

        Raises:
            PlanPersistenceError: If the plan could not be saved
        """
        stored = await self.plans.save(plan, PlanStatus.SAVED)
        assert stored.id is not None
        return stored.id

    async def revert_plan(self, plan_id: str) -> RevertResult:
        return await self.reverter.revert_plan(plan_id)

    async def revert_change(self, change_id: int) -> RevertResult:
        return await self.reverter.revert_change(change_id)

    async def snapshot(self) -> dict[ResourceName, CollectionSummary]:
        return await self.reporter.snapshot()

    async def list_saved_plans(self) -> list[ContentPlan]:
        return await self.plans.list_plans(statuses=[PlanStatus.SAVED], limit=100)

    async def delete_saved_plan(self, plan_id: str) -> bool:
        deleted = await self.plans.delete_saved(plan_id)
        if deleted:
            logger.info("Deleted saved plan", plan_id=plan_id)
        return deleted

    async def execute_saved_plan(self, plan_id: str) -> ExecutionResult:
        """Run a saved plan.

        The actions execute as a new executed plan carrying the same title,
        summary and conversation. The saved copy is removed once every action
        applied; otherwise it is kept so the plan can be reviewed and retried.

        Raises:
            PlanNotFoundError: If ``plan_id`` is not a saved plan
        """
        saved = await self.plans.get(plan_id)
        if saved is None or saved.status != PlanStatus.SAVED:
            raise PlanNotFoundError(plan_id, f"Saved plan {plan_id} not found")

        result = await self.executor.execute(saved.model_copy(update={"id": None, "status": PlanStatus.DRAFT}))
        if result.success:
            await self.plans.delete_saved(plan_id)
        else:
            logger.warning("Keeping saved plan after partial execution", plan_id=plan_id, executed_plan_id=result.plan_id)
        return result

    async def plan_history(self, limit: int = 20) -> list[PlanHistoryEntry]:
        """Executed and reverted plans with their change records, newest first."""
        plans = await self.plans.list_plans(statuses=HISTORY_STATUSES, limit=limit)
        history = []
        for plan in plans:
            assert plan.id is not None
            changes = await self.ledger.list_changes(plan_id=plan.id, limit=500)
            history.append(PlanHistoryEntry(plan=plan, changes=changes))
        return history

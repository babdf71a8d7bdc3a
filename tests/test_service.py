"""End-to-end tests through ContentActionService."""

import pytest

from content_engine.config.settings import settings
from content_engine.content.resources import ResourceName
from content_engine.plans.errors import EmptyPlanError, PlanNotFoundError
from content_engine.plans.types import ContentAction, ContentPlan, PlanStatus
from content_engine.service import ContentActionService


def _plan(title: str = "Weekly refresh", *actions: ContentAction) -> ContentPlan:
    return ContentPlan(
        title=title,
        summary="Routine edits",
        conversation_id="conv-1",
        actions=list(actions) or [ContentAction(kind="create", resource="updates", payload={"title": "New"})],
    )


@pytest.mark.asyncio
async def test_execute_then_revert_round_trip(service):
    article = await service.store.insert(ResourceName.ARTICLES, {"title": "A"})

    result = await service.execute_plan(
        _plan(
            "Retitle",
            ContentAction(kind="update", resource="articles", record_id=article["id"], payload={"title": "B"}),
        )
    )
    assert result.success

    reverted = await service.revert_plan(result.plan_id)

    assert reverted.status == PlanStatus.REVERTED
    assert (await service.store.select_one(ResourceName.ARTICLES, article["id"]))["title"] == "A"


@pytest.mark.asyncio
async def test_rejected_table_does_not_block_plan(service):
    result = await service.execute_plan(
        _plan(
            "Mixed",
            ContentAction(kind="create", resource="not_a_real_table", payload={"name": "x"}),
            ContentAction(kind="create", resource="skills", payload={"name": "SQL"}),
        )
    )

    assert result.applied_count == 1
    assert result.failed_count == 1
    assert await service.store.count(ResourceName.SKILLS) == 1


@pytest.mark.asyncio
async def test_empty_plan_raises_before_anything_is_stored(service, signals):
    with pytest.raises(EmptyPlanError):
        await service.execute_plan(ContentPlan(title="Empty"))

    assert await service.plans.list_plans() == []
    assert await service.ledger.list_changes() == []
    assert signals == []


@pytest.mark.asyncio
async def test_save_plan_for_later_writes_no_changes(service, signals):
    plan_id = await service.save_plan_for_later(_plan())

    saved = await service.list_saved_plans()
    assert [plan.id for plan in saved] == [plan_id]
    assert saved[0].status == PlanStatus.SAVED
    assert await service.ledger.list_changes() == []
    assert await service.store.count(ResourceName.UPDATES) == 0
    assert signals == []


@pytest.mark.asyncio
async def test_execute_saved_plan_consumes_saved_row(service):
    plan_id = await service.save_plan_for_later(_plan())

    result = await service.execute_saved_plan(plan_id)

    assert result.success
    assert result.plan_id != plan_id
    assert await service.list_saved_plans() == []
    executed = await service.plans.get(result.plan_id)
    assert executed.status == PlanStatus.EXECUTED
    assert executed.title == "Weekly refresh"
    assert executed.conversation_id == "conv-1"
    assert await service.store.count(ResourceName.UPDATES) == 1


@pytest.mark.asyncio
async def test_execute_saved_plan_keeps_row_after_failures(service):
    plan_id = await service.save_plan_for_later(
        _plan("Broken", ContentAction(kind="update", resource="articles", record_id="missing", payload={"title": "B"}))
    )

    result = await service.execute_saved_plan(plan_id)

    assert not result.success
    assert [plan.id for plan in await service.list_saved_plans()] == [plan_id]


@pytest.mark.asyncio
async def test_execute_saved_plan_requires_saved_status(service):
    executed = await service.execute_plan(_plan())

    with pytest.raises(PlanNotFoundError):
        await service.execute_saved_plan(executed.plan_id)
    with pytest.raises(PlanNotFoundError):
        await service.execute_saved_plan("missing")


@pytest.mark.asyncio
async def test_delete_saved_plan(service):
    plan_id = await service.save_plan_for_later(_plan())

    assert await service.delete_saved_plan(plan_id) is True
    assert await service.delete_saved_plan(plan_id) is False
    assert await service.list_saved_plans() == []


@pytest.mark.asyncio
async def test_plan_history_lists_executed_plans_with_changes(service):
    await service.save_plan_for_later(_plan("Saved only"))
    first = await service.execute_plan(_plan("First"))
    second = await service.execute_plan(
        _plan(
            "Second",
            ContentAction(kind="create", resource="articles", payload={"title": "a"}),
            ContentAction(kind="create", resource="articles", payload={"title": "b"}),
        )
    )
    await service.revert_plan(first.plan_id)

    history = await service.plan_history()

    assert [entry.plan.id for entry in history] == [second.plan_id, first.plan_id]
    assert len(history[0].changes) == 2
    assert history[0].has_pending
    assert history[1].plan.status == PlanStatus.REVERTED
    assert not history[1].has_pending


@pytest.mark.asyncio
async def test_revert_change_through_service(service):
    result = await service.execute_plan(_plan())

    reverted = await service.revert_change(result.outcomes[0].change_id)

    assert reverted.success
    assert await service.store.count(ResourceName.UPDATES) == 0


@pytest.mark.asyncio
async def test_snapshot_reflects_executed_plan(service):
    await service.execute_plan(
        _plan(
            "Seed",
            ContentAction(kind="create", resource="projects", payload={"title": "Site", "published": True}),
        )
    )

    report = await service.snapshot()

    assert report[ResourceName.PROJECTS].count == 1
    assert report[ResourceName.PROJECTS].published == 1
    assert report[ResourceName.PROJECTS].recent[0]["title"] == "Site"


@pytest.mark.asyncio
async def test_invalidate_all_subscriber_runs_after_each_batch(service):
    refreshes = []
    service.bus.subscribe_invalidate_all(lambda: refreshes.append(True))

    result = await service.execute_plan(_plan())
    await service.revert_plan(result.plan_id)

    assert len(refreshes) == 2


@pytest.mark.asyncio
async def test_create_then_update_same_record_reverts_step_by_step(service):
    result = await service.execute_plan(
        _plan(
            "New article",
            ContentAction(kind="create", resource="articles", payload={"id": "article-new", "title": "A"}),
            ContentAction(kind="update", resource="articles", record_id="article-new", payload={"title": "B"}),
        )
    )
    assert result.success
    assert (await service.store.select_one(ResourceName.ARTICLES, "article-new"))["title"] == "B"
    assert len(await service.ledger.list_changes(plan_id=result.plan_id)) == 2

    await service.revert_change(result.outcomes[1].change_id)
    assert (await service.store.select_one(ResourceName.ARTICLES, "article-new"))["title"] == "A"

    reverted = await service.revert_plan(result.plan_id)

    assert reverted.reverted == [result.outcomes[0].change_id]
    assert reverted.status == PlanStatus.REVERTED
    assert await service.store.select_one(ResourceName.ARTICLES, "article-new") is None


@pytest.mark.asyncio
async def test_create_then_update_same_record_reverts_in_one_call(service):
    result = await service.execute_plan(
        _plan(
            "New article",
            ContentAction(kind="create", resource="articles", payload={"id": "article-new", "title": "A"}),
            ContentAction(kind="update", resource="articles", record_id="article-new", payload={"title": "B"}),
        )
    )

    reverted = await service.revert_plan(result.plan_id)

    assert reverted.reverted == [result.outcomes[1].change_id, result.outcomes[0].change_id]
    assert reverted.failed == []
    assert await service.store.select_one(ResourceName.ARTICLES, "article-new") is None


@pytest.mark.asyncio
async def test_plan_with_only_rejected_table_is_still_recorded(service):
    result = await service.execute_plan(
        _plan("Bogus", ContentAction(kind="create", resource="not_a_real_table", payload={"name": "x"}))
    )

    assert not result.success
    assert result.applied_count == 0
    assert result.failed_count == 1
    assert await service.ledger.list_changes(plan_id=result.plan_id) == []
    assert (await service.plans.get(result.plan_id)).status == PlanStatus.EXECUTED


@pytest.mark.asyncio
async def test_from_settings_uses_configured_database(service, tmp_path):
    configured = settings.model_copy(update={"database_url": f"sqlite:///{tmp_path / 'other.db'}"})

    bound = ContentActionService.from_settings(configured)
    result = await bound.execute_plan(_plan("Elsewhere"))

    reopened = ContentActionService.from_settings(configured)
    stored = await reopened.plans.get(result.plan_id)
    assert stored is not None
    assert stored.title == "Elsewhere"
    assert await reopened.store.count(ResourceName.UPDATES) == 1
    assert await service.plans.get(result.plan_id) is None
    assert await service.store.count(ResourceName.UPDATES) == 0

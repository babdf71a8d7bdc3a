"""Tests for the SQL-backed document store."""

from datetime import datetime, timezone

import pytest

from content_engine.content.collections import parse_timestamp
from content_engine.content.errors import DuplicateRecordError, RecordNotFoundError
from content_engine.content.resources import ResourceName


@pytest.mark.asyncio
async def test_insert_assigns_id_and_timestamps(store):
    created = await store.insert(ResourceName.ARTICLES, {"title": "Hello", "published": False})

    assert created["id"]
    assert created["title"] == "Hello"
    assert created["published"] is False
    assert parse_timestamp(created["created_at"]).tzinfo is not None
    assert parse_timestamp(created["updated_at"]).tzinfo is not None


@pytest.mark.asyncio
async def test_insert_keeps_caller_supplied_id_and_timestamps(store):
    created = await store.insert(
        ResourceName.SKILLS,
        {
            "id": "skill-1",
            "name": "Python",
            "created_at": "2024-01-01T10:00:00+00:00",
            "updated_at": "2024-02-01T10:00:00Z",
        },
    )

    assert created["id"] == "skill-1"
    assert parse_timestamp(created["created_at"]) == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp(created["updated_at"]) == datetime(2024, 2, 1, 10, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_insert_refuses_existing_id(store):
    await store.insert(ResourceName.SKILLS, {"id": "skill-1", "name": "Python"})

    with pytest.raises(DuplicateRecordError):
        await store.insert(ResourceName.SKILLS, {"id": "skill-1", "name": "Rust"})

    assert (await store.select_one(ResourceName.SKILLS, "skill-1"))["name"] == "Python"


@pytest.mark.asyncio
async def test_select_one_is_scoped_to_resource(store):
    created = await store.insert(ResourceName.ARTICLES, {"title": "A"})

    assert await store.select_one(ResourceName.ARTICLES, created["id"]) == created
    assert await store.select_one(ResourceName.PROJECTS, created["id"]) is None
    assert await store.select_one(ResourceName.ARTICLES, "missing") is None


@pytest.mark.asyncio
async def test_update_merges_fields(store):
    created = await store.insert(ResourceName.ARTICLES, {"title": "A", "excerpt": "short"})

    updated = await store.update(ResourceName.ARTICLES, created["id"], {"title": "B", "id": "ignored"})

    assert updated["id"] == created["id"]
    assert updated["title"] == "B"
    assert updated["excerpt"] == "short"
    assert parse_timestamp(updated["updated_at"]) >= parse_timestamp(created["updated_at"])


@pytest.mark.asyncio
async def test_update_with_replace_overwrites_fields(store):
    created = await store.insert(ResourceName.ARTICLES, {"title": "A"})
    await store.update(ResourceName.ARTICLES, created["id"], {"excerpt": "added"})

    restored = await store.update(
        ResourceName.ARTICLES,
        created["id"],
        {"title": "A", "updated_at": created["updated_at"]},
        replace=True,
    )

    assert "excerpt" not in restored
    assert restored["title"] == "A"
    assert restored["updated_at"] == created["updated_at"]


@pytest.mark.asyncio
async def test_update_missing_record_raises(store):
    with pytest.raises(RecordNotFoundError) as exc_info:
        await store.update(ResourceName.ARTICLES, "missing", {"title": "B"})

    assert exc_info.value.record_id == "missing"


@pytest.mark.asyncio
async def test_delete_is_idempotent(store):
    created = await store.insert(ResourceName.ARTICLES, {"title": "A"})

    assert await store.delete(ResourceName.ARTICLES, created["id"]) is True
    assert await store.delete(ResourceName.ARTICLES, created["id"]) is False
    assert await store.select_one(ResourceName.ARTICLES, created["id"]) is None


@pytest.mark.asyncio
async def test_count_and_list_recent(store):
    for index in range(3):
        await store.insert(
            ResourceName.UPDATES,
            {"title": f"u{index}", "created_at": f"2024-01-0{index + 1}T00:00:00+00:00"},
        )
    await store.insert(ResourceName.ARTICLES, {"title": "other"})

    assert await store.count(ResourceName.UPDATES) == 3
    recent = await store.list_recent(ResourceName.UPDATES, 2)
    assert [document["title"] for document in recent] == ["u2", "u1"]


def test_parse_timestamp_rejects_other_types():
    with pytest.raises(ValueError):
        parse_timestamp(12345)
    assert parse_timestamp(None) is None

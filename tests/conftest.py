"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

import pytest

from src.core import db_client
from src.core.cache_client import cache_client
from src.core.config import settings
from src.domain.context import CallerContext
from src.domain.create_models import FamilyCreate, MemberCreate, TaskCreate
from src.domain.member import MemberRole
from src.services import auth_service, family_service, task_service


# Monday 19 October 2026, 10:00 UTC
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=UTC)


@pytest.fixture
async def test_db(tmp_path, monkeypatch) -> AsyncIterator[str]:
    """Fresh SQLite database file with the full schema, plus an empty cache."""
    db_path = str(tmp_path / "famscore_test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)
    monkeypatch.setattr(settings, "timezone", "UTC")

    await db_client.init_db()
    await cache_client.clear()

    yield db_path

    await cache_client.clear()
    await db_client.close_connection()


@pytest.fixture
async def admin_ctx(test_db) -> CallerContext:
    """Founding admin of the "Smith" family."""
    await family_service.create_family(
        user_id="parent-1",
        data=FamilyCreate(family_name="Smith", member_name="Mom"),
    )
    ctx = await auth_service.resolve_caller(user_id="parent-1")
    assert ctx is not None
    return ctx


@pytest.fixture
async def child(admin_ctx) -> dict[str, Any]:
    """Regular member of the admin's family."""
    return await family_service.create_member(ctx=admin_ctx, data=MemberCreate(name="Alice"))


@pytest.fixture
def child_ctx(admin_ctx, child) -> CallerContext:
    return CallerContext(member_id=child["id"], family_id=admin_ctx.family_id, role=MemberRole.REGULAR)


@pytest.fixture
async def other_family_ctx(test_db) -> CallerContext:
    """Admin of an unrelated family."""
    await family_service.create_family(
        user_id="neighbour-1",
        data=FamilyCreate(family_name="Jones", member_name="Dad"),
    )
    ctx = await auth_service.resolve_caller(user_id="neighbour-1")
    assert ctx is not None
    return ctx


@pytest.fixture
def make_task(admin_ctx):
    """Factory creating house tasks in the admin's family."""

    async def _make_task(**fields: Any) -> dict[str, Any]:
        fields.setdefault("title", "Dishes")
        return await task_service.create_task(ctx=admin_ctx, data=TaskCreate(**fields), today=NOW.date())

    return _make_task

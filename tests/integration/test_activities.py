"""Integration tests for sport activities and school tasks."""

import pytest

from src.core import db_client
from src.core.errors import ErrorCode, InvalidInputError, UnauthorizedError, UnavailableError
from src.domain.create_models import SchoolTaskCreate, SportActivityCreate
from src.domain.update_models import SchoolTaskUpdate, SportActivityUpdate
from src.services import activity_service, analytics_service
from tests.conftest import NOW


@pytest.mark.integration
class TestSportActivities:
    """Sport activity CRUD and completion."""

    async def test_complete_awards_owner(self, admin_ctx, child):
        activity = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=child["id"], title="Football", type="weekly", scheduled_days=[1]),
        )

        points = await activity_service.complete_sport_activity(ctx=admin_ctx, activity_id=activity["id"], now=NOW)

        assert points == 10
        stored = await db_client.get_record(collection="sport_activities", record_id=activity["id"])
        assert stored["completed_at"] is not None
        assert await analytics_service.get_member_total(member_id=child["id"]) == 10

    async def test_second_completion_fails(self, admin_ctx, child):
        activity = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=child["id"], title="Run", type="extra"),
        )
        await activity_service.complete_sport_activity(ctx=admin_ctx, activity_id=activity["id"], now=NOW)

        with pytest.raises(UnavailableError, match="Activity not found or already completed"):
            await activity_service.complete_sport_activity(ctx=admin_ctx, activity_id=activity["id"], now=NOW)

        assert len(await db_client.list_all_records(collection="scores_log")) == 1

    async def test_missing_activity(self, admin_ctx):
        with pytest.raises(UnavailableError, match="Activity not found or already completed"):
            await activity_service.complete_sport_activity(ctx=admin_ctx, activity_id="404")

    async def test_extra_can_be_credited_to_another_member(self, admin_ctx, child):
        activity = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=admin_ctx.member_id, title="Bike", type="extra", score_value=7),
        )

        await activity_service.complete_sport_activity(
            ctx=admin_ctx, activity_id=activity["id"], member_id=child["id"], now=NOW
        )

        assert await analytics_service.get_member_total(member_id=child["id"]) == 7
        assert await analytics_service.get_member_total(member_id=admin_ctx.member_id) == 0
        stored = await db_client.get_record(collection="sport_activities", record_id=activity["id"])
        assert stored["member_id"] == child["id"]

    async def test_weekly_cannot_be_credited_to_another_member(self, admin_ctx, child):
        activity = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=admin_ctx.member_id, title="Gym", type="weekly", scheduled_days=[1]),
        )

        with pytest.raises(InvalidInputError):
            await activity_service.complete_sport_activity(
                ctx=admin_ctx, activity_id=activity["id"], member_id=child["id"], now=NOW
            )

    async def test_credit_to_foreign_member_rejected(self, admin_ctx, other_family_ctx):
        activity = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=admin_ctx.member_id, title="Bike", type="extra"),
        )

        with pytest.raises(UnavailableError) as exc_info:
            await activity_service.complete_sport_activity(
                ctx=admin_ctx, activity_id=activity["id"], member_id=other_family_ctx.member_id
            )

        assert exc_info.value.code == ErrorCode.ERR_INVALID_ASSIGNEE
        assert await db_client.list_all_records(collection="scores_log") == []

    async def test_foreign_activity_unauthorized(self, admin_ctx, child, other_family_ctx):
        activity = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=child["id"], title="Run", type="extra"),
        )

        with pytest.raises(UnauthorizedError):
            await activity_service.complete_sport_activity(ctx=other_family_ctx, activity_id=activity["id"])

    async def test_regular_member_may_create_own_extra(self, child_ctx):
        activity = await activity_service.create_sport_activity(
            ctx=child_ctx,
            data=SportActivityCreate(member_id=child_ctx.member_id, title="Skate", type="extra"),
        )

        assert activity["member_id"] == child_ctx.member_id

    async def test_regular_member_cannot_create_weekly(self, child_ctx):
        with pytest.raises(UnauthorizedError):
            await activity_service.create_sport_activity(
                ctx=child_ctx,
                data=SportActivityCreate(member_id=child_ctx.member_id, title="Gym", type="weekly"),
            )

    async def test_switching_to_extra_clears_schedule(self, admin_ctx, child):
        activity = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=child["id"], title="Gym", type="weekly", scheduled_days=[2, 4]),
        )

        updated = await activity_service.update_sport_activity(
            ctx=admin_ctx, activity_id=activity["id"], data=SportActivityUpdate(type="extra")
        )

        assert updated["type"] == "extra"
        assert updated["scheduled_days"] == []

    async def test_delete_and_list(self, admin_ctx, child):
        keep = await activity_service.create_sport_activity(
            ctx=admin_ctx, data=SportActivityCreate(member_id=child["id"], title="Run", type="extra")
        )
        drop = await activity_service.create_sport_activity(
            ctx=admin_ctx, data=SportActivityCreate(member_id=child["id"], title="Walk", type="extra")
        )

        await activity_service.delete_sport_activity(ctx=admin_ctx, activity_id=drop["id"])

        activities = await activity_service.list_sport_activities(ctx=admin_ctx)
        assert [a.id for a in activities] == [keep["id"]]


@pytest.mark.integration
class TestSchoolTasks:
    """School task CRUD and completion."""

    async def test_member_defaults_to_caller(self, admin_ctx):
        school = await activity_service.create_school_task(
            ctx=admin_ctx, data=SchoolTaskCreate(title="Read chapter 3", due_date=NOW.date())
        )

        assert school["member_id"] == admin_ctx.member_id
        assert school["type"] == "homework"

    async def test_regular_member_cannot_create(self, child_ctx):
        with pytest.raises(UnauthorizedError):
            await activity_service.create_school_task(ctx=child_ctx, data=SchoolTaskCreate(title="Essay"))

    async def test_complete_awards_points_once(self, admin_ctx, child):
        school = await activity_service.create_school_task(
            ctx=admin_ctx,
            data=SchoolTaskCreate(member_id=child["id"], title="Exam prep", type="exam", score_value=30),
        )

        assert await activity_service.complete_school_task(ctx=admin_ctx, task_id=school["id"], now=NOW) == 30
        with pytest.raises(UnavailableError, match="Task not found or already completed"):
            await activity_service.complete_school_task(ctx=admin_ctx, task_id=school["id"], now=NOW)

        assert await analytics_service.get_member_total(member_id=child["id"]) == 30

    async def test_update_moves_due_date(self, admin_ctx, child):
        school = await activity_service.create_school_task(
            ctx=admin_ctx, data=SchoolTaskCreate(member_id=child["id"], title="Project")
        )

        updated = await activity_service.update_school_task(
            ctx=admin_ctx, task_id=school["id"], data=SchoolTaskUpdate(due_date="2026-11-02", score_value="-4")
        )

        assert updated["due_date"] == "2026-11-02"
        assert updated["score_value"] == 0

    async def test_delete_foreign_task_unauthorized(self, admin_ctx, child, other_family_ctx):
        school = await activity_service.create_school_task(
            ctx=admin_ctx, data=SchoolTaskCreate(member_id=child["id"], title="Essay")
        )

        with pytest.raises(UnauthorizedError):
            await activity_service.delete_school_task(ctx=other_family_ctx, task_id=school["id"])

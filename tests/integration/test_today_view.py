"""Integration tests for the today view."""

from datetime import timedelta

import pytest

from src.domain.create_models import SchoolTaskCreate, SportActivityCreate
from src.services import activity_service, task_state_machine, today_service
from tests.conftest import NOW


TODAY = NOW.date()  # Monday, weekday 1


@pytest.mark.integration
class TestTodayView:
    """get_today_activities."""

    async def test_open_tasks_sorted_by_deadline_with_undated_last(self, admin_ctx, make_task):
        undated = await make_task(title="Tidy")
        later = await make_task(title="Laundry", deadline=TODAY + timedelta(days=3))
        sooner = await make_task(title="Dishes", deadline=TODAY)
        await make_task(title="Overdue", deadline=TODAY - timedelta(days=1))
        await make_task(title="Weekend", scheduled_days=[0, 6])

        view = await today_service.get_today_activities(ctx=admin_ctx, today=TODAY)

        assert [t.id for t in view.open_tasks] == [sooner["id"], later["id"], undated["id"]]

    async def test_taken_tasks_include_assignee(self, admin_ctx, child, make_task):
        task = await make_task()
        await task_state_machine.take_task(ctx=admin_ctx, task_id=task["id"], assignee_id=child["id"], now=NOW)

        view = await today_service.get_today_activities(ctx=admin_ctx, today=TODAY)

        assert view.open_tasks == []
        assert len(view.taken_tasks) == 1
        assert view.taken_tasks[0].task.id == task["id"]
        assert view.taken_tasks[0].assignment.member_id == child["id"]
        assert view.taken_tasks[0].member_name == "Alice"

    async def test_sport_extras_first_then_scheduled(self, admin_ctx, child):
        weekly = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=child["id"], title="Football", type="weekly", scheduled_days=[1, 3]),
        )
        await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=child["id"], title="Swim", type="weekly", scheduled_days=[4]),
        )
        extra = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=child["id"], title="Bike", type="extra"),
        )
        done = await activity_service.create_sport_activity(
            ctx=admin_ctx,
            data=SportActivityCreate(member_id=child["id"], title="Run", type="extra"),
        )
        await activity_service.complete_sport_activity(ctx=admin_ctx, activity_id=done["id"], now=NOW)

        view = await today_service.get_today_activities(ctx=admin_ctx, today=TODAY)

        assert [a.id for a in view.sport_activities] == [extra["id"], weekly["id"]]

    async def test_school_tasks_by_due_date(self, admin_ctx, child):
        later = await activity_service.create_school_task(
            ctx=admin_ctx,
            data=SchoolTaskCreate(member_id=child["id"], title="Project", due_date=TODAY + timedelta(days=5)),
        )
        sooner = await activity_service.create_school_task(
            ctx=admin_ctx,
            data=SchoolTaskCreate(member_id=child["id"], title="Homework", due_date=TODAY),
        )
        await activity_service.create_school_task(
            ctx=admin_ctx,
            data=SchoolTaskCreate(member_id=child["id"], title="Missed", due_date=TODAY - timedelta(days=1)),
        )
        await activity_service.create_school_task(
            ctx=admin_ctx,
            data=SchoolTaskCreate(member_id=child["id"], title="Someday"),
        )

        view = await today_service.get_today_activities(ctx=admin_ctx, today=TODAY)

        assert [s.id for s in view.school_tasks] == [sooner["id"], later["id"]]

    async def test_other_families_are_invisible(self, admin_ctx, make_task, other_family_ctx):
        await make_task()

        view = await today_service.get_today_activities(ctx=other_family_ctx, today=TODAY)

        assert view.open_tasks == []
        assert view.today == TODAY

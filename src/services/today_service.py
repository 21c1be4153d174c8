"""Today view: which tasks and activities a family can act on today.

The eligibility predicates here are the single definition of "in scope
today" used by every caller.
"""

import logging
from datetime import date

from src.core import db_client
from src.core.logging import span
from src.core.weekdays import is_scheduled_on, local_today, weekday_index
from src.domain.activity import SchoolTask, SportActivity, SportType
from src.domain.context import CallerContext
from src.domain.task import Task, TaskAssignment, TaskStatus
from src.models.service_models import TakenTask, TodayView
from src.services import activity_service, task_service
from src.services.analytics_service import list_family_members


logger = logging.getLogger(__name__)

_NO_DEADLINE = date.max


def is_task_eligible(task: Task, today: date) -> bool:
    """Open, not past its deadline, and scheduled for today's weekday."""
    if task.status != TaskStatus.OPEN:
        return False
    if task.deadline is not None and task.deadline < today:
        return False
    return is_scheduled_on(task.scheduled_days, today)


def is_sport_eligible(activity: SportActivity, today: date) -> bool:
    """Incomplete, and either extra or scheduled for today's weekday."""
    if activity.is_completed:
        return False
    if activity.type == SportType.EXTRA:
        return True
    return bool(activity.scheduled_days) and weekday_index(today) in activity.scheduled_days


def is_school_eligible(task: SchoolTask, today: date) -> bool:
    """Incomplete, due today or later, and scheduled for today's weekday."""
    if task.is_completed:
        return False
    if task.due_date is None or task.due_date < today:
        return False
    return is_scheduled_on(task.scheduled_days, today)


def _sport_sort_key(activity: SportActivity) -> tuple[int, int]:
    first_day = activity.scheduled_days[0] if activity.scheduled_days else 7
    return (0 if activity.type == SportType.EXTRA else 1, first_day)


async def get_today_activities(*, ctx: CallerContext, today: date | None = None) -> TodayView:
    """Assemble the family's actionable items for today.

    Args:
        ctx: Resolved caller context
        today: Reference date (defaults to the local date)

    Returns:
        TodayView with open tasks by deadline, taken tasks, sport activities
        (extras first) and school tasks by due date
    """
    with span("today_service.get_today_activities"):
        today = today or local_today()
        members = await list_family_members(family_id=ctx.family_id)
        names = {m["id"]: m["name"] for m in members}

        tasks = await task_service.list_tasks(ctx=ctx)
        open_tasks = sorted(
            (t for t in tasks if is_task_eligible(t, today)),
            key=lambda t: (t.deadline or _NO_DEADLINE, int(t.id)),
        )

        taken_tasks: list[TakenTask] = []
        for task in sorted(
            (t for t in tasks if t.status == TaskStatus.TAKEN),
            key=lambda t: (t.deadline or _NO_DEADLINE, int(t.id)),
        ):
            assignment = await db_client.get_first_record(
                collection="task_assignments",
                filter_query=f'task_id = "{db_client.sanitize_param(task.id)}" && completed_at = null',
            )
            if assignment is None:
                logger.warning("Taken task has no live assignment", extra={"task_id": task.id})
                continue
            taken_tasks.append(
                TakenTask(
                    task=task,
                    assignment=TaskAssignment(**assignment),
                    member_name=names.get(assignment["member_id"], ""),
                )
            )

        sport = sorted(
            (a for a in await activity_service.list_sport_activities(ctx=ctx) if is_sport_eligible(a, today)),
            key=_sport_sort_key,
        )
        school = sorted(
            (s for s in await activity_service.list_school_tasks(ctx=ctx) if is_school_eligible(s, today)),
            key=lambda s: (s.due_date or _NO_DEADLINE, int(s.id)),
        )

        return TodayView(
            today=today,
            open_tasks=open_tasks,
            taken_tasks=taken_tasks,
            sport_activities=sport,
            school_tasks=school,
        )

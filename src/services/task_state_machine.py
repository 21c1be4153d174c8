"""House task lifecycle: take, release and complete.

States: open -> taken -> completed, and taken -> open on release. A recurring
task completes back to open with its deadline moved to tomorrow. Each
transition re-reads the task and runs inside one store transaction.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from src.core import db_client
from src.core.db_client import UniqueConstraintError
from src.core.errors import ConflictError, ErrorCode, UnavailableError
from src.core.logging import span
from src.core.weekdays import local_today, utc_now
from src.domain.context import CallerContext
from src.domain.ledger import ScoreSourceType
from src.domain.task import TaskStatus
from src.services import auth_service, ledger_service, streak_service
from src.services.analytics_service import invalidate_leaderboard_cache


logger = logging.getLogger(__name__)


async def _get_live_assignment(*, task_id: str) -> dict[str, Any] | None:
    """The assignment of a task that has not been completed yet, if any."""
    return await db_client.get_first_record(
        collection="task_assignments",
        filter_query=f'task_id = "{db_client.sanitize_param(task_id)}" && completed_at = null',
    )


async def take_task(
    *,
    ctx: CallerContext,
    task_id: str,
    assignee_id: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Assign an open task to a family member.

    Any member may take a task for any member of the family.

    Args:
        ctx: Resolved caller context
        task_id: Task to take
        assignee_id: Member who will do the task
        now: Timestamp override

    Returns:
        Created assignment record

    Raises:
        UnavailableError: If the assignee is not in the family, or the task is
            missing, foreign or not open
        ConflictError: If another live assignment already exists for the task
    """
    with span("task_state_machine.take_task"):
        await auth_service.require_family_member(
            ctx=ctx,
            member_id=assignee_id,
            error=UnavailableError("Invalid assignee", code=ErrorCode.ERR_INVALID_ASSIGNEE),
        )

        not_available = UnavailableError("Task not available")
        try:
            async with db_client.transaction():
                task = await auth_service.get_family_record(
                    ctx=ctx,
                    collection="tasks",
                    record_id=task_id,
                    foreign_error=not_available,
                )
                if task is None or task["status"] != TaskStatus.OPEN:
                    raise not_available

                assignment = await db_client.create_record(
                    collection="task_assignments",
                    data={
                        "task_id": int(task_id),
                        "member_id": int(assignee_id),
                        "taken_at": now or utc_now(),
                    },
                )
                await db_client.update_record(
                    collection="tasks",
                    record_id=task_id,
                    data={"status": TaskStatus.TAKEN},
                )
        except UniqueConstraintError as e:
            logger.warning("Lost race taking task", extra={"task_id": task_id, "assignee_id": assignee_id})
            raise ConflictError("Task already taken") from e

        logger.info("Task taken", extra={"task_id": task_id, "assignee_id": assignee_id, "by": ctx.member_id})
        return assignment


async def release_task(*, ctx: CallerContext, task_id: str) -> None:
    """Put a taken task back to open, discarding its assignment.

    Raises:
        UnavailableError: If the task is missing, foreign or not taken
    """
    with span("task_state_machine.release_task"):
        not_available = UnavailableError("Task not available")
        async with db_client.transaction():
            task = await auth_service.get_family_record(
                ctx=ctx,
                collection="tasks",
                record_id=task_id,
                foreign_error=not_available,
            )
            if task is None or task["status"] != TaskStatus.TAKEN:
                raise not_available

            await db_client.delete_records(
                collection="task_assignments",
                filter_query=f'task_id = "{db_client.sanitize_param(task_id)}" && completed_at = null',
            )
            await db_client.update_record(
                collection="tasks",
                record_id=task_id,
                data={"status": TaskStatus.OPEN},
            )

        logger.info("Task released", extra={"task_id": task_id, "by": ctx.member_id})


async def complete_task(*, ctx: CallerContext, task_id: str, now: datetime | None = None) -> int:
    """Complete a taken task and award its points to the assignee.

    In order: stamp the assignment, then either reopen a recurring task for
    tomorrow (dropping the assignment) or mark it completed, then append the
    house ledger entry, then update the assignee's streak.

    Args:
        ctx: Resolved caller context
        task_id: Task to complete
        now: Timestamp override

    Returns:
        Points awarded

    Raises:
        UnavailableError: If the task is missing, foreign, expired, has no
            assignment, or was already completed
    """
    with span("task_state_machine.complete_task"):
        now = now or utc_now()
        today = local_today(now)
        not_found = UnavailableError("Task not found or expired")
        already_completed = UnavailableError("Task already completed", code=ErrorCode.ERR_ALREADY_COMPLETED)

        try:
            async with db_client.transaction():
                task = await auth_service.get_family_record(
                    ctx=ctx,
                    collection="tasks",
                    record_id=task_id,
                    foreign_error=not_found,
                )
                if task is None or task["status"] == TaskStatus.EXPIRED:
                    raise not_found
                if task["status"] == TaskStatus.COMPLETED:
                    raise already_completed

                assignment = await _get_live_assignment(task_id=task_id)
                if assignment is None:
                    # Only a completed assignment left means a double submission
                    stale = await db_client.get_first_record(
                        collection="task_assignments",
                        filter_query=f'task_id = "{db_client.sanitize_param(task_id)}"',
                    )
                    raise already_completed if stale else not_found

                assignee_id = assignment["member_id"]
                score_value = task["score_value"]

                await db_client.update_record(
                    collection="task_assignments",
                    record_id=assignment["id"],
                    data={"completed_at": now},
                )

                if task["recurring_daily"]:
                    await db_client.update_record(
                        collection="tasks",
                        record_id=task_id,
                        data={"status": TaskStatus.OPEN, "deadline": today + timedelta(days=1)},
                    )
                    await db_client.delete_records(
                        collection="task_assignments",
                        filter_query=f'task_id = "{db_client.sanitize_param(task_id)}"',
                    )
                    logger.info("Recurring task reopened for tomorrow", extra={"task_id": task_id})
                else:
                    await db_client.update_record(
                        collection="tasks",
                        record_id=task_id,
                        data={"status": TaskStatus.COMPLETED},
                    )

                await ledger_service.append_entry(
                    member_id=assignee_id,
                    source_type=ScoreSourceType.HOUSE,
                    source_id=task_id,
                    score_delta=score_value,
                    now=now,
                )
                await streak_service.update_streak(member_id=assignee_id, now=now)
        finally:
            await invalidate_leaderboard_cache(family_id=ctx.family_id)

        logger.info(
            "Task completed",
            extra={"task_id": task_id, "assignee_id": assignee_id, "points": score_value, "by": ctx.member_id},
        )
        return score_value

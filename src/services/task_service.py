"""House task service for admin CRUD and family task queries."""

import logging
from datetime import date
from typing import Any

from src.core import db_client
from src.core.errors import ErrorCode, InvalidInputError, UnavailableError
from src.core.logging import span
from src.core.weekdays import local_today
from src.domain.context import CallerContext
from src.domain.create_models import TaskCreate
from src.domain.task import Task, TaskStatus
from src.domain.update_models import TaskUpdate
from src.services import auth_service


logger = logging.getLogger(__name__)


async def _require_default_assignee(*, ctx: CallerContext, member_id: str | None) -> int | None:
    if member_id is None:
        return None
    await auth_service.require_family_member(
        ctx=ctx,
        member_id=member_id,
        error=UnavailableError("Invalid assignee", code=ErrorCode.ERR_INVALID_ASSIGNEE),
    )
    return int(member_id)


async def create_task(*, ctx: CallerContext, data: TaskCreate, today: date | None = None) -> dict[str, Any]:
    """Create a house task (admin-only).

    A recurring task without a deadline is due today. New tasks always start open.

    Args:
        ctx: Resolved caller context
        data: Validated and clamped task fields
        today: Reference date (defaults to the local date)

    Returns:
        Created task record

    Raises:
        UnauthorizedError: If the caller is not an admin
        UnavailableError: If the default assignee is not in the family
    """
    with span("task_service.create_task"):
        auth_service.require_admin(ctx=ctx, operation="create_task")

        deadline = data.deadline
        if data.recurring_daily and deadline is None:
            deadline = today or local_today()

        record = await db_client.create_record(
            collection="tasks",
            data={
                "family_id": int(ctx.family_id),
                "title": data.title,
                "description": data.description,
                "score_value": data.score_value,
                "status": TaskStatus.OPEN,
                "deadline": deadline,
                "recurring_daily": data.recurring_daily,
                "scheduled_days": data.scheduled_days,
                "default_assignee_id": await _require_default_assignee(ctx=ctx, member_id=data.default_assignee_id),
                "created_by": int(ctx.member_id),
            },
        )
        logger.info("Created task", extra={"task_id": record["id"], "family_id": ctx.family_id})
        return record


async def update_task(
    *,
    ctx: CallerContext,
    task_id: str,
    data: TaskUpdate,
    today: date | None = None,
) -> dict[str, Any]:
    """Edit a house task (admin-only), with the same clamping as creation.

    Status is otherwise owned by the lifecycle operations, so a direct edit
    may only expire a task (dropping any live assignment) or reopen an
    expired one.

    Raises:
        UnauthorizedError: If the caller is not an admin
        UnavailableError: If the task does not exist
        InvalidInputError: If the status edit is not allowed
    """
    with span("task_service.update_task"):
        auth_service.require_admin(ctx=ctx, operation="update_task")

        async with db_client.transaction():
            current = await auth_service.get_family_record(ctx=ctx, collection="tasks", record_id=task_id)
            if current is None:
                raise UnavailableError("Task not found")

            changes = data.model_dump(exclude_unset=True)
            if "title" in changes and changes["title"] is None:
                del changes["title"]
            if "recurring_daily" in changes and changes["recurring_daily"] is None:
                del changes["recurring_daily"]
            if changes.get("status") in (None, current["status"]):
                changes.pop("status", None)
            else:
                await _apply_status_edit(task_id=task_id, current=current["status"], target=changes["status"])
            if "default_assignee_id" in changes:
                changes["default_assignee_id"] = await _require_default_assignee(
                    ctx=ctx,
                    member_id=changes["default_assignee_id"],
                )

            recurring = changes.get("recurring_daily", current["recurring_daily"])
            deadline = changes.get("deadline", current["deadline"])
            if recurring and not deadline:
                changes["deadline"] = today or local_today()

            if not changes:
                return current

            record = await db_client.update_record(collection="tasks", record_id=task_id, data=changes)

        logger.info("Updated task", extra={"task_id": task_id, "fields": sorted(changes)})
        return record


async def _apply_status_edit(*, task_id: str, current: TaskStatus, target: TaskStatus) -> None:
    """Check a direct status edit and drop the live assignment when a task expires."""
    live_filter = f'task_id = "{db_client.sanitize_param(task_id)}" && completed_at = null'

    if target == TaskStatus.EXPIRED:
        removed = await db_client.delete_records(collection="task_assignments", filter_query=live_filter)
        if removed:
            logger.info("Dropped live assignment of expired task", extra={"task_id": task_id})
        return

    if target == TaskStatus.OPEN and current == TaskStatus.EXPIRED:
        if await db_client.get_first_record(collection="task_assignments", filter_query=live_filter) is None:
            return

    logger.warning(
        "Rejected direct status edit",
        extra={"task_id": task_id, "from_status": str(current), "to_status": str(target)},
    )
    raise InvalidInputError(f"Cannot change task status from {current} to {target}")


async def delete_task(*, ctx: CallerContext, task_id: str) -> None:
    """Delete a house task (admin-only); its assignments go with it."""
    with span("task_service.delete_task"):
        auth_service.require_admin(ctx=ctx, operation="delete_task")
        current = await auth_service.get_family_record(ctx=ctx, collection="tasks", record_id=task_id)
        if current is None:
            raise UnavailableError("Task not found")

        await db_client.delete_record(collection="tasks", record_id=task_id)
        logger.info("Deleted task", extra={"task_id": task_id})


async def get_task(*, ctx: CallerContext, task_id: str) -> Task:
    """Load one task of the caller's family."""
    record = await auth_service.get_family_record(ctx=ctx, collection="tasks", record_id=task_id)
    if record is None:
        raise UnavailableError("Task not found")
    return Task(**record)


async def list_tasks(*, ctx: CallerContext, status: TaskStatus | None = None) -> list[Task]:
    """Tasks of the caller's family, optionally filtered by status."""
    filter_query = f'family_id = "{db_client.sanitize_param(ctx.family_id)}"'
    if status is not None:
        filter_query += f' && status = "{status}"'
    records = await db_client.list_all_records(collection="tasks", filter_query=filter_query, sort="deadline,id")
    return [Task(**record) for record in records]

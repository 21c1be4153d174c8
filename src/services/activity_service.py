"""Sport activity and school task service: CRUD and completion.

Both kinds are pre-assigned to a member and go from incomplete to completed
in one step. They belong to a family through their member.
"""

import logging
from datetime import datetime
from typing import Any, Literal

from src.core import db_client
from src.core.db_client import RecordNotFoundError
from src.core.errors import ErrorCode, InvalidInputError, UnauthorizedError, UnavailableError
from src.core.logging import log_with_member_context, span
from src.core.weekdays import utc_now
from src.domain.activity import SchoolTask, SportActivity, SportType
from src.domain.context import CallerContext
from src.domain.create_models import SchoolTaskCreate, SportActivityCreate
from src.domain.ledger import ScoreSourceType
from src.domain.update_models import SchoolTaskUpdate, SportActivityUpdate
from src.services import auth_service, ledger_service, streak_service
from src.services.analytics_service import invalidate_leaderboard_cache, list_family_members, member_filter


logger = logging.getLogger(__name__)

ActivityCollection = Literal["sport_activities", "school_tasks"]


async def get_family_activity(
    *,
    ctx: CallerContext,
    collection: ActivityCollection,
    record_id: str,
) -> dict[str, Any] | None:
    """Load a sport activity or school task of the caller's family.

    Returns:
        The record, or None when it does not exist

    Raises:
        UnauthorizedError: If the owning member is in another family
    """
    try:
        record = await db_client.get_record(collection=collection, record_id=str(record_id))
    except RecordNotFoundError:
        return None

    owner = await auth_service.get_family_member(ctx=ctx, member_id=record["member_id"])
    if owner is None:
        log_with_member_context(
            logger,
            "warning",
            "Cross-family activity access denied",
            member_id=ctx.member_id,
            family_id=ctx.family_id,
            collection=collection,
            record_id=record_id,
        )
        raise UnauthorizedError
    return record


async def _list_family_activities(
    *,
    ctx: CallerContext,
    collection: ActivityCollection,
    sort: str,
) -> list[dict[str, Any]]:
    members = await list_family_members(family_id=ctx.family_id)
    if not members:
        return []
    return await db_client.list_all_records(
        collection=collection,
        filter_query=member_filter([m["id"] for m in members]),
        sort=sort,
    )


async def _complete(
    *,
    ctx: CallerContext,
    collection: ActivityCollection,
    record_id: str,
    source_type: ScoreSourceType,
    not_found_message: str,
    member_id: str | None = None,
    now: datetime | None = None,
) -> int:
    """Shared complete -> ledger entry -> streak pipeline."""
    now = now or utc_now()
    not_found = UnavailableError(not_found_message)

    try:
        async with db_client.transaction():
            record = await get_family_activity(ctx=ctx, collection=collection, record_id=record_id)
            if record is None or record["completed_at"]:
                raise not_found

            update: dict[str, Any] = {"completed_at": now}
            credited_id = record["member_id"]
            if member_id is not None and str(member_id) != credited_id:
                if record.get("type") != SportType.EXTRA:
                    raise InvalidInputError("Only extra activities can be credited to another member")
                await auth_service.require_family_member(
                    ctx=ctx,
                    member_id=member_id,
                    error=UnavailableError("Invalid assignee", code=ErrorCode.ERR_INVALID_ASSIGNEE),
                )
                credited_id = str(member_id)
                update["member_id"] = int(credited_id)

            await db_client.update_record(collection=collection, record_id=record_id, data=update)
            await ledger_service.append_entry(
                member_id=credited_id,
                source_type=source_type,
                source_id=record_id,
                score_delta=record["score_value"],
                now=now,
            )
            await streak_service.update_streak(member_id=credited_id, now=now)
    finally:
        await invalidate_leaderboard_cache(family_id=ctx.family_id)

    logger.info(
        "Activity completed",
        extra={
            "collection": collection,
            "record_id": record_id,
            "member_id": credited_id,
            "points": record["score_value"],
            "by": ctx.member_id,
        },
    )
    return record["score_value"]


async def complete_sport_activity(
    *,
    ctx: CallerContext,
    activity_id: str,
    member_id: str | None = None,
    now: datetime | None = None,
) -> int:
    """Complete a sport activity and award its points.

    An extra activity may be credited to another family member at completion
    time; weekly activities always credit their own member.

    Args:
        ctx: Resolved caller context
        activity_id: Activity to complete
        member_id: Optional member to credit (extra activities only)
        now: Timestamp override

    Returns:
        Points awarded

    Raises:
        UnavailableError: If the activity is missing or already completed
        UnauthorizedError: If the activity belongs to another family
    """
    with span("activity_service.complete_sport_activity"):
        return await _complete(
            ctx=ctx,
            collection="sport_activities",
            record_id=activity_id,
            source_type=ScoreSourceType.SPORT,
            not_found_message="Activity not found or already completed",
            member_id=member_id,
            now=now,
        )


async def complete_school_task(*, ctx: CallerContext, task_id: str, now: datetime | None = None) -> int:
    """Complete a school task and award its points.

    Raises:
        UnavailableError: If the task is missing or already completed
        UnauthorizedError: If the task belongs to another family
    """
    with span("activity_service.complete_school_task"):
        return await _complete(
            ctx=ctx,
            collection="school_tasks",
            record_id=task_id,
            source_type=ScoreSourceType.SCHOOL,
            not_found_message="Task not found or already completed",
            now=now,
        )


async def create_sport_activity(*, ctx: CallerContext, data: SportActivityCreate) -> dict[str, Any]:
    """Create a sport activity.

    Admins may create any activity for any family member; other members may
    only create extra activities for themselves.
    """
    with span("activity_service.create_sport_activity"):
        self_authored_extra = data.type == SportType.EXTRA and data.member_id == ctx.member_id
        if not (ctx.is_admin or self_authored_extra):
            auth_service.require_admin(ctx=ctx, operation="create_sport_activity")

        await auth_service.require_family_member(
            ctx=ctx,
            member_id=data.member_id,
            error=UnavailableError("Member not found"),
        )

        record = await db_client.create_record(
            collection="sport_activities",
            data={
                "member_id": int(data.member_id),
                "title": data.title,
                "type": data.type,
                "scheduled_days": data.scheduled_days,
                "score_value": data.score_value,
            },
        )
        logger.info("Created sport activity", extra={"activity_id": record["id"], "member_id": data.member_id})
        return record


async def update_sport_activity(
    *,
    ctx: CallerContext,
    activity_id: str,
    data: SportActivityUpdate,
) -> dict[str, Any]:
    """Edit a sport activity (admin-only). Extra activities never keep a weekday set."""
    with span("activity_service.update_sport_activity"):
        auth_service.require_admin(ctx=ctx, operation="update_sport_activity")
        current = await get_family_activity(ctx=ctx, collection="sport_activities", record_id=activity_id)
        if current is None:
            raise UnavailableError("Activity not found")

        changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}
        if "member_id" in changes:
            await auth_service.require_family_member(
                ctx=ctx,
                member_id=changes["member_id"],
                error=UnavailableError("Member not found"),
            )
            changes["member_id"] = int(changes["member_id"])
        if changes.get("type", current["type"]) == SportType.EXTRA:
            changes["scheduled_days"] = []
        if not changes:
            return current

        record = await db_client.update_record(collection="sport_activities", record_id=activity_id, data=changes)
        logger.info("Updated sport activity", extra={"activity_id": activity_id, "fields": sorted(changes)})
        return record


async def delete_sport_activity(*, ctx: CallerContext, activity_id: str) -> None:
    """Delete a sport activity (admin-only)."""
    with span("activity_service.delete_sport_activity"):
        auth_service.require_admin(ctx=ctx, operation="delete_sport_activity")
        if await get_family_activity(ctx=ctx, collection="sport_activities", record_id=activity_id) is None:
            raise UnavailableError("Activity not found")
        await db_client.delete_record(collection="sport_activities", record_id=activity_id)
        logger.info("Deleted sport activity", extra={"activity_id": activity_id})


async def list_sport_activities(*, ctx: CallerContext) -> list[SportActivity]:
    """Sport activities of every member of the caller's family."""
    records = await _list_family_activities(ctx=ctx, collection="sport_activities", sort="id")
    return [SportActivity(**record) for record in records]


async def create_school_task(*, ctx: CallerContext, data: SchoolTaskCreate) -> dict[str, Any]:
    """Create a school task (admin-only); the member defaults to the caller."""
    with span("activity_service.create_school_task"):
        auth_service.require_admin(ctx=ctx, operation="create_school_task")
        member_id = data.member_id or ctx.member_id
        await auth_service.require_family_member(
            ctx=ctx,
            member_id=member_id,
            error=UnavailableError("Member not found"),
        )

        record = await db_client.create_record(
            collection="school_tasks",
            data={
                "member_id": int(member_id),
                "title": data.title,
                "type": data.type,
                "due_date": data.due_date,
                "scheduled_days": data.scheduled_days,
                "score_value": data.score_value,
            },
        )
        logger.info("Created school task", extra={"school_task_id": record["id"], "member_id": member_id})
        return record


async def update_school_task(*, ctx: CallerContext, task_id: str, data: SchoolTaskUpdate) -> dict[str, Any]:
    """Edit a school task (admin-only)."""
    with span("activity_service.update_school_task"):
        auth_service.require_admin(ctx=ctx, operation="update_school_task")
        current = await get_family_activity(ctx=ctx, collection="school_tasks", record_id=task_id)
        if current is None:
            raise UnavailableError("Task not found")

        changes = data.model_dump(exclude_unset=True)
        for required in ("member_id", "title", "type", "score_value"):
            if required in changes and changes[required] is None:
                del changes[required]
        if "member_id" in changes:
            await auth_service.require_family_member(
                ctx=ctx,
                member_id=changes["member_id"],
                error=UnavailableError("Member not found"),
            )
            changes["member_id"] = int(changes["member_id"])
        if not changes:
            return current

        record = await db_client.update_record(collection="school_tasks", record_id=task_id, data=changes)
        logger.info("Updated school task", extra={"school_task_id": task_id, "fields": sorted(changes)})
        return record


async def delete_school_task(*, ctx: CallerContext, task_id: str) -> None:
    """Delete a school task (admin-only)."""
    with span("activity_service.delete_school_task"):
        auth_service.require_admin(ctx=ctx, operation="delete_school_task")
        if await get_family_activity(ctx=ctx, collection="school_tasks", record_id=task_id) is None:
            raise UnavailableError("Task not found")
        await db_client.delete_record(collection="school_tasks", record_id=task_id)
        logger.info("Deleted school task", extra={"school_task_id": task_id})


async def list_school_tasks(*, ctx: CallerContext) -> list[SchoolTask]:
    """School tasks of every member of the caller's family, by due date."""
    records = await _list_family_activities(ctx=ctx, collection="school_tasks", sort="due_date,id")
    return [SchoolTask(**record) for record in records]

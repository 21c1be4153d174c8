"""Reset (undo) pipeline: reverses one completion-sourced ledger entry.

Streaks are deliberately left as they are; only the ledger row and the
source's completion are undone.
"""

import logging

from src.core import db_client
from src.core.errors import MismatchError, NonReversibleError, UnauthorizedError, UnavailableError
from src.core.logging import log_with_member_context, span
from src.domain.context import CallerContext
from src.domain.ledger import REVERSIBLE_SOURCES, ScoreSourceType
from src.domain.task import TaskStatus
from src.services import activity_service, auth_service, family_service, ledger_service
from src.services.analytics_service import invalidate_leaderboard_cache


logger = logging.getLogger(__name__)


async def _undo_house_completion(*, ctx: CallerContext, task_id: str) -> None:
    task = await auth_service.get_family_record(
        ctx=ctx,
        collection="tasks",
        record_id=task_id,
        foreign_error=UnavailableError("Task not found"),
    )
    if task is None:
        raise UnavailableError("Task not found")

    # A recurring completion already dropped its assignment and reopened the task
    if task["recurring_daily"]:
        logger.info("Recurring task left as is on reset", extra={"task_id": task_id})
        return

    assignment = await db_client.get_first_record(
        collection="task_assignments",
        filter_query=f'task_id = "{db_client.sanitize_param(task_id)}" && completed_at != null',
    )
    if assignment is None:
        raise UnavailableError("Task not available")

    await db_client.update_record(
        collection="task_assignments",
        record_id=assignment["id"],
        data={"completed_at": None},
    )
    await db_client.update_record(collection="tasks", record_id=task_id, data={"status": TaskStatus.TAKEN})
    logger.info("Task reverted to taken", extra={"task_id": task_id, "assignment_id": assignment["id"]})


async def _undo_activity_completion(
    *,
    ctx: CallerContext,
    collection: activity_service.ActivityCollection,
    record_id: str,
    not_found_message: str,
) -> None:
    record = await activity_service.get_family_activity(ctx=ctx, collection=collection, record_id=record_id)
    if record is None:
        raise UnavailableError(not_found_message)

    await db_client.update_record(collection=collection, record_id=record_id, data={"completed_at": None})
    logger.info("Activity reverted to incomplete", extra={"collection": collection, "record_id": record_id})


async def reset_activity(
    *,
    ctx: CallerContext,
    entry_id: str,
    source_type: str,
    source_id: str | None,
) -> None:
    """Undo one ledger entry and, where applicable, its source completion.

    Checks run in order: the entry exists, it belongs to the caller's family,
    the caller may reset, the stored kind is reversible, and the supplied
    kind/id match the stored ones.

    Args:
        ctx: Resolved caller context
        entry_id: Ledger entry to undo
        source_type: Kind the caller believes the entry has
        source_id: Source entity the caller believes the entry references

    Raises:
        UnavailableError: If the entry or its source no longer exists
        UnauthorizedError: If the entry is foreign, or resets are disabled for regular members
        NonReversibleError: For bonus, fine and streak bonus entries
        MismatchError: If the supplied kind/id differ from the stored entry
    """
    with span("reset_service.reset_activity"):
        try:
            async with db_client.transaction():
                entry = await ledger_service.get_entry(entry_id=entry_id)
                if entry is None:
                    raise UnavailableError("Score not found")

                await auth_service.require_family_member(ctx=ctx, member_id=entry["member_id"])

                if not ctx.is_admin:
                    family = await family_service.get_family(ctx=ctx)
                    if not family.show_reset_button:
                        log_with_member_context(
                            logger,
                            "warning",
                            "Reset disabled for regular members",
                            member_id=ctx.member_id,
                            family_id=ctx.family_id,
                        )
                        raise UnauthorizedError

                stored_type = ScoreSourceType(entry["source_type"])
                if stored_type not in REVERSIBLE_SOURCES:
                    raise NonReversibleError

                stored_source_id = entry.get("source_id")
                supplied_source_id = str(source_id) if source_id not in (None, "") else None
                if source_type != stored_type or supplied_source_id != stored_source_id:
                    log_with_member_context(
                        logger,
                        "warning",
                        "Reset request does not match ledger entry",
                        member_id=ctx.member_id,
                        family_id=ctx.family_id,
                        entry_id=entry_id,
                    )
                    raise MismatchError

                if stored_source_id is not None:
                    if stored_type == ScoreSourceType.HOUSE:
                        await _undo_house_completion(ctx=ctx, task_id=stored_source_id)
                    elif stored_type == ScoreSourceType.SPORT:
                        await _undo_activity_completion(
                            ctx=ctx,
                            collection="sport_activities",
                            record_id=stored_source_id,
                            not_found_message="Activity not found",
                        )
                    else:
                        await _undo_activity_completion(
                            ctx=ctx,
                            collection="school_tasks",
                            record_id=stored_source_id,
                            not_found_message="Task not found",
                        )

                await ledger_service.delete_entry(entry_id=entry_id)
        finally:
            await invalidate_leaderboard_cache(family_id=ctx.family_id)

        logger.info(
            "Ledger entry reset",
            extra={"entry_id": entry_id, "source_type": str(stored_type), "source_id": stored_source_id},
        )

"""Action layer: one entry point per lifecycle transition.

Every action takes the resolved caller context (None when the identity has no
member yet) and returns an ActionResult. Failures never propagate; they are
classified into a stable code and a user-facing message.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel

from src.core.errors import ErrorCode, NoMemberError, classify_error_with_response
from src.core.logging import log_with_member_context
from src.domain.context import CallerContext
from src.domain.create_models import (
    BonusFineCreate,
    FamilyCreate,
    MemberCreate,
    SchoolTaskCreate,
    SportActivityCreate,
    TaskCreate,
)
from src.domain.update_models import (
    FamilySettingsUpdate,
    MemberUpdate,
    SchoolTaskUpdate,
    SportActivityUpdate,
    TaskUpdate,
)
from src.models.service_models import ActionResult
from src.services import (
    activity_service,
    family_service,
    ledger_service,
    reset_service,
    task_service,
    task_state_machine,
)


logger = logging.getLogger(__name__)


async def _run(
    operation: str,
    ctx: CallerContext | None,
    action: Callable[[CallerContext], Awaitable[Any]],
    *,
    awards_points: bool = False,
) -> ActionResult:
    if ctx is None:
        response = classify_error_with_response(NoMemberError())
        return ActionResult(success=False, error=response.message, code=response.code)

    try:
        outcome = await action(ctx)
    except Exception as e:
        response = classify_error_with_response(e)
        level = "error" if response.code in (ErrorCode.ERR_STORAGE, ErrorCode.ERR_UNKNOWN) else "info"
        log_with_member_context(
            logger,
            level,
            "Action failed",
            member_id=ctx.member_id,
            family_id=ctx.family_id,
            operation=operation,
            code=response.code,
            error=str(e),
        )
        return ActionResult(success=False, error=response.message, code=response.code)

    if awards_points:
        return ActionResult(success=True, points=outcome)
    if isinstance(outcome, BaseModel):
        return ActionResult(success=True, data=outcome.model_dump(mode="json"))
    if isinstance(outcome, dict):
        return ActionResult(success=True, data=outcome)
    return ActionResult(success=True)


async def create_family(*, user_id: str, family_name: str, member_name: str) -> ActionResult:
    """Onboard a caller identity with a new family."""
    try:
        member = await family_service.create_family(
            user_id=user_id,
            data=FamilyCreate(family_name=family_name, member_name=member_name),
        )
    except Exception as e:
        response = classify_error_with_response(e)
        logger.info("Onboarding failed", extra={"user_id": user_id, "code": response.code})
        return ActionResult(success=False, error=response.message, code=response.code)
    return ActionResult(success=True, data=member)


async def update_family_settings(ctx: CallerContext | None, *, show_reset_button: bool) -> ActionResult:
    return await _run(
        "update_family_settings",
        ctx,
        lambda c: family_service.update_family_settings(
            ctx=c,
            data=FamilySettingsUpdate(show_reset_button=show_reset_button),
        ),
    )


async def create_member(ctx: CallerContext | None, *, fields: dict[str, Any]) -> ActionResult:
    return await _run(
        "create_member",
        ctx,
        lambda c: family_service.create_member(ctx=c, data=MemberCreate(**fields)),
    )


async def update_member(ctx: CallerContext | None, *, member_id: str, fields: dict[str, Any]) -> ActionResult:
    return await _run(
        "update_member",
        ctx,
        lambda c: family_service.update_member(ctx=c, member_id=member_id, data=MemberUpdate(**fields)),
    )


async def create_task(ctx: CallerContext | None, *, fields: dict[str, Any]) -> ActionResult:
    return await _run("create_task", ctx, lambda c: task_service.create_task(ctx=c, data=TaskCreate(**fields)))


async def update_task(ctx: CallerContext | None, *, task_id: str, fields: dict[str, Any]) -> ActionResult:
    return await _run(
        "update_task",
        ctx,
        lambda c: task_service.update_task(ctx=c, task_id=task_id, data=TaskUpdate(**fields)),
    )


async def delete_task(ctx: CallerContext | None, *, task_id: str) -> ActionResult:
    return await _run("delete_task", ctx, lambda c: task_service.delete_task(ctx=c, task_id=task_id))


async def take_task(ctx: CallerContext | None, *, task_id: str, assignee_id: str) -> ActionResult:
    return await _run(
        "take_task",
        ctx,
        lambda c: task_state_machine.take_task(ctx=c, task_id=task_id, assignee_id=assignee_id),
    )


async def release_task(ctx: CallerContext | None, *, task_id: str) -> ActionResult:
    return await _run("release_task", ctx, lambda c: task_state_machine.release_task(ctx=c, task_id=task_id))


async def complete_task(ctx: CallerContext | None, *, task_id: str) -> ActionResult:
    return await _run(
        "complete_task",
        ctx,
        lambda c: task_state_machine.complete_task(ctx=c, task_id=task_id),
        awards_points=True,
    )


async def create_sport_activity(ctx: CallerContext | None, *, fields: dict[str, Any]) -> ActionResult:
    return await _run(
        "create_sport_activity",
        ctx,
        lambda c: activity_service.create_sport_activity(ctx=c, data=SportActivityCreate(**fields)),
    )


async def update_sport_activity(
    ctx: CallerContext | None,
    *,
    activity_id: str,
    fields: dict[str, Any],
) -> ActionResult:
    return await _run(
        "update_sport_activity",
        ctx,
        lambda c: activity_service.update_sport_activity(
            ctx=c,
            activity_id=activity_id,
            data=SportActivityUpdate(**fields),
        ),
    )


async def delete_sport_activity(ctx: CallerContext | None, *, activity_id: str) -> ActionResult:
    return await _run(
        "delete_sport_activity",
        ctx,
        lambda c: activity_service.delete_sport_activity(ctx=c, activity_id=activity_id),
    )


async def complete_sport_activity(
    ctx: CallerContext | None,
    *,
    activity_id: str,
    member_id: str | None = None,
) -> ActionResult:
    return await _run(
        "complete_sport_activity",
        ctx,
        lambda c: activity_service.complete_sport_activity(ctx=c, activity_id=activity_id, member_id=member_id),
        awards_points=True,
    )


async def create_school_task(ctx: CallerContext | None, *, fields: dict[str, Any]) -> ActionResult:
    return await _run(
        "create_school_task",
        ctx,
        lambda c: activity_service.create_school_task(ctx=c, data=SchoolTaskCreate(**fields)),
    )


async def update_school_task(ctx: CallerContext | None, *, task_id: str, fields: dict[str, Any]) -> ActionResult:
    return await _run(
        "update_school_task",
        ctx,
        lambda c: activity_service.update_school_task(ctx=c, task_id=task_id, data=SchoolTaskUpdate(**fields)),
    )


async def delete_school_task(ctx: CallerContext | None, *, task_id: str) -> ActionResult:
    return await _run(
        "delete_school_task",
        ctx,
        lambda c: activity_service.delete_school_task(ctx=c, task_id=task_id),
    )


async def complete_school_task(ctx: CallerContext | None, *, task_id: str) -> ActionResult:
    return await _run(
        "complete_school_task",
        ctx,
        lambda c: activity_service.complete_school_task(ctx=c, task_id=task_id),
        awards_points=True,
    )


async def reset_activity(
    ctx: CallerContext | None,
    *,
    entry_id: str,
    source_type: str,
    source_id: str | None,
) -> ActionResult:
    return await _run(
        "reset_activity",
        ctx,
        lambda c: reset_service.reset_activity(ctx=c, entry_id=entry_id, source_type=source_type, source_id=source_id),
    )


async def add_bonus_fine(
    ctx: CallerContext | None,
    *,
    member_id: str,
    kind: str,
    points: object,
    description: str | None = None,
) -> ActionResult:
    return await _run(
        "add_bonus_fine",
        ctx,
        lambda c: ledger_service.add_bonus_fine(
            ctx=c,
            data=BonusFineCreate(member_id=member_id, kind=kind or "bonus", points=points, description=description),
        ),
    )

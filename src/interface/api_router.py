"""JSON API exposing the engine operations and read models."""

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.core.errors import ErrorCode, UnavailableError
from src.domain.activity import SchoolTask, SportActivity
from src.domain.context import CallerContext
from src.domain.family import Family
from src.domain.member import Member
from src.domain.streak import Streak
from src.domain.task import Task
from src.interface import actions
from src.interface.session import SESSION_COOKIE, read_session_token, set_session_cookie
from src.models.service_models import (
    ActionResult,
    ActivityLogEntry,
    DailyScore,
    LeaderboardEntry,
    MonthlyWinner,
    TodayView,
)
from src.services import (
    activity_service,
    analytics_service,
    auth_service,
    family_service,
    streak_service,
    task_service,
    today_service,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

_STATUS_BY_CODE: dict[str, int] = {
    ErrorCode.ERR_NO_MEMBER: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.ERR_UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.ERR_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ERR_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.ERR_ALREADY_COMPLETED: status.HTTP_409_CONFLICT,
    ErrorCode.ERR_ALREADY_TAKEN: status.HTTP_409_CONFLICT,
    ErrorCode.ERR_ALREADY_IN_FAMILY: status.HTTP_409_CONFLICT,
    ErrorCode.ERR_MISMATCH: status.HTTP_409_CONFLICT,
    ErrorCode.ERR_NON_REVERSIBLE: status.HTTP_409_CONFLICT,
    ErrorCode.ERR_INVALID_INPUT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.ERR_INVALID_ASSIGNEE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.ERR_STORAGE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.ERR_UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _respond(result: ActionResult) -> JSONResponse:
    status_code = status.HTTP_200_OK
    if not result.success:
        status_code = _STATUS_BY_CODE.get(result.code or ErrorCode.ERR_UNKNOWN, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(content=result.model_dump(mode="json", exclude_none=True), status_code=status_code)


def get_user_id(request: Request) -> str:
    """Extract the caller identity from the signed session cookie."""
    user_id = read_session_token(request.cookies.get(SESSION_COOKIE))
    if user_id is None:
        logger.warning("api_auth_missing_session", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
    return user_id


async def get_caller(user_id: str = Depends(get_user_id)) -> CallerContext | None:
    """Resolve the caller; None when the identity has not joined a family yet."""
    return await auth_service.resolve_caller(user_id=user_id)


async def require_caller(ctx: CallerContext | None = Depends(get_caller)) -> CallerContext:
    if ctx is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Onboarding required")
    return ctx


class OnboardingRequest(BaseModel):
    family_name: str
    member_name: str


class TakeTaskRequest(BaseModel):
    assignee_id: str


class CompleteSportRequest(BaseModel):
    member_id: str | None = None


class ResetRequest(BaseModel):
    source_type: str
    source_id: str | None = None


class BonusFineRequest(BaseModel):
    member_id: str
    kind: Literal["bonus", "fine"] = "bonus"
    points: Any = Field(default=None, description="Parsed leniently; must end up greater than 0")
    description: str | None = None


class FamilySettingsRequest(BaseModel):
    show_reset_button: bool


# Onboarding and family


@router.post("/onboarding")
async def post_onboarding(body: OnboardingRequest, user_id: str = Depends(get_user_id)) -> JSONResponse:
    response = _respond(
        await actions.create_family(user_id=user_id, family_name=body.family_name, member_name=body.member_name)
    )
    # Refresh the session so its max age counts from onboarding
    set_session_cookie(response, user_id)
    return response


@router.patch("/family/settings")
async def patch_family_settings(
    body: FamilySettingsRequest,
    ctx: CallerContext | None = Depends(get_caller),
) -> JSONResponse:
    return _respond(await actions.update_family_settings(ctx, show_reset_button=body.show_reset_button))


@router.post("/members")
async def post_member(fields: dict[str, Any], ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(await actions.create_member(ctx, fields=fields))


@router.patch("/members/{member_id}")
async def patch_member(
    member_id: str,
    fields: dict[str, Any],
    ctx: CallerContext | None = Depends(get_caller),
) -> JSONResponse:
    return _respond(await actions.update_member(ctx, member_id=member_id, fields=fields))


# House tasks


@router.post("/tasks")
async def post_task(fields: dict[str, Any], ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(await actions.create_task(ctx, fields=fields))


@router.patch("/tasks/{task_id}")
async def patch_task(
    task_id: str,
    fields: dict[str, Any],
    ctx: CallerContext | None = Depends(get_caller),
) -> JSONResponse:
    return _respond(await actions.update_task(ctx, task_id=task_id, fields=fields))


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(await actions.delete_task(ctx, task_id=task_id))


@router.post("/tasks/{task_id}/take")
async def post_take_task(
    task_id: str,
    body: TakeTaskRequest,
    ctx: CallerContext | None = Depends(get_caller),
) -> JSONResponse:
    return _respond(await actions.take_task(ctx, task_id=task_id, assignee_id=body.assignee_id))


@router.post("/tasks/{task_id}/release")
async def post_release_task(task_id: str, ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(await actions.release_task(ctx, task_id=task_id))


@router.post("/tasks/{task_id}/complete")
async def post_complete_task(task_id: str, ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(await actions.complete_task(ctx, task_id=task_id))


# Sport activities


@router.post("/sport-activities")
async def post_sport_activity(
    fields: dict[str, Any],
    ctx: CallerContext | None = Depends(get_caller),
) -> JSONResponse:
    return _respond(await actions.create_sport_activity(ctx, fields=fields))


@router.patch("/sport-activities/{activity_id}")
async def patch_sport_activity(
    activity_id: str,
    fields: dict[str, Any],
    ctx: CallerContext | None = Depends(get_caller),
) -> JSONResponse:
    return _respond(await actions.update_sport_activity(ctx, activity_id=activity_id, fields=fields))


@router.delete("/sport-activities/{activity_id}")
async def delete_sport_activity(activity_id: str, ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(await actions.delete_sport_activity(ctx, activity_id=activity_id))


@router.post("/sport-activities/{activity_id}/complete")
async def post_complete_sport_activity(
    activity_id: str,
    body: CompleteSportRequest | None = None,
    ctx: CallerContext | None = Depends(get_caller),
) -> JSONResponse:
    member_id = body.member_id if body else None
    return _respond(await actions.complete_sport_activity(ctx, activity_id=activity_id, member_id=member_id))


# School tasks


@router.post("/school-tasks")
async def post_school_task(fields: dict[str, Any], ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(await actions.create_school_task(ctx, fields=fields))


@router.patch("/school-tasks/{task_id}")
async def patch_school_task(
    task_id: str,
    fields: dict[str, Any],
    ctx: CallerContext | None = Depends(get_caller),
) -> JSONResponse:
    return _respond(await actions.update_school_task(ctx, task_id=task_id, fields=fields))


@router.delete("/school-tasks/{task_id}")
async def delete_school_task(task_id: str, ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(await actions.delete_school_task(ctx, task_id=task_id))


@router.post("/school-tasks/{task_id}/complete")
async def post_complete_school_task(task_id: str, ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(await actions.complete_school_task(ctx, task_id=task_id))


# Ledger


@router.post("/scores/{entry_id}/reset")
async def post_reset_activity(
    entry_id: str,
    body: ResetRequest,
    ctx: CallerContext | None = Depends(get_caller),
) -> JSONResponse:
    return _respond(
        await actions.reset_activity(ctx, entry_id=entry_id, source_type=body.source_type, source_id=body.source_id)
    )


@router.post("/bonus-fines")
async def post_bonus_fine(body: BonusFineRequest, ctx: CallerContext | None = Depends(get_caller)) -> JSONResponse:
    return _respond(
        await actions.add_bonus_fine(
            ctx,
            member_id=body.member_id,
            kind=body.kind,
            points=body.points,
            description=body.description,
        )
    )


# Read models


@router.get("/leaderboard")
async def get_leaderboard(
    period: Literal["month", "week", "all"] = "month",
    ctx: CallerContext = Depends(require_caller),
) -> list[LeaderboardEntry]:
    return await analytics_service.get_leaderboard(family_id=ctx.family_id, period=period)


@router.get("/leaderboard/previous-winner")
async def get_previous_winner(ctx: CallerContext = Depends(require_caller)) -> MonthlyWinner | None:
    return await analytics_service.get_previous_month_winner(family_id=ctx.family_id)


@router.get("/daily-totals")
async def get_daily_totals(ctx: CallerContext = Depends(require_caller)) -> list[DailyScore]:
    return await analytics_service.get_daily_totals(family_id=ctx.family_id)


@router.get("/activity-log")
async def get_activity_log(ctx: CallerContext = Depends(require_caller)) -> list[ActivityLogEntry]:
    return await analytics_service.get_activity_log(family_id=ctx.family_id)


@router.get("/today")
async def get_today(ctx: CallerContext = Depends(require_caller)) -> TodayView:
    return await today_service.get_today_activities(ctx=ctx)


@router.get("/streak")
async def get_streak(ctx: CallerContext = Depends(require_caller)) -> Streak:
    return await streak_service.get_streak(member_id=ctx.member_id)


@router.get("/family")
async def get_family(ctx: CallerContext = Depends(require_caller)) -> Family:
    return await family_service.get_family(ctx=ctx)


@router.get("/members")
async def get_members(ctx: CallerContext = Depends(require_caller)) -> list[Member]:
    return [Member(**record) for record in await family_service.list_members(ctx=ctx)]


@router.get("/tasks")
async def get_tasks(ctx: CallerContext = Depends(require_caller)) -> list[Task]:
    return await task_service.list_tasks(ctx=ctx)


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, ctx: CallerContext = Depends(require_caller)) -> Task:
    try:
        return await task_service.get_task(ctx=ctx, task_id=task_id)
    except UnavailableError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e


@router.get("/sport-activities")
async def get_sport_activities(ctx: CallerContext = Depends(require_caller)) -> list[SportActivity]:
    return await activity_service.list_sport_activities(ctx=ctx)


@router.get("/school-tasks")
async def get_school_tasks(ctx: CallerContext = Depends(require_caller)) -> list[SchoolTask]:
    return await activity_service.list_school_tasks(ctx=ctx)

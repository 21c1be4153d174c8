"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from src.domain.activity import SchoolTask, SportActivity
from src.domain.task import Task, TaskAssignment


class ActionResult(BaseModel):
    """Outcome of an engine operation as seen by the presentation layer."""

    success: bool
    points: int | None = None
    error: str | None = None
    code: str | None = None
    data: dict[str, object] | None = None


class StreakUpdate(BaseModel):
    """Derived streak state after one qualifying completion."""

    current_streak: int
    longest_streak: int
    bonus_due: bool


class LeaderboardEntry(BaseModel):
    """Member entry in a points leaderboard."""

    member_id: str
    member_name: str
    avatar_url: str | None = None
    total_points: int


class MonthlyWinner(BaseModel):
    """Top scorer of a closed month."""

    member_id: str
    member_name: str
    total_points: int
    month_start: date


class DailyScore(BaseModel):
    """Signed point total for one member on one day."""

    day: date
    member_id: str
    member_name: str
    total_points: int


class ActivityLogEntry(BaseModel):
    """Ledger row joined with its member's name, for the activity log."""

    id: str
    member_id: str
    member_name: str
    source_type: str
    source_id: str | None = None
    score_delta: int
    signed_points: int
    description: str | None = None
    created_at: datetime


class TakenTask(BaseModel):
    """A task with its live assignment."""

    task: Task
    assignment: TaskAssignment
    member_name: str


class TodayView(BaseModel):
    """Everything eligible to act on today for one family."""

    today: date
    open_tasks: list[Task] = Field(default_factory=list)
    taken_tasks: list[TakenTask] = Field(default_factory=list)
    sport_activities: list[SportActivity] = Field(default_factory=list)
    school_tasks: list[SchoolTask] = Field(default_factory=list)

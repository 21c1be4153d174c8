"""House task domain models and enums."""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class TaskStatus(StrEnum):
    """House task lifecycle status.

    open -> taken -> completed, taken -> open on release. Recurring tasks go
    taken -> open on completion. Nothing in the engine produces expired.
    """

    OPEN = "open"
    TAKEN = "taken"
    COMPLETED = "completed"
    EXPIRED = "expired"


class Task(BaseModel):
    """House task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    family_id: str = Field(..., description="Owning family ID")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    score_value: int = Field(default=10, ge=0, description="Points awarded on completion")
    status: TaskStatus = Field(default=TaskStatus.OPEN, description="Current lifecycle status")
    deadline: date | None = Field(default=None, description="Deadline date")
    recurring_daily: bool = Field(default=False, description="Reopens for tomorrow on completion")
    scheduled_days: list[int] | None = Field(default=None, description="Eligible weekdays (0=Sunday); null = every day")
    default_assignee_id: str | None = Field(default=None, description="Suggested assignee member ID")
    created_by: str | None = Field(default=None, description="Creator member ID")


class TaskAssignment(BaseModel):
    """Link between a taken task and the member doing it."""

    id: str = Field(..., description="Unique assignment ID from database")
    task_id: str = Field(..., description="Assigned task ID")
    member_id: str = Field(..., description="Assignee member ID")
    taken_at: datetime = Field(..., description="When the task was taken")
    completed_at: datetime | None = Field(default=None, description="When the task was completed")

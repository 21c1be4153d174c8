"""Sport activity and school task domain models and enums."""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class SportType(StrEnum):
    """How a sport activity is scheduled."""

    WEEKLY = "weekly"  # Recurs on its scheduled weekdays
    EXTRA = "extra"  # Ad hoc, any day


class SchoolTaskType(StrEnum):
    """Kind of school assignment."""

    HOMEWORK = "homework"
    EXAM = "exam"
    PROJECT = "project"


class SportActivity(BaseModel):
    """Sport activity data transfer object."""

    id: str = Field(..., description="Unique activity ID from database")
    member_id: str = Field(..., description="Member the activity belongs to")
    title: str = Field(..., description="Activity title")
    type: SportType = Field(default=SportType.EXTRA, description="weekly or extra")
    scheduled_days: list[int] = Field(default_factory=list, description="Weekdays for weekly activities")
    score_value: int = Field(default=10, ge=0, description="Points awarded on completion")
    completed_at: datetime | None = Field(default=None, description="When the activity was completed")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class SchoolTask(BaseModel):
    """School task data transfer object."""

    id: str = Field(..., description="Unique school task ID from database")
    member_id: str = Field(..., description="Member the task belongs to")
    title: str = Field(..., description="Task title")
    type: SchoolTaskType = Field(default=SchoolTaskType.HOMEWORK, description="homework, exam or project")
    due_date: date | None = Field(default=None, description="Due date")
    scheduled_days: list[int] | None = Field(default=None, description="Eligible weekdays; null = every day")
    score_value: int = Field(default=10, ge=0, description="Points awarded on completion")
    completed_at: datetime | None = Field(default=None, description="When the task was completed")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

"""Update models for database operations.

Only fields that were explicitly set are written (``model_dump(exclude_unset=True)``).
"""

from datetime import date

from pydantic import BaseModel, Field, field_validator

from src.core.weekdays import normalize_weekdays
from src.domain.activity import SchoolTaskType, SportType
from src.domain.create_models import parse_score_value, require_title, strip_or_none
from src.domain.member import MemberRole, validate_display_name
from src.domain.task import TaskStatus


class FamilySettingsUpdate(BaseModel):
    """Update payload for family settings."""

    show_reset_button: bool


class MemberUpdate(BaseModel):
    """Update payload for member name, role and avatar URL."""

    name: str | None = None
    role: MemberRole | None = None
    avatar_url: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return None if v is None else validate_display_name(v)

    @field_validator("avatar_url", mode="before")
    @classmethod
    def blank_avatar(cls, v: object) -> str | None:
        return strip_or_none(v)


class TaskUpdate(BaseModel):
    """Update payload for a house task; same clamping as creation."""

    title: str | None = None
    description: str | None = None
    score_value: int | None = None
    deadline: date | None = None
    recurring_daily: bool | None = None
    scheduled_days: list[int] | None = None
    default_assignee_id: str | None = None
    status: TaskStatus | None = Field(
        default=None,
        description="Direct status edit: any task may expire, an expired task may reopen",
    )

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: object) -> str | None:
        return None if v is None else require_title(v)

    @field_validator("description", "default_assignee_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> str | None:
        return strip_or_none(v)

    @field_validator("score_value", mode="before")
    @classmethod
    def clamp_score(cls, v: object) -> int:
        return parse_score_value(v)

    @field_validator("deadline", mode="before")
    @classmethod
    def blank_deadline(cls, v: object) -> object:
        return v or None

    @field_validator("scheduled_days", mode="before")
    @classmethod
    def clamp_weekdays(cls, v: object) -> list[int] | None:
        return normalize_weekdays(v)  # type: ignore[arg-type]


class SportActivityUpdate(BaseModel):
    """Update payload for a sport activity."""

    member_id: str | None = None
    title: str | None = None
    type: SportType | None = None
    scheduled_days: list[int] | None = None
    score_value: int | None = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: object) -> str | None:
        return None if v is None else require_title(v)

    @field_validator("scheduled_days", mode="before")
    @classmethod
    def clamp_weekdays(cls, v: object) -> list[int]:
        return normalize_weekdays(v) or []  # type: ignore[arg-type]

    @field_validator("score_value", mode="before")
    @classmethod
    def clamp_score(cls, v: object) -> int:
        return parse_score_value(v)


class SchoolTaskUpdate(BaseModel):
    """Update payload for a school task."""

    member_id: str | None = None
    title: str | None = None
    type: SchoolTaskType | None = None
    due_date: date | None = None
    scheduled_days: list[int] | None = None
    score_value: int | None = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: object) -> str | None:
        return None if v is None else require_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def blank_due_date(cls, v: object) -> object:
        return v or None

    @field_validator("scheduled_days", mode="before")
    @classmethod
    def clamp_weekdays(cls, v: object) -> list[int] | None:
        return normalize_weekdays(v)  # type: ignore[arg-type]

    @field_validator("score_value", mode="before")
    @classmethod
    def clamp_score(cls, v: object) -> int:
        return parse_score_value(v)

"""Pydantic models for creating records in database.

Input is clamped or defaulted where that is safe: point values are floored at 0
and fall back to the default when unparsable, weekday lists are deduplicated
and restricted to 0-6.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.config import constants
from src.core.weekdays import normalize_weekdays
from src.domain.activity import SchoolTaskType, SportType
from src.domain.member import MemberRole, validate_display_name


def parse_score_value(raw: object, *, default: int = constants.DEFAULT_SCORE_VALUE) -> int:
    """Parse a submitted point value: negative becomes 0, unparsable becomes the default."""
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return max(0, raw)
    if isinstance(raw, float):
        return max(0, int(raw))

    text = str(raw).strip()
    try:
        return max(0, int(text))
    except ValueError:
        pass
    try:
        return max(0, int(float(text)))
    except ValueError:
        return default


def strip_or_none(raw: object) -> str | None:
    """Trim free text; blank becomes None."""
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def require_title(raw: object) -> str:
    text = strip_or_none(raw)
    if text is None:
        raise ValueError("Title is required")
    return text


class FamilyCreate(BaseModel):
    """Pydantic model for onboarding a new family and its first admin."""

    family_name: str = Field(..., description="Family display name")
    member_name: str = Field(..., description="Display name of the founding admin")

    @field_validator("family_name", mode="before")
    @classmethod
    def validate_family_name(cls, v: object) -> str:
        text = strip_or_none(v)
        if text is None:
            raise ValueError("Family name is required")
        return text

    @field_validator("member_name")
    @classmethod
    def validate_member_name(cls, v: str) -> str:
        return validate_display_name(v)


class MemberCreate(BaseModel):
    """Pydantic model for creating a member record."""

    name: str = Field(..., description="Display name of the member")
    role: MemberRole = Field(default=MemberRole.REGULAR, description="Member role in family")
    avatar_url: str | None = Field(default=None, description="Avatar token; blank means none")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_display_name(v)

    @field_validator("role", mode="before")
    @classmethod
    def default_role(cls, v: object) -> object:
        return v or MemberRole.REGULAR

    @field_validator("avatar_url", mode="before")
    @classmethod
    def blank_avatar(cls, v: object) -> str | None:
        return strip_or_none(v)


class TaskCreate(BaseModel):
    """Pydantic model for creating a house task record."""

    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    score_value: int = Field(default=constants.DEFAULT_SCORE_VALUE, description="Points awarded on completion")
    deadline: date | None = Field(default=None, description="Deadline date; defaults to today for recurring tasks")
    recurring_daily: bool = Field(default=False, description="Reopens for tomorrow on completion")
    scheduled_days: list[int] | None = Field(default=None, description="Eligible weekdays (0=Sunday)")
    default_assignee_id: str | None = Field(default=None, description="Suggested assignee member ID")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: object) -> str:
        return require_title(v)

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


class SportActivityCreate(BaseModel):
    """Pydantic model for creating a sport activity record."""

    member_id: str = Field(..., description="Member the activity belongs to")
    title: str = Field(..., description="Activity title")
    type: SportType = Field(default=SportType.EXTRA, description="weekly or extra")
    scheduled_days: list[int] = Field(default_factory=list, description="Weekdays; only kept for weekly activities")
    score_value: int = Field(default=constants.DEFAULT_SCORE_VALUE, description="Points awarded on completion")

    @field_validator("member_id", mode="before")
    @classmethod
    def coerce_member_id(cls, v: object) -> str:
        return str(v)

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: object) -> str:
        return require_title(v)

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: object) -> object:
        return v or SportType.EXTRA

    @field_validator("scheduled_days", mode="before")
    @classmethod
    def clamp_weekdays(cls, v: object) -> list[int]:
        return normalize_weekdays(v) or []  # type: ignore[arg-type]

    @field_validator("score_value", mode="before")
    @classmethod
    def clamp_score(cls, v: object) -> int:
        return parse_score_value(v)

    @model_validator(mode="after")
    def extras_have_no_schedule(self) -> "SportActivityCreate":
        if self.type == SportType.EXTRA:
            self.scheduled_days = []
        return self


class SchoolTaskCreate(BaseModel):
    """Pydantic model for creating a school task record."""

    member_id: str | None = Field(default=None, description="Member the task belongs to; defaults to the caller")
    title: str = Field(..., description="Task title")
    type: SchoolTaskType = Field(default=SchoolTaskType.HOMEWORK, description="homework, exam or project")
    due_date: date | None = Field(default=None, description="Due date")
    scheduled_days: list[int] | None = Field(default=None, description="Eligible weekdays; null = every day")
    score_value: int = Field(default=constants.DEFAULT_SCORE_VALUE, description="Points awarded on completion")

    @field_validator("member_id", mode="before")
    @classmethod
    def coerce_member_id(cls, v: object) -> str | None:
        return strip_or_none(v)

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: object) -> str:
        return require_title(v)

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: object) -> object:
        return v or SchoolTaskType.HOMEWORK

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


class BonusFineCreate(BaseModel):
    """Pydantic model for an administrative bonus or fine.

    Points are clamped to a non-negative integer (unparsable becomes 0); the
    service rejects zero.
    """

    member_id: str = Field(..., description="Member receiving the bonus or fine")
    kind: Literal["bonus", "fine"] = Field(..., description="bonus or fine")
    points: int = Field(..., description="Point magnitude")
    description: str | None = Field(default=None, description="Reason shown in the activity log")

    @field_validator("member_id", mode="before")
    @classmethod
    def coerce_member_id(cls, v: object) -> str:
        return str(v)

    @field_validator("points", mode="before")
    @classmethod
    def clamp_points(cls, v: object) -> int:
        return parse_score_value(v, default=0)

    @field_validator("description", mode="before")
    @classmethod
    def trim_description(cls, v: object) -> str | None:
        return strip_or_none(v)

"""Streak domain model."""

from datetime import date

from pydantic import BaseModel, Field


class Streak(BaseModel):
    """Per-member consecutive-day activity counter."""

    member_id: str = Field(..., description="Member the streak belongs to")
    current_streak: int = Field(default=0, ge=0, description="Consecutive active days ending at last_activity_date")
    longest_streak: int = Field(default=0, ge=0, description="All-time high-water mark")
    last_activity_date: date | None = Field(default=None, description="Last day with a completed activity")

"""Score ledger domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class ScoreSourceType(StrEnum):
    """What caused a ledger entry."""

    HOUSE = "house"
    SPORT = "sport"
    SCHOOL = "school"
    STREAK_BONUS = "streak_bonus"
    BONUS = "bonus"
    FINE = "fine"


# Entry kinds that stem from an activity completion and can be undone
REVERSIBLE_SOURCES = frozenset({ScoreSourceType.HOUSE, ScoreSourceType.SPORT, ScoreSourceType.SCHOOL})


class ScoreEntry(BaseModel):
    """One immutable row of the scores log."""

    id: str = Field(..., description="Unique ledger entry ID from database")
    member_id: str = Field(..., description="Member credited or fined")
    source_type: ScoreSourceType = Field(..., description="Cause of the entry")
    source_id: str | None = Field(default=None, description="Source entity ID, null for streak/bonus/fine")
    score_delta: int = Field(..., ge=0, description="Point magnitude; fines count as negative")
    description: str | None = Field(default=None, description="Free-text note")
    created_at: datetime = Field(..., description="When the entry was written")

    @property
    def signed_points(self) -> int:
        return signed_points(self.source_type, self.score_delta)


def signed_points(source_type: str, points: int) -> int:
    """Points as they count toward totals: fines are negated."""
    return -points if source_type == ScoreSourceType.FINE else points

"""Domain models and DTOs."""

from src.domain.activity import SchoolTask, SchoolTaskType, SportActivity, SportType
from src.domain.context import CallerContext
from src.domain.create_models import (
    BonusFineCreate,
    FamilyCreate,
    MemberCreate,
    SchoolTaskCreate,
    SportActivityCreate,
    TaskCreate,
)
from src.domain.family import Family
from src.domain.ledger import REVERSIBLE_SOURCES, ScoreEntry, ScoreSourceType
from src.domain.member import Member, MemberRole
from src.domain.streak import Streak
from src.domain.task import Task, TaskAssignment, TaskStatus
from src.domain.update_models import (
    FamilySettingsUpdate,
    MemberUpdate,
    SchoolTaskUpdate,
    SportActivityUpdate,
    TaskUpdate,
)


__all__ = [
    "REVERSIBLE_SOURCES",
    "BonusFineCreate",
    "CallerContext",
    "Family",
    "FamilyCreate",
    "FamilySettingsUpdate",
    "Member",
    "MemberCreate",
    "MemberRole",
    "MemberUpdate",
    "SchoolTask",
    "SchoolTaskCreate",
    "SchoolTaskType",
    "SchoolTaskUpdate",
    "ScoreEntry",
    "ScoreSourceType",
    "SportActivity",
    "SportActivityCreate",
    "SportActivityUpdate",
    "SportType",
    "Streak",
    "Task",
    "TaskAssignment",
    "TaskCreate",
    "TaskStatus",
    "TaskUpdate",
]

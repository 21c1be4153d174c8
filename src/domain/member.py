"""Member domain models and enums."""

import re
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


# Constants for validation
MAX_NAME_LENGTH = 50


class MemberRole(StrEnum):
    """Member role in the family."""

    ADMIN = "admin"
    REGULAR = "regular"


def validate_display_name(value: str) -> str:
    """Strip and validate a display name - allows Unicode letters, digits, spaces, hyphens, apostrophes."""
    value = value.strip()

    if not value:
        raise ValueError("Name cannot be empty")

    if len(value) > MAX_NAME_LENGTH:
        raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")

    if not re.match(r"^[\w\s'-]+$", value, re.UNICODE):
        raise ValueError("Name can only contain letters, spaces, hyphens, and apostrophes")

    return value


class Member(BaseModel):
    """Member data transfer object."""

    id: str = Field(..., description="Unique member ID from database")
    family_id: str = Field(..., description="Owning family ID")
    user_id: str | None = Field(default=None, description="Linked caller identity, if any")
    name: str = Field(..., description="Display name of the member")
    role: MemberRole = Field(default=MemberRole.REGULAR, description="Member role in family")
    avatar_url: str | None = Field(default=None, description="Avatar token")

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN

    @field_validator("name")
    @classmethod
    def validate_name_usable(cls, v: str) -> str:
        """Validate name is usable."""
        return validate_display_name(v)

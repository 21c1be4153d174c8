"""Resolved caller context passed explicitly into every engine operation."""

from pydantic import BaseModel, ConfigDict, Field

from src.domain.member import MemberRole


class CallerContext(BaseModel):
    """Who is acting: the caller's member, their family, and their role.

    Resolved once per request from the caller identity; never stored globally.
    """

    model_config = ConfigDict(frozen=True)

    member_id: str = Field(..., description="Acting member ID")
    family_id: str = Field(..., description="Acting member's family ID")
    role: MemberRole = Field(..., description="Acting member's role")

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN

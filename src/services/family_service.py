"""Family service for onboarding, family settings and member management."""

import logging
from typing import Any

from src.core import db_client
from src.core.errors import ErrorCode, InvalidInputError, UnavailableError
from src.core.logging import span
from src.domain.context import CallerContext
from src.domain.create_models import FamilyCreate, MemberCreate
from src.domain.family import Family
from src.domain.member import MemberRole
from src.domain.update_models import FamilySettingsUpdate, MemberUpdate
from src.services import auth_service
from src.services.analytics_service import invalidate_leaderboard_cache, list_family_members


logger = logging.getLogger(__name__)


async def create_family(*, user_id: str, data: FamilyCreate) -> dict[str, Any]:
    """Create a family and its founding admin linked to the caller identity.

    Args:
        user_id: Caller identity from the authentication subsystem
        data: Family name and the founding member's display name

    Returns:
        Created member record

    Raises:
        InvalidInputError: If the identity already belongs to a family
    """
    with span("family_service.create_family"):
        async with db_client.transaction():
            existing = await db_client.get_first_record(
                collection="members",
                filter_query=f'user_id = "{db_client.sanitize_param(user_id)}"',
            )
            if existing:
                logger.warning("Identity already has a family", extra={"user_id": user_id})
                raise InvalidInputError("User already has a family", code=ErrorCode.ERR_ALREADY_IN_FAMILY)

            family = await db_client.create_record(
                collection="families",
                data={"name": data.family_name, "show_reset_button": True},
            )
            member = await db_client.create_record(
                collection="members",
                data={
                    "family_id": int(family["id"]),
                    "user_id": user_id,
                    "name": data.member_name,
                    "role": MemberRole.ADMIN,
                },
            )

        logger.info("Created family", extra={"family_id": family["id"], "member_id": member["id"]})
        return member


async def get_family(*, ctx: CallerContext) -> Family:
    """Load the caller's family."""
    record = await db_client.get_record(collection="families", record_id=ctx.family_id)
    return Family(**record)


async def update_family_settings(*, ctx: CallerContext, data: FamilySettingsUpdate) -> Family:
    """Toggle whether regular members may undo ledger entries (admin-only)."""
    with span("family_service.update_family_settings"):
        auth_service.require_admin(ctx=ctx, operation="update_family_settings")
        record = await db_client.update_record(
            collection="families",
            record_id=ctx.family_id,
            data={"show_reset_button": data.show_reset_button},
        )
        logger.info(
            "Updated family settings",
            extra={"family_id": ctx.family_id, "show_reset_button": data.show_reset_button},
        )
        return Family(**record)


async def list_members(*, ctx: CallerContext) -> list[dict[str, Any]]:
    """Members of the caller's family."""
    return await list_family_members(family_id=ctx.family_id)


async def create_member(*, ctx: CallerContext, data: MemberCreate) -> dict[str, Any]:
    """Add a member to the caller's family (admin-only).

    The new member has no linked identity until an authentication flow claims it.
    """
    with span("family_service.create_member"):
        auth_service.require_admin(ctx=ctx, operation="create_member")
        record = await db_client.create_record(
            collection="members",
            data={
                "family_id": int(ctx.family_id),
                "name": data.name,
                "role": data.role,
                "avatar_url": data.avatar_url,
            },
        )
        await invalidate_leaderboard_cache(family_id=ctx.family_id)
        logger.info("Created member", extra={"member_id": record["id"], "family_id": ctx.family_id})
        return record


async def update_member(*, ctx: CallerContext, member_id: str, data: MemberUpdate) -> dict[str, Any]:
    """Edit a member's name, role or avatar (admin-only).

    Raises:
        UnauthorizedError: If the caller is not an admin
        UnavailableError: If the member is not in the caller's family
    """
    with span("family_service.update_member"):
        auth_service.require_admin(ctx=ctx, operation="update_member")
        await auth_service.require_family_member(
            ctx=ctx,
            member_id=member_id,
            error=UnavailableError("Member not found"),
        )

        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] is None:
            del changes["name"]
        if "role" in changes and changes["role"] is None:
            changes["role"] = MemberRole.REGULAR
        if not changes:
            return await db_client.get_record(collection="members", record_id=member_id)

        record = await db_client.update_record(collection="members", record_id=member_id, data=changes)
        await invalidate_leaderboard_cache(family_id=ctx.family_id)
        logger.info("Updated member", extra={"member_id": member_id, "fields": sorted(changes)})
        return record

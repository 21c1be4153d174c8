"""Authorization guard: resolves callers and enforces family and role boundaries.

Every check reloads from the store; nothing is cached between calls.
"""

import logging
from typing import Any

from src.core import db_client
from src.core.db_client import RecordNotFoundError
from src.core.errors import UnauthorizedError
from src.core.logging import log_with_member_context, span
from src.domain.context import CallerContext
from src.domain.member import MemberRole


logger = logging.getLogger(__name__)


async def resolve_caller(*, user_id: str) -> CallerContext | None:
    """Resolve an opaque caller identity to its member context.

    Args:
        user_id: Identity issued by the authentication subsystem

    Returns:
        CallerContext, or None when the identity has no member yet (onboarding needed)
    """
    with span("auth_service.resolve_caller"):
        member = await db_client.get_first_record(
            collection="members",
            filter_query=f'user_id = "{db_client.sanitize_param(user_id)}"',
        )
        if member is None:
            logger.info("Caller has no member record", extra={"user_id": user_id})
            return None

        return CallerContext(
            member_id=member["id"],
            family_id=member["family_id"],
            role=MemberRole(member["role"]),
        )


def require_admin(*, ctx: CallerContext, operation: str) -> None:
    """Raise UnauthorizedError unless the caller is a family admin."""
    if not ctx.is_admin:
        log_with_member_context(
            logger,
            "warning",
            "Admin-only operation denied",
            member_id=ctx.member_id,
            family_id=ctx.family_id,
            operation=operation,
        )
        raise UnauthorizedError


async def get_family_member(*, ctx: CallerContext, member_id: str | None) -> dict[str, Any] | None:
    """Load a member, returning None when missing or outside the caller's family."""
    if not member_id:
        return None
    try:
        member = await db_client.get_record(collection="members", record_id=str(member_id))
    except RecordNotFoundError:
        return None
    if member["family_id"] != ctx.family_id:
        log_with_member_context(
            logger,
            "warning",
            "Cross-family member access denied",
            member_id=ctx.member_id,
            family_id=ctx.family_id,
            target_member_id=member_id,
        )
        return None
    return member


async def require_family_member(
    *,
    ctx: CallerContext,
    member_id: str | None,
    error: Exception | None = None,
) -> dict[str, Any]:
    """Load a member of the caller's family or raise.

    Args:
        ctx: Resolved caller context
        member_id: Member to load
        error: Exception to raise instead of the default UnauthorizedError

    Returns:
        Member record

    Raises:
        UnauthorizedError: If the member is missing or belongs to another family
    """
    member = await get_family_member(ctx=ctx, member_id=member_id)
    if member is None:
        raise error or UnauthorizedError()
    return member


async def get_family_record(
    *,
    ctx: CallerContext,
    collection: str,
    record_id: str,
    foreign_error: Exception | None = None,
) -> dict[str, Any] | None:
    """Load a family-owned record (task, sport activity, school task).

    Args:
        ctx: Resolved caller context
        collection: Table holding the record
        record_id: Record to load
        foreign_error: Exception to raise instead of UnauthorizedError for another family's record

    Returns:
        The record, or None when it does not exist

    Raises:
        UnauthorizedError: If the record belongs to another family
    """
    try:
        record = await db_client.get_record(collection=collection, record_id=str(record_id))
    except RecordNotFoundError:
        return None
    if record["family_id"] != ctx.family_id:
        log_with_member_context(
            logger,
            "warning",
            "Cross-family record access denied",
            member_id=ctx.member_id,
            family_id=ctx.family_id,
            collection=collection,
            record_id=record_id,
        )
        raise foreign_error or UnauthorizedError()
    return record

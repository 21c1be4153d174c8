"""Score ledger: the append-only source of truth for every point awarded or deducted."""

import logging
from datetime import UTC, datetime
from typing import Any

from src.core import db_client
from src.core.db_client import RecordNotFoundError
from src.core.errors import InvalidInputError, UnavailableError
from src.core.logging import span
from src.core.weekdays import utc_now
from src.domain.context import CallerContext
from src.domain.create_models import BonusFineCreate
from src.domain.ledger import ScoreEntry, ScoreSourceType
from src.services import auth_service
from src.services.analytics_service import invalidate_leaderboard_cache


logger = logging.getLogger(__name__)


async def append_entry(
    *,
    member_id: str,
    source_type: ScoreSourceType,
    score_delta: int,
    source_id: str | None = None,
    description: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Write one ledger row.

    Args:
        member_id: Member credited (or fined)
        source_type: Cause of the entry
        score_delta: Non-negative magnitude; fines are negated when summed
        source_id: Source entity ID (task, activity, school task), None otherwise
        description: Optional free-text note
        now: Timestamp override

    Returns:
        Created ledger record
    """
    if score_delta < 0:
        msg = f"Ledger magnitude must be non-negative, got {score_delta}"
        raise ValueError(msg)

    record = await db_client.create_record(
        collection="scores_log",
        data={
            "member_id": int(member_id),
            "source_type": source_type,
            "source_id": int(source_id) if source_id is not None else None,
            "score_delta": score_delta,
            "description": description,
            "created_at": (now or utc_now()).astimezone(UTC),
        },
    )
    logger.info(
        "Ledger entry written",
        extra={
            "entry_id": record["id"],
            "member_id": member_id,
            "source_type": str(source_type),
            "source_id": source_id,
            "score_delta": score_delta,
        },
    )
    return record


async def get_entry(*, entry_id: str) -> dict[str, Any] | None:
    """Fetch a ledger row, or None when it does not exist."""
    try:
        return await db_client.get_record(collection="scores_log", record_id=str(entry_id))
    except RecordNotFoundError:
        return None


async def delete_entry(*, entry_id: str) -> None:
    """Delete a ledger row (undo only)."""
    await db_client.delete_record(collection="scores_log", record_id=str(entry_id))
    logger.info("Ledger entry deleted", extra={"entry_id": entry_id})


async def add_bonus_fine(*, ctx: CallerContext, data: BonusFineCreate, now: datetime | None = None) -> ScoreEntry:
    """Award a bonus or deduct a fine (admin-only).

    Args:
        ctx: Resolved caller context
        data: Target member, kind, magnitude and description
        now: Timestamp override

    Returns:
        Created ledger entry

    Raises:
        UnauthorizedError: If the caller is not an admin
        InvalidInputError: If points are not greater than 0
        UnavailableError: If the member is not in the caller's family
    """
    with span("ledger_service.add_bonus_fine"):
        auth_service.require_admin(ctx=ctx, operation="add_bonus_fine")

        if data.points <= 0:
            raise InvalidInputError("Points must be greater than 0")

        await auth_service.require_family_member(
            ctx=ctx,
            member_id=data.member_id,
            error=UnavailableError("Member not found"),
        )

        record = await append_entry(
            member_id=data.member_id,
            source_type=ScoreSourceType(data.kind),
            score_delta=data.points,
            description=data.description,
            now=now,
        )

        await invalidate_leaderboard_cache(family_id=ctx.family_id)
        return ScoreEntry(**record)

"""Streak tracking: consecutive active days per member and the streak bonus."""

import logging
from datetime import date, datetime

from src.core import db_client
from src.core.config import constants
from src.core.logging import span
from src.core.weekdays import local_today, utc_now
from src.domain.ledger import ScoreSourceType
from src.domain.streak import Streak
from src.models.service_models import StreakUpdate
from src.services import ledger_service


logger = logging.getLogger(__name__)


def derive_streak(
    *,
    current_streak: int,
    longest_streak: int,
    last_activity_date: date | None,
    today: date,
) -> StreakUpdate:
    """Compute the streak after one qualifying completion on ``today``.

    No prior date starts a streak of 1, a same-day repeat leaves it unchanged,
    yesterday extends it, and any longer gap restarts it at 1. The bonus is due
    when the new streak is a positive multiple of the bonus interval and no
    activity was recorded today yet.
    """
    if last_activity_date is None:
        new_current = 1
    else:
        gap = (today - last_activity_date).days
        if gap == 0:
            new_current = current_streak
        elif gap == 1:
            new_current = current_streak + 1
        else:
            new_current = 1

    interval = constants.STREAK_BONUS_INTERVAL_DAYS
    bonus_due = new_current > 0 and new_current % interval == 0 and last_activity_date != today

    return StreakUpdate(
        current_streak=new_current,
        longest_streak=max(longest_streak, new_current),
        bonus_due=bonus_due,
    )


async def get_streak(*, member_id: str) -> Streak:
    """Return the member's stored streak, or an all-zero streak when none exists."""
    record = await db_client.get_first_record(
        collection="streaks",
        filter_query=f'member_id = "{db_client.sanitize_param(member_id)}"',
    )
    if record is None:
        return Streak(member_id=str(member_id))
    return Streak(**record)


async def update_streak(*, member_id: str, now: datetime | None = None) -> StreakUpdate:
    """Record a qualifying completion for the member.

    Appends the streak bonus entry when due, then upserts the streak row.
    Runs inside the caller's transaction when there is one.

    Args:
        member_id: Member who completed an activity
        now: Completion instant; its local date is the streak day (defaults to now)

    Returns:
        The derived streak state
    """
    with span("streak_service.update_streak"):
        now = now or utc_now()
        today = local_today(now)
        stored = await get_streak(member_id=member_id)

        update = derive_streak(
            current_streak=stored.current_streak,
            longest_streak=stored.longest_streak,
            last_activity_date=stored.last_activity_date,
            today=today,
        )

        if update.bonus_due:
            await ledger_service.append_entry(
                member_id=member_id,
                source_type=ScoreSourceType.STREAK_BONUS,
                score_delta=constants.STREAK_BONUS_POINTS,
                now=now,
            )
            logger.info(
                "Streak bonus awarded",
                extra={"member_id": member_id, "current_streak": update.current_streak},
            )

        await db_client.upsert_record(
            collection="streaks",
            data={
                "member_id": int(member_id),
                "current_streak": update.current_streak,
                "longest_streak": update.longest_streak,
                "last_activity_date": today,
            },
            conflict_field="member_id",
        )

        logger.info(
            "Updated streak",
            extra={"member_id": member_id, "current_streak": update.current_streak, "longest": update.longest_streak},
        )
        return update

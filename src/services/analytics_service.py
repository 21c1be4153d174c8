"""Analytics service for scores, leaderboards and the activity log.

Key Concepts:
- Every figure is derived by summing ledger rows; nothing is stored as a running total.
- Fines are stored as positive magnitudes and negated when summed.
- Period windows start at local midnight of the first day of the month, or of
  the Sunday that opens the week.
- Leaderboards are cached briefly and invalidated after every ledger write.
"""

import json
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Literal

from pydantic import ValidationError

from src.core import db_client
from src.core.cache_client import cache_client
from src.core.config import constants
from src.core.logging import span
from src.core.weekdays import (
    day_start_iso,
    local_today,
    start_of_month,
    start_of_previous_month,
    start_of_week,
    to_local_date,
)
from src.domain.ledger import signed_points
from src.models.service_models import ActivityLogEntry, DailyScore, LeaderboardEntry, MonthlyWinner


logger = logging.getLogger(__name__)

_CACHE_KEY_PREFIX = "famscore:leaderboard"

Period = Literal["month", "week", "all"]


async def invalidate_leaderboard_cache(*, family_id: str) -> None:
    """Drop every cached leaderboard for the family."""
    removed = await cache_client.delete_pattern(f"{_CACHE_KEY_PREFIX}:{family_id}:*")
    if removed:
        logger.info("Invalidated %d leaderboard cache entries", removed)


async def list_family_members(*, family_id: str) -> list[dict[str, Any]]:
    """All members of a family ordered by creation."""
    return await db_client.list_all_records(
        collection="members",
        filter_query=f'family_id = "{db_client.sanitize_param(family_id)}"',
        sort="id",
    )


def member_filter(member_ids: list[str]) -> str:
    """Filter clause matching rows owned by any of the given members."""
    clauses = " || ".join(f'member_id = "{db_client.sanitize_param(mid)}"' for mid in member_ids)
    return f"({clauses})"


def sum_signed_points(entries: list[dict[str, Any]]) -> int:
    return sum(signed_points(entry["source_type"], entry["score_delta"]) for entry in entries)


async def _list_entries(
    *,
    member_ids: list[str],
    since: date | None = None,
    until: date | None = None,
    sort: str = "",
) -> list[dict[str, Any]]:
    if not member_ids:
        return []
    parts = [member_filter(member_ids)]
    if since is not None:
        parts.append(f'created_at >= "{day_start_iso(since)}"')
    if until is not None:
        parts.append(f'created_at < "{day_start_iso(until)}"')
    return await db_client.list_all_records(collection="scores_log", filter_query=" && ".join(parts), sort=sort)


async def get_member_total(*, member_id: str, since: date | None = None) -> int:
    """Signed point total for one member, over all time or since a date.

    Args:
        member_id: Member to total
        since: First local date included (None = lifetime)

    Returns:
        Sum of the member's ledger rows with fines negated
    """
    with span("analytics_service.get_member_total"):
        entries = await _list_entries(member_ids=[str(member_id)], since=since)
        return sum_signed_points(entries)


async def calculate_monthly_score(*, member_id: str, today: date | None = None) -> int:
    """Signed point total for the current calendar month."""
    today = today or local_today()
    return await get_member_total(member_id=member_id, since=start_of_month(today))


def _period_start(period: Period, today: date) -> date | None:
    if period == "month":
        return start_of_month(today)
    if period == "week":
        return start_of_week(today)
    return None


async def get_leaderboard(
    *,
    family_id: str,
    period: Period = "month",
    today: date | None = None,
) -> list[LeaderboardEntry]:
    """Get the family leaderboard for a period.

    Every member is listed, including those with no points yet, ordered by
    total descending then name.

    Args:
        family_id: Family to rank
        period: "month", "week" or "all"
        today: Reference date (defaults to the local date)

    Returns:
        List of LeaderboardEntry objects sorted descending
    """
    today = today or local_today()
    since = _period_start(period, today)
    cache_key = f"{_CACHE_KEY_PREFIX}:{family_id}:{period}:{since}"

    cached_value = await cache_client.get(cache_key)
    if cached_value:
        try:
            return [LeaderboardEntry(**entry) for entry in json.loads(cached_value)]
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to deserialize cached leaderboard: %s", e)

    with span("analytics_service.get_leaderboard"):
        members = await list_family_members(family_id=family_id)
        entries = await _list_entries(member_ids=[m["id"] for m in members], since=since)

        totals: dict[str, int] = defaultdict(int)
        for entry in entries:
            totals[entry["member_id"]] += signed_points(entry["source_type"], entry["score_delta"])

        leaderboard = [
            LeaderboardEntry(
                member_id=member["id"],
                member_name=member["name"],
                avatar_url=member.get("avatar_url"),
                total_points=totals.get(member["id"], 0),
            )
            for member in members
        ]
        leaderboard.sort(key=lambda e: (-e.total_points, e.member_name))

        await cache_client.set(
            cache_key,
            json.dumps([entry.model_dump() for entry in leaderboard]),
            constants.CACHE_TTL_LEADERBOARD_SECONDS,
        )
        logger.info(
            "Generated leaderboard",
            extra={"family_id": family_id, "period": period, "members": len(leaderboard)},
        )
        return leaderboard


async def get_previous_month_winner(*, family_id: str, today: date | None = None) -> MonthlyWinner | None:
    """Top scorer of the previous calendar month, or None when nobody scored."""
    with span("analytics_service.get_previous_month_winner"):
        today = today or local_today()
        month_start = start_of_previous_month(today)
        members = await list_family_members(family_id=family_id)
        entries = await _list_entries(
            member_ids=[m["id"] for m in members],
            since=month_start,
            until=start_of_month(today),
        )

        totals: dict[str, int] = defaultdict(int)
        for entry in entries:
            totals[entry["member_id"]] += signed_points(entry["source_type"], entry["score_delta"])

        ranked = sorted(
            (m for m in members if totals.get(m["id"], 0) > 0),
            key=lambda m: (-totals[m["id"]], m["name"]),
        )
        if not ranked:
            return None

        winner = ranked[0]
        return MonthlyWinner(
            member_id=winner["id"],
            member_name=winner["name"],
            total_points=totals[winner["id"]],
            month_start=month_start,
        )


async def get_daily_totals(
    *,
    family_id: str,
    today: date | None = None,
    days: int = constants.DAILY_CHART_DAYS,
) -> list[DailyScore]:
    """Per-member signed totals for each of the last ``days`` days, oldest first.

    Days without activity are included with a zero total.
    """
    with span("analytics_service.get_daily_totals"):
        today = today or local_today()
        first_day = today - timedelta(days=days - 1)
        members = await list_family_members(family_id=family_id)
        entries = await _list_entries(
            member_ids=[m["id"] for m in members],
            since=first_day,
            until=today + timedelta(days=1),
        )

        totals: dict[tuple[date, str], int] = defaultdict(int)
        for entry in entries:
            day = to_local_date(entry["created_at"])
            totals[(day, entry["member_id"])] += signed_points(entry["source_type"], entry["score_delta"])

        return [
            DailyScore(
                day=first_day + timedelta(days=offset),
                member_id=member["id"],
                member_name=member["name"],
                total_points=totals.get((first_day + timedelta(days=offset), member["id"]), 0),
            )
            for offset in range(days)
            for member in members
        ]


async def get_activity_log(
    *,
    family_id: str,
    limit: int = constants.ACTIVITY_LOG_LIMIT,
) -> list[ActivityLogEntry]:
    """Most recent ledger rows of the family, newest first, with member names."""
    with span("analytics_service.get_activity_log"):
        members = await list_family_members(family_id=family_id)
        if not members:
            return []
        names = {m["id"]: m["name"] for m in members}

        limit = max(1, min(limit, constants.MAX_PER_PAGE_LIMIT))
        rows = await db_client.list_records(
            collection="scores_log",
            filter_query=member_filter(list(names)),
            sort="-created_at,-id",
            per_page=limit,
        )

        return [
            ActivityLogEntry(
                id=row["id"],
                member_id=row["member_id"],
                member_name=names.get(row["member_id"], ""),
                source_type=row["source_type"],
                source_id=row.get("source_id"),
                score_delta=row["score_delta"],
                signed_points=signed_points(row["source_type"], row["score_delta"]),
                description=row.get("description"),
                created_at=row["created_at"],
            )
            for row in rows
        ]

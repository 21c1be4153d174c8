"""Integration tests for the point ledger, streaks and leaderboards."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from src.core import db_client
from src.core.config import constants, settings
from src.core.errors import InvalidInputError, UnauthorizedError, UnavailableError
from src.domain.create_models import BonusFineCreate, SportActivityCreate
from src.services import (
    activity_service,
    analytics_service,
    ledger_service,
    streak_service,
    task_state_machine,
)
from tests.conftest import NOW


async def _complete_extra(ctx, member_id: str, *, now, points: int = 5) -> str:
    activity = await activity_service.create_sport_activity(
        ctx=ctx,
        data=SportActivityCreate(member_id=member_id, title="Run", type="extra", score_value=points),
    )
    await activity_service.complete_sport_activity(ctx=ctx, activity_id=activity["id"], now=now)
    return activity["id"]


async def _entries(source_type: str) -> list[dict]:
    return await db_client.list_all_records(collection="scores_log", filter_query=f'source_type = "{source_type}"')


@pytest.mark.integration
class TestStreaks:
    """Streak bookkeeping through real completions."""

    async def test_seven_consecutive_days_award_one_bonus(self, admin_ctx, child):
        for offset in range(6, -1, -1):
            await _complete_extra(admin_ctx, child["id"], now=NOW - timedelta(days=offset))

        streak = await streak_service.get_streak(member_id=child["id"])
        assert streak.current_streak == 7
        assert streak.longest_streak == 7

        bonuses = await _entries("streak_bonus")
        assert len(bonuses) == 1
        assert bonuses[0]["score_delta"] == constants.STREAK_BONUS_POINTS
        assert bonuses[0]["source_id"] is None

    async def test_same_day_completion_never_awards_second_bonus(self, admin_ctx, child):
        for offset in range(6, -1, -1):
            await _complete_extra(admin_ctx, child["id"], now=NOW - timedelta(days=offset))

        await _complete_extra(admin_ctx, child["id"], now=NOW + timedelta(hours=2))

        assert len(await _entries("streak_bonus")) == 1
        streak = await streak_service.get_streak(member_id=child["id"])
        assert streak.current_streak == 7

    async def test_gap_restarts_streak(self, admin_ctx, child):
        await _complete_extra(admin_ctx, child["id"], now=NOW - timedelta(days=5))
        await _complete_extra(admin_ctx, child["id"], now=NOW - timedelta(days=4))
        await _complete_extra(admin_ctx, child["id"], now=NOW)

        streak = await streak_service.get_streak(member_id=child["id"])
        assert streak.current_streak == 1
        assert streak.longest_streak == 2

    async def test_house_task_starts_streak_and_next_day_extends_it(self, admin_ctx, child, make_task):
        task = await make_task(score_value=10)
        await task_state_machine.take_task(ctx=admin_ctx, task_id=task["id"], assignee_id=child["id"])
        await task_state_machine.complete_task(ctx=admin_ctx, task_id=task["id"], now=NOW)

        entries = await db_client.list_all_records(collection="scores_log")
        assert [(e["source_type"], e["score_delta"]) for e in entries] == [("house", 10)]
        streak = await streak_service.get_streak(member_id=child["id"])
        assert (streak.current_streak, streak.longest_streak) == (1, 1)

        await _complete_extra(admin_ctx, child["id"], now=NOW + timedelta(days=1))

        streak = await streak_service.get_streak(member_id=child["id"])
        assert streak.current_streak == 2

    async def test_member_without_activity_has_zero_streak(self, admin_ctx, child):
        streak = await streak_service.get_streak(member_id=child["id"])

        assert streak.current_streak == 0
        assert streak.last_activity_date is None


@pytest.mark.integration
class TestBonusFine:
    """Administrative adjustments."""

    async def test_fine_counts_negative(self, admin_ctx, child):
        await _complete_extra(admin_ctx, child["id"], now=NOW, points=12)

        await ledger_service.add_bonus_fine(
            ctx=admin_ctx,
            data=BonusFineCreate(member_id=child["id"], kind="fine", points=5, description="Rude"),
            now=NOW,
        )

        assert await analytics_service.get_member_total(member_id=child["id"]) == 7
        fines = await _entries("fine")
        assert fines[0]["score_delta"] == 5
        assert fines[0]["description"] == "Rude"

    async def test_zero_points_rejected(self, admin_ctx, child):
        with pytest.raises(InvalidInputError, match="Points must be greater than 0"):
            await ledger_service.add_bonus_fine(
                ctx=admin_ctx,
                data=BonusFineCreate(member_id=child["id"], kind="bonus", points="abc"),
            )

        assert await db_client.list_all_records(collection="scores_log") == []

    async def test_regular_member_cannot_add(self, child_ctx, admin_ctx):
        with pytest.raises(UnauthorizedError):
            await ledger_service.add_bonus_fine(
                ctx=child_ctx,
                data=BonusFineCreate(member_id=admin_ctx.member_id, kind="bonus", points=5),
            )

    async def test_foreign_member_rejected(self, admin_ctx, other_family_ctx):
        with pytest.raises(UnavailableError, match="Member not found"):
            await ledger_service.add_bonus_fine(
                ctx=admin_ctx,
                data=BonusFineCreate(member_id=other_family_ctx.member_id, kind="bonus", points=5),
            )

    async def test_negative_magnitude_never_written(self, admin_ctx):
        with pytest.raises(ValueError, match="non-negative"):
            await ledger_service.append_entry(member_id=admin_ctx.member_id, source_type="bonus", score_delta=-1)

    async def test_local_timestamps_are_stored_in_utc(self, admin_ctx, child, monkeypatch):
        monkeypatch.setattr(settings, "timezone", "Asia/Jerusalem")
        # 23:30 on 31 October in Jerusalem is still October, 21:30 UTC
        late_october = datetime(2026, 10, 31, 23, 30, tzinfo=ZoneInfo("Asia/Jerusalem"))

        entry = await ledger_service.append_entry(
            member_id=child["id"], source_type="bonus", score_delta=6, now=late_october
        )

        assert entry["created_at"] == "2026-10-31T21:30:00+00:00"
        november = await analytics_service.get_leaderboard(
            family_id=admin_ctx.family_id, period="month", today=date(2026, 11, 5)
        )
        october = await analytics_service.get_leaderboard(
            family_id=admin_ctx.family_id, period="month", today=date(2026, 10, 31)
        )
        assert {e.member_id: e.total_points for e in november}[child["id"]] == 0
        assert {e.member_id: e.total_points for e in october}[child["id"]] == 6


@pytest.mark.integration
class TestLeaderboards:
    """Leaderboard totals always equal the signed ledger sums."""

    async def _seed(self, admin_ctx, child, make_task) -> None:
        task = await make_task(score_value=15)
        await task_state_machine.take_task(ctx=admin_ctx, task_id=task["id"], assignee_id=child["id"])
        await task_state_machine.complete_task(ctx=admin_ctx, task_id=task["id"], now=NOW)
        await _complete_extra(admin_ctx, child["id"], now=NOW, points=5)
        await ledger_service.add_bonus_fine(
            ctx=admin_ctx,
            data=BonusFineCreate(member_id=child["id"], kind="fine", points=3),
            now=NOW,
        )
        await ledger_service.add_bonus_fine(
            ctx=admin_ctx,
            data=BonusFineCreate(member_id=admin_ctx.member_id, kind="bonus", points=4),
            now=NOW,
        )

    async def test_leaderboard_matches_ledger(self, admin_ctx, child, make_task):
        await self._seed(admin_ctx, child, make_task)

        board = await analytics_service.get_leaderboard(family_id=admin_ctx.family_id, period="month", today=NOW.date())

        totals = {entry.member_id: entry.total_points for entry in board}
        assert totals == {child["id"]: 17, admin_ctx.member_id: 4}
        assert [entry.member_name for entry in board] == ["Alice", "Mom"]
        for member_id, total in totals.items():
            assert total == await analytics_service.get_member_total(member_id=member_id)

    async def test_every_member_listed(self, admin_ctx, child):
        board = await analytics_service.get_leaderboard(family_id=admin_ctx.family_id, period="week", today=NOW.date())

        assert {entry.member_id for entry in board} == {admin_ctx.member_id, child["id"]}
        assert all(entry.total_points == 0 for entry in board)

    async def test_period_boundaries(self, admin_ctx, child):
        # Previous Saturday: inside the month, outside the Sunday-started week
        await _complete_extra(admin_ctx, child["id"], now=NOW - timedelta(days=2), points=8)
        # Previous month
        await _complete_extra(admin_ctx, child["id"], now=NOW - timedelta(days=30), points=100)
        today = NOW.date()

        week = await analytics_service.get_leaderboard(family_id=admin_ctx.family_id, period="week", today=today)
        month = await analytics_service.get_leaderboard(family_id=admin_ctx.family_id, period="month", today=today)
        lifetime = await analytics_service.get_leaderboard(family_id=admin_ctx.family_id, period="all", today=today)

        def points(board):
            return next(entry.total_points for entry in board if entry.member_id == child["id"])

        assert points(week) == 0
        assert points(month) == 8
        assert points(lifetime) == 108
        assert await analytics_service.calculate_monthly_score(member_id=child["id"], today=today) == 8

    async def test_leaderboards_are_family_scoped(self, admin_ctx, child, other_family_ctx):
        await _complete_extra(admin_ctx, child["id"], now=NOW)

        board = await analytics_service.get_leaderboard(family_id=other_family_ctx.family_id, period="all")

        assert [entry.member_id for entry in board] == [other_family_ctx.member_id]
        assert board[0].total_points == 0

    async def test_previous_month_winner(self, admin_ctx, child):
        await _complete_extra(admin_ctx, child["id"], now=NOW - timedelta(days=30), points=9)
        await _complete_extra(admin_ctx, admin_ctx.member_id, now=NOW - timedelta(days=29), points=4)

        winner = await analytics_service.get_previous_month_winner(family_id=admin_ctx.family_id, today=NOW.date())

        assert winner is not None
        assert winner.member_id == child["id"]
        assert winner.total_points == 9
        assert winner.month_start.isoformat() == "2026-09-01"

    async def test_no_previous_month_winner_without_points(self, admin_ctx):
        assert await analytics_service.get_previous_month_winner(family_id=admin_ctx.family_id) is None

    async def test_daily_totals_cover_every_day_and_member(self, admin_ctx, child):
        await _complete_extra(admin_ctx, child["id"], now=NOW - timedelta(days=1), points=6)

        daily = await analytics_service.get_daily_totals(family_id=admin_ctx.family_id, today=NOW.date())

        assert len(daily) == constants.DAILY_CHART_DAYS * 2
        assert daily[0].day == NOW.date() - timedelta(days=constants.DAILY_CHART_DAYS - 1)
        yesterday = [d for d in daily if d.day == NOW.date() - timedelta(days=1) and d.member_id == child["id"]]
        assert yesterday[0].total_points == 6
        assert sum(d.total_points for d in daily) == 6

    async def test_activity_log_newest_first_with_signed_points(self, admin_ctx, child, make_task):
        await self._seed(admin_ctx, child, make_task)
        await ledger_service.add_bonus_fine(
            ctx=admin_ctx,
            data=BonusFineCreate(member_id=child["id"], kind="fine", points=2),
            now=NOW + timedelta(minutes=5),
        )

        log = await analytics_service.get_activity_log(family_id=admin_ctx.family_id)

        assert log[0].source_type == "fine"
        assert log[0].signed_points == -2
        assert log[0].member_name == "Alice"
        assert len(log) == 5

"""Calendar helpers: weekday numbering, local 'today', and period boundaries.

Weekdays are numbered 0=Sunday through 6=Saturday throughout the engine.
"""

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from src.core.config import constants, settings


def weekday_index(day: date) -> int:
    """Return the Sunday-based weekday number (0=Sunday .. 6=Saturday)."""
    return (day.weekday() + 1) % 7


def normalize_weekdays(values: Iterable[object] | None) -> list[int] | None:
    """Clamp entries into 0-6, drop non-integers, dedupe, and sort.

    Returns None when nothing valid remains, meaning "every day".
    """
    if values is None:
        return None
    if isinstance(values, str | int):
        values = [values]

    days: set[int] = set()
    for value in values:
        if isinstance(value, bool):
            continue
        try:
            day = int(value)  # type: ignore[call-overload]
        except (TypeError, ValueError):
            continue
        days.add(min(constants.MAX_WEEKDAY, max(constants.MIN_WEEKDAY, day)))

    return sorted(days) or None


def is_scheduled_on(scheduled_days: list[int] | None, day: date) -> bool:
    """True when the day matches the schedule; null or empty means every day."""
    if not scheduled_days:
        return True
    return weekday_index(day) in scheduled_days


def utc_now() -> datetime:
    """Current instant in UTC."""
    return datetime.now(UTC)


def local_today(now: datetime | None = None) -> date:
    """Calendar date in the configured household timezone."""
    instant = now or utc_now()
    return instant.astimezone(ZoneInfo(settings.timezone)).date()


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def start_of_previous_month(day: date) -> date:
    return (start_of_month(day) - timedelta(days=1)).replace(day=1)


def start_of_week(day: date) -> date:
    """Sunday on or before the given day."""
    return day - timedelta(days=weekday_index(day))


def day_start_iso(day: date) -> str:
    """Local midnight of the given date as a UTC ISO timestamp, comparable with stored created_at values."""
    midnight = datetime(day.year, day.month, day.day, tzinfo=ZoneInfo(settings.timezone))
    return midnight.astimezone(UTC).isoformat()


def to_local_date(instant: datetime | str) -> date:
    """Calendar date of a stored timestamp in the household timezone."""
    if isinstance(instant, str):
        instant = datetime.fromisoformat(instant)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(ZoneInfo(settings.timezone)).date()

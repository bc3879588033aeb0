"""Date windows for the today / weekend / all scopes, in local civil time."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from pulse_recs.config import settings
from pulse_recs.models import Scope


def local_tz() -> tzinfo:
    return ZoneInfo(settings.timezone)


def _local_midnight(day, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def date_window(
    scope: Scope, now: datetime, tz: tzinfo | None = None
) -> tuple[datetime, datetime | None]:
    """Return [start, end) for a scope. end is None for an open window.

    today   -> [local midnight today, local midnight tomorrow)
    weekend -> [local midnight today, next Monday 00:00)
    all     -> [now, open)

    Midnights are built from the local calendar date, so DST transitions
    shift the UTC offset rather than the wall-clock boundary.
    """
    tz = tz or local_tz()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    today = now.astimezone(tz).date()

    if scope == Scope.TODAY:
        return _local_midnight(today, tz), _local_midnight(today + timedelta(days=1), tz)
    if scope == Scope.WEEKEND:
        # Monday=0 .. Sunday=6; on Sunday the window closes tonight
        days_until_monday = 7 - today.weekday()
        return _local_midnight(today, tz), _local_midnight(
            today + timedelta(days=days_until_monday), tz
        )
    if scope == Scope.ALL:
        return now, None
    raise ValueError(f"unknown scope: {scope!r}")


def in_window(start_at: datetime, window: tuple[datetime, datetime | None]) -> bool:
    start, end = window
    return start_at >= start and (end is None or start_at < end)


def day_type(start_at: datetime, tz: tzinfo | None = None) -> str:
    """"weekend" for Saturday/Sunday in local time, "weekday" otherwise."""
    local = start_at.astimezone(tz or local_tz())
    return "weekend" if local.weekday() >= 5 else "weekday"


def time_of_day(hour: int) -> str | None:
    """day 08-16h, evening 17-21h, night 22-01h; None for 02-07h."""
    if 8 <= hour <= 16:
        return "day"
    if 17 <= hour <= 21:
        return "evening"
    if hour >= 22 or hour <= 1:
        return "night"
    return None

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo

DEFAULT_BREAK_INTERVAL_MINUTES = 40
DEFAULT_BREAK_DURATION_MINUTES = 15
DEFAULT_DAY_BOUNDARY_HOUR = 4
REMINDER_OFFSETS_MINUTES = (30, 5, 0)


@dataclass(frozen=True)
class Schedule:
    runtime_minutes: int
    start_time: datetime
    finish_time: datetime
    break_count: int
    break_total_minutes: int
    total_minutes: int
    reminders: list[datetime] = field(default_factory=list)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_finish_by(value: str) -> time:
    raw = (value or "").strip()
    hour, sep, minute = raw.partition(":")
    if not sep or not (hour.isdigit() and minute.isdigit()) or len(minute) != 2:
        raise ValueError("finish_by_time must be HH:MM")
    h, m = int(hour), int(minute)
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError("finish_by_time must be HH:MM")
    return time(h, m)


def cycle_day(now: datetime, *, boundary_hour: int = DEFAULT_DAY_BOUNDARY_HOUR) -> date:
    # Before the boundary hour the night still belongs to the previous day.
    if now.hour < boundary_hour:
        return (now - timedelta(days=1)).date()
    return now.date()


def cycle_id_for(now: datetime, *, boundary_hour: int = DEFAULT_DAY_BOUNDARY_HOUR) -> str:
    return cycle_day(now, boundary_hour=boundary_hour).isoformat()


def break_plan(
    runtime_minutes: int,
    *,
    break_interval_minutes: int = DEFAULT_BREAK_INTERVAL_MINUTES,
    break_duration_minutes: int = DEFAULT_BREAK_DURATION_MINUTES,
) -> tuple[int, int]:
    if runtime_minutes <= 0:
        return 0, 0
    count = runtime_minutes // break_interval_minutes
    return count, count * break_duration_minutes


def calculate_schedule(
    runtime_minutes: int,
    finish_by: str,
    *,
    now: datetime,
    break_interval_minutes: int = DEFAULT_BREAK_INTERVAL_MINUTES,
    break_duration_minutes: int = DEFAULT_BREAK_DURATION_MINUTES,
    boundary_hour: int = DEFAULT_DAY_BOUNDARY_HOUR,
) -> Schedule:
    """Work backwards from ``finish_by`` to the start time.

    One break every ``break_interval_minutes`` of runtime. ``finish_by``
    resolves against the cycle day of ``now``; an hour before noon means the
    early morning after that day. ``now``'s tzinfo is carried through.

    The day is the cycle day, not the wall-clock date: at 1 AM the target is
    still the previous evening's night.
    """
    finish_clock = parse_finish_by(finish_by)
    break_count, break_total = break_plan(
        runtime_minutes,
        break_interval_minutes=break_interval_minutes,
        break_duration_minutes=break_duration_minutes,
    )
    total = max(runtime_minutes, 0) + break_total

    day = cycle_day(now, boundary_hour=boundary_hour)
    tz: tzinfo | None = now.tzinfo
    finish_time = datetime.combine(day, finish_clock, tzinfo=tz)
    if finish_clock.hour < 12:
        finish_time += timedelta(days=1)

    start_time = finish_time - timedelta(minutes=total)
    return Schedule(
        runtime_minutes=runtime_minutes,
        start_time=start_time,
        finish_time=finish_time,
        break_count=break_count,
        break_total_minutes=break_total,
        total_minutes=total,
        reminders=[start_time - timedelta(minutes=offset) for offset in REMINDER_OFFSETS_MINUTES],
    )

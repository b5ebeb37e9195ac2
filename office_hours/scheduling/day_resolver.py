"""Turn a symbolic weekday and an ``HH:MM`` time into a concrete datetime.

Two policies exist and every caller has to pick one:

* ``PINNED_WEEK`` places the weekday inside the ISO week stored on an
  appointment row. Exports use it because the row already knows its week.
* ``NEXT_OCCURRENCE`` places the weekday on today or the nearest following
  date. Slot templates, which carry no week, use it.

The returned datetimes are naive wall-clock values; attach the application
timezone before converting them.
"""

import enum
from datetime import date, datetime, timedelta

from office_hours.scheduling.weekdays import parse_clock_time, weekday_number


class ResolutionPolicy(str, enum.Enum):
    PINNED_WEEK = "pinned_week"
    NEXT_OCCURRENCE = "next_occurrence"


def resolve_in_pinned_week(day: str, start_time: str, week_number: int, year: int) -> datetime:
    target_date = date.fromisocalendar(year, week_number, weekday_number(day))
    return datetime.combine(target_date, parse_clock_time(start_time))


def resolve_next_occurrence(day: str, start_time: str, today: date | None = None) -> datetime:
    today = today or date.today()
    days_ahead = (weekday_number(day) - today.isoweekday()) % 7
    return datetime.combine(today + timedelta(days=days_ahead), parse_clock_time(start_time))


def resolve_day_time(
    day: str,
    start_time: str,
    policy: ResolutionPolicy,
    *,
    week_number: int | None = None,
    year: int | None = None,
    today: date | None = None,
) -> datetime:
    if policy is ResolutionPolicy.PINNED_WEEK:
        if week_number is None or year is None:
            raise ValueError("Pinned-week resolution needs both week_number and year.")
        return resolve_in_pinned_week(day, start_time, week_number, year)
    return resolve_next_occurrence(day, start_time, today=today)

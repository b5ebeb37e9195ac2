"""ISO-8601 week numbering.

Weeks start on Monday and week 1 is the week holding the year's first
Thursday, so the week-year of a date near New Year can differ from its
calendar year.
"""

import math
from datetime import date, datetime, timedelta


def _thursday_of_week(value: date) -> date:
    if isinstance(value, datetime):
        value = value.date()
    return value + timedelta(days=4 - value.isoweekday())


def iso_week(value: date) -> int:
    thursday = _thursday_of_week(value)
    year_start = date(thursday.year, 1, 1)
    return math.ceil(((thursday - year_start).days + 1) / 7)


def iso_week_year(value: date) -> int:
    return _thursday_of_week(value).year


def current_iso_week(today: date | None = None) -> tuple[int, int]:
    """Return ``(week_number, year)`` for ``today`` (defaults to the local date)."""
    today = today or date.today()
    return iso_week(today), iso_week_year(today)

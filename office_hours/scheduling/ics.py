"""iCalendar export of resolved appointment events."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from icalendar import Alarm, Calendar, Event

from office_hours.core import config


ICS_MEDIA_TYPE = "text/calendar"
REMINDER_MINUTES = 15
EVENT_STATUSES = {"confirmed": "CONFIRMED", "cancelled": "CANCELLED"}


@dataclass(frozen=True)
class CalendarEvent:
    id: int | str
    title: str
    start: datetime
    end: datetime
    description: str | None = None
    location: str | None = None
    status: str = "confirmed"


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc, microsecond=0)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def event_uid(event_id: int | str) -> str:
    return f"appointment-{event_id}@{config.CALENDAR_UID_DOMAIN}"


def build_event(event: CalendarEvent, generated_at: datetime) -> Event:
    vevent = Event()
    vevent.add("uid", event_uid(event.id))
    vevent.add("dtstamp", generated_at)
    vevent.add("dtstart", to_utc(event.start))
    vevent.add("dtend", to_utc(event.end))
    vevent.add("summary", event.title)
    if event.description:
        vevent.add("description", event.description)
    if event.location:
        vevent.add("location", event.location)
    vevent.add("status", EVENT_STATUSES.get((event.status or "").lower(), "CONFIRMED"))
    vevent.add("transp", "OPAQUE")

    alarm = Alarm()
    alarm.add("action", "DISPLAY")
    alarm.add("description", f"Office hours start in {REMINDER_MINUTES} minutes")
    alarm.add("trigger", timedelta(minutes=-REMINDER_MINUTES))
    vevent.add_component(alarm)
    return vevent


def generate_ics(events: Iterable[CalendarEvent], generated_at: datetime | None = None) -> str:
    """Serialize ``events`` into one VCALENDAR document with CRLF line endings.

    Only DTSTAMP depends on the clock; pass ``generated_at`` to pin it.
    """
    generated_at = to_utc(generated_at or datetime.now(timezone.utc))

    calendar = Calendar()
    calendar.add("prodid", config.CALENDAR_PRODID)
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")
    calendar.add("method", "PUBLISH")
    calendar.add("x-wr-calname", config.CALENDAR_NAME)
    calendar.add("x-wr-timezone", config.APP_TIMEZONE)
    calendar.add("x-wr-caldesc", config.CALENDAR_DESCRIPTION)

    for event in events:
        calendar.add_component(build_event(event, generated_at))

    return calendar.to_ical().decode("utf-8")


def export_filename(today: date | None = None, week_number: int | None = None, year: int | None = None) -> str:
    if week_number is not None and year is not None:
        return f"office-hours-week-{week_number:02d}-{year}.ics"
    today = today or date.today()
    return f"office-hours-{today.isoformat()}.ics"

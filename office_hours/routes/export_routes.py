import logging
from datetime import date, timedelta, tzinfo

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from office_hours.auth.dependencies import get_current_profile
from office_hours.database import get_db
from office_hours.models.appointment import CONFIRMED_STATUS, Appointment
from office_hours.models.profile import STUDENT_ROLE, Profile
from office_hours.routes.common import app_timezone, current_week, database_unavailable, local_today, profiles_by_id
from office_hours.scheduling.day_resolver import ResolutionPolicy, resolve_day_time
from office_hours.scheduling.ics import ICS_MEDIA_TYPE, CalendarEvent, export_filename, generate_ics
from office_hours.scheduling.partition import sort_for_display
from office_hours.scheduling.weekdays import WEEKDAY_NUMBERS

router = APIRouter(tags=['exports'])

logger = logging.getLogger(__name__)


def event_title(appointment: Appointment, viewer: Profile, profiles: dict[str, Profile]) -> str:
    if viewer.role == STUDENT_ROLE:
        professor = profiles.get(appointment.professor_id)
        return f"Office hours with Prof. {professor.username if professor else 'Professor'}"
    return f'Office hours - {appointment.modality}'


def event_description(appointment: Appointment, viewer: Profile, profiles: dict[str, Profile]) -> str:
    lines = [
        f'Modality: {appointment.modality}',
        f'Duration: {appointment.duration_minutes} min',
    ]
    if viewer.role != STUDENT_ROLE:
        student = profiles.get(appointment.student_id)
        if student is not None:
            lines.append(f'Student: {student.username}')
    if appointment.notes:
        lines.append(f'Notes: {appointment.notes}')
    return '\n'.join(lines)


def build_calendar_events(
    appointments: list[Appointment],
    viewer: Profile,
    profiles: dict[str, Profile],
    timezone: tzinfo,
) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    for appointment in appointments:
        # The row already knows its ISO week, so resolve inside that week.
        start = resolve_day_time(
            appointment.day,
            appointment.start_time,
            ResolutionPolicy.PINNED_WEEK,
            week_number=appointment.week_number,
            year=appointment.year,
        ).replace(tzinfo=timezone)
        events.append(
            CalendarEvent(
                id=appointment.id,
                title=event_title(appointment, viewer, profiles),
                description=event_description(appointment, viewer, profiles),
                location=appointment.location or None,
                start=start,
                end=start + timedelta(minutes=appointment.duration_minutes),
                status=appointment.status,
            )
        )
    return events


def load_confirmed_appointments(db: Session, viewer: Profile, week_number: int, year: int) -> list[Appointment]:
    owner_column = Appointment.student_id if viewer.role == STUDENT_ROLE else Appointment.professor_id
    appointments = db.query(Appointment).filter(
        owner_column == viewer.id,
        Appointment.status == CONFIRMED_STATUS,
        Appointment.week_number == week_number,
        Appointment.year == year,
    ).all()
    return sort_for_display(appointments)


def calendar_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=ICS_MEDIA_TYPE,
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


def render_export(db: Session, viewer: Profile, appointments: list[Appointment]) -> str:
    counterpart_ids = [
        appointment.professor_id if viewer.role == STUDENT_ROLE else appointment.student_id
        for appointment in appointments
    ]
    profiles = profiles_by_id(db, counterpart_ids)
    return generate_ics(build_calendar_events(appointments, viewer, profiles, app_timezone()))


@router.get('/appointments.ics')
def export_upcoming_appointments(
    viewer: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """This week's confirmed appointments from today onwards."""
    today = local_today()
    week_number, year = current_week()

    try:
        appointments = load_confirmed_appointments(db, viewer, week_number, year)
        appointments = [
            appointment
            for appointment in appointments
            if WEEKDAY_NUMBERS.get(appointment.day, 0) >= today.isoweekday()
        ]
        content = render_export(db, viewer, appointments)
    except SQLAlchemyError as exc:
        logger.exception('Could not export appointments for %s', viewer.id)
        raise database_unavailable() from exc

    logger.info('Exported %s appointment(s) for %s %s', len(appointments), viewer.role, viewer.id)
    return calendar_response(content, export_filename(today=today))


@router.get('/week.ics')
def export_week_appointments(
    week: int | None = Query(default=None, ge=1, le=53),
    year: int | None = Query(default=None, ge=1970),
    viewer: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    current_week_number, current_year = current_week()
    week_number = week or current_week_number
    week_year = year or current_year

    try:
        date.fromisocalendar(week_year, week_number, 1)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Year {week_year} has no ISO week {week_number}.',
        ) from exc

    try:
        appointments = load_confirmed_appointments(db, viewer, week_number, week_year)
        content = render_export(db, viewer, appointments)
    except SQLAlchemyError as exc:
        logger.exception('Could not export week %s/%s for %s', week_number, week_year, viewer.id)
        raise database_unavailable() from exc

    return calendar_response(content, export_filename(week_number=week_number, year=week_year))

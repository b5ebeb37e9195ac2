import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from office_hours.auth.dependencies import get_current_profile, require_professor, require_student
from office_hours.database import get_db
from office_hours.models.appointment import CANCELLED_STATUS, CONFIRMED_STATUS, Appointment
from office_hours.models.availability_slot import AvailabilitySlot, utc_now
from office_hours.models.profile import Profile
from office_hours.notifications.dispatcher import notify_booking_committed
from office_hours.notifications.messages import BookingDetails
from office_hours.routes.common import current_week, database_unavailable, ensure_database_ready, profiles_by_id
from office_hours.routes.profile_routes import ParticipantResponse
from office_hours.scheduling.partition import partition_appointments, sort_for_display, split_by_status
from office_hours.scheduling.weekdays import normalize_modality

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600
SLOT_TAKEN_DETAIL = 'This slot is already booked for this week.'


def normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    slot_id: int
    modality: str
    notes: str | None = None

    @field_validator('modality')
    @classmethod
    def validate_modality(cls, value: str) -> str:
        return normalize_modality(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return normalize_notes(value)


class UpdateNotesRequest(BaseModel):
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return normalize_notes(value)


class AppointmentResponse(BaseModel):
    id: int
    slot_id: int
    student_id: str
    professor_id: str
    day: str
    start_time: str
    duration_minutes: int
    modality: str
    location: str
    status: str
    notes: str | None = None
    week_number: int
    year: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    student: ParticipantResponse | None = None
    professor: ParticipantResponse | None = None


class NotificationStatusResponse(BaseModel):
    status: str
    detail: str | None = None


class BookingResponse(BaseModel):
    appointment: AppointmentResponse
    notification: NotificationStatusResponse


class StatusGroupResponse(BaseModel):
    active: list[AppointmentResponse]
    cancelled: list[AppointmentResponse]


class StudentAppointmentsResponse(BaseModel):
    week_number: int
    year: int
    upcoming: StatusGroupResponse
    history: StatusGroupResponse


class ProfessorAppointmentsResponse(BaseModel):
    week_number: int
    year: int
    appointments: StatusGroupResponse


def to_appointment_response(appointment: Appointment, profiles: dict[str, Profile]) -> AppointmentResponse:
    student = profiles.get(appointment.student_id)
    professor = profiles.get(appointment.professor_id)
    return AppointmentResponse(
        id=appointment.id,
        slot_id=appointment.slot_id,
        student_id=appointment.student_id,
        professor_id=appointment.professor_id,
        day=appointment.day,
        start_time=appointment.start_time,
        duration_minutes=appointment.duration_minutes,
        modality=appointment.modality,
        location=appointment.location or '',
        status=appointment.status,
        notes=appointment.notes,
        week_number=appointment.week_number,
        year=appointment.year,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
        student=ParticipantResponse.model_validate(student) if student else None,
        professor=ParticipantResponse.model_validate(professor) if professor else None,
    )


def to_status_group(appointments: list[Appointment], profiles: dict[str, Profile]) -> StatusGroupResponse:
    groups = split_by_status(appointments)
    return StatusGroupResponse(
        active=[to_appointment_response(appointment, profiles) for appointment in groups.active],
        cancelled=[to_appointment_response(appointment, profiles) for appointment in groups.cancelled],
    )


def get_appointment_or_404(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')
    return appointment


def booking_details(appointment: Appointment, student: Profile, professor: Profile | None) -> BookingDetails:
    return BookingDetails(
        student_email=student.email,
        professor_email=professor.email if professor else '',
        student_name=student.username,
        professor_name=professor.username if professor else None,
        day=appointment.day,
        start_time=appointment.start_time,
        duration_minutes=appointment.duration_minutes,
        modality=appointment.modality,
        location=appointment.location or '',
    )


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: CreateAppointmentRequest,
    student: Profile = Depends(require_student),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    week_number, year = current_week()

    try:
        slot = db.query(AvailabilitySlot).filter(AvailabilitySlot.id == data.slot_id).first()
        if slot is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Slot not found.')

        if data.modality not in (slot.modalities or []):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='This slot is not offered in the selected modality.',
            )

        # The partial unique index on (slot_id, week_number, year) decides
        # who wins a concurrent booking; no availability pre-check here.
        appointment = Appointment(
            slot_id=slot.id,
            student_id=student.id,
            professor_id=slot.professor_id,
            day=slot.day,
            start_time=slot.start_time,
            duration_minutes=slot.duration_minutes,
            modality=data.modality,
            location=slot.location,
            status=CONFIRMED_STATUS,
            notes=data.notes,
            week_number=week_number,
            year=year,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        professor = db.query(Profile).filter(Profile.id == appointment.professor_id).first()
    except IntegrityError as exc:
        db.rollback()
        logger.warning('Slot %s already booked for week %s/%s', data.slot_id, week_number, year)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SLOT_TAKEN_DETAIL) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Could not book slot %s', data.slot_id)
        raise database_unavailable() from exc

    logger.info(
        'Student %s booked slot %s for week %s/%s (appointment %s)',
        student.id,
        slot.id,
        week_number,
        year,
        appointment.id,
    )

    outcome = notify_booking_committed(booking_details(appointment, student, professor))

    profiles = {student.id: student}
    if professor is not None:
        profiles[professor.id] = professor
    return BookingResponse(
        appointment=to_appointment_response(appointment, profiles),
        notification=NotificationStatusResponse(status=outcome.status, detail=outcome.detail),
    )


@router.get('/mine', response_model=StudentAppointmentsResponse)
def list_my_appointments(
    student: Profile = Depends(require_student),
    db: Session = Depends(get_db),
):
    week_number, year = current_week()

    try:
        appointments = db.query(Appointment).filter(Appointment.student_id == student.id).all()
        profiles = profiles_by_id(db, [appointment.professor_id for appointment in appointments])
    except SQLAlchemyError as exc:
        logger.exception('Could not load appointments for student %s', student.id)
        raise database_unavailable() from exc

    partition = partition_appointments(appointments, week_number, year)
    return StudentAppointmentsResponse(
        week_number=week_number,
        year=year,
        upcoming=to_status_group(partition.upcoming, profiles),
        history=to_status_group(partition.history, profiles),
    )


@router.get('/professor', response_model=ProfessorAppointmentsResponse)
def list_professor_appointments(
    professor: Profile = Depends(require_professor),
    db: Session = Depends(get_db),
):
    week_number, year = current_week()

    try:
        appointments = db.query(Appointment).filter(
            Appointment.professor_id == professor.id,
            Appointment.week_number == week_number,
            Appointment.year == year,
        ).all()
        profiles = profiles_by_id(db, [appointment.student_id for appointment in appointments])
    except SQLAlchemyError as exc:
        logger.exception('Could not load appointments for professor %s', professor.id)
        raise database_unavailable() from exc

    return ProfessorAppointmentsResponse(
        week_number=week_number,
        year=year,
        appointments=to_status_group(sort_for_display(appointments), profiles),
    )


@router.patch('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    try:
        appointment = get_appointment_or_404(db, appointment_id)

        if profile.id not in (appointment.student_id, appointment.professor_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the student or professor of this appointment can cancel it.',
            )

        if appointment.status == CANCELLED_STATUS:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This appointment is already cancelled.',
            )

        appointment.status = CANCELLED_STATUS
        appointment.updated_at = utc_now()
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Could not cancel appointment %s', appointment_id)
        raise database_unavailable() from exc

    logger.info('Appointment %s cancelled by %s %s', appointment.id, profile.role, profile.id)
    return to_appointment_response(appointment, {})


@router.patch('/{appointment_id}/notes', response_model=AppointmentResponse)
def update_appointment_notes(
    appointment_id: int,
    data: UpdateNotesRequest,
    student: Profile = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        appointment = get_appointment_or_404(db, appointment_id)

        if appointment.student_id != student.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the student who booked this appointment can edit its notes.',
            )

        appointment.notes = data.notes
        appointment.updated_at = utc_now()
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Could not update notes of appointment %s', appointment_id)
        raise database_unavailable() from exc

    return to_appointment_response(appointment, {})

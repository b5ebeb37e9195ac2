import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from office_hours.auth.dependencies import get_optional_profile, require_professor
from office_hours.database import get_db
from office_hours.models.appointment import CONFIRMED_STATUS, Appointment
from office_hours.models.availability_slot import AvailabilitySlot
from office_hours.models.profile import PROFESSOR_ROLE, Profile
from office_hours.routes.common import current_week, database_unavailable, local_today, profiles_by_id
from office_hours.routes.profile_routes import ParticipantResponse
from office_hours.scheduling.day_resolver import ResolutionPolicy, resolve_day_time
from office_hours.scheduling.reconciliation import ReconciledSlot, reconcile_slots
from office_hours.scheduling.weekdays import (
    MODALITIES,
    WEEKDAY_NUMBERS,
    normalize_clock_time,
    normalize_modality,
    normalize_weekday,
)

router = APIRouter(tags=['slots'])

logger = logging.getLogger(__name__)

DEFAULT_SLOT_DAY = 'Monday'
DEFAULT_SLOT_START_TIME = '09:00'
DEFAULT_SLOT_DURATION_MINUTES = 45
DEFAULT_SLOT_LOCATION = 'Office 301, Building A'
MIN_SLOT_DURATION_MINUTES = 5
MAX_SLOT_DURATION_MINUTES = 240


def validate_modalities(value: list[str]) -> list[str]:
    normalized: list[str] = []
    for modality in value:
        candidate = normalize_modality(modality)
        if candidate not in normalized:
            normalized.append(candidate)
    if not normalized:
        raise ValueError('At least one modality is required.')
    return normalized


class SlotRequest(BaseModel):
    day: str = DEFAULT_SLOT_DAY
    start_time: str = DEFAULT_SLOT_START_TIME
    duration_minutes: int = Field(
        default=DEFAULT_SLOT_DURATION_MINUTES,
        ge=MIN_SLOT_DURATION_MINUTES,
        le=MAX_SLOT_DURATION_MINUTES,
    )
    modalities: list[str] = Field(default_factory=lambda: list(MODALITIES))
    location: str = DEFAULT_SLOT_LOCATION

    @field_validator('day')
    @classmethod
    def validate_day(cls, value: str) -> str:
        return normalize_weekday(value)

    @field_validator('start_time')
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        return normalize_clock_time(value)

    @field_validator('modalities')
    @classmethod
    def validate_slot_modalities(cls, value: list[str]) -> list[str]:
        return validate_modalities(value)

    @field_validator('location')
    @classmethod
    def validate_location(cls, value: str) -> str:
        return value.strip()


class SlotResponse(BaseModel):
    id: int
    professor_id: str
    day: str
    start_time: str
    duration_minutes: int
    modalities: list[str]
    location: str

    class Config:
        from_attributes = True


class BrowseSlotResponse(SlotResponse):
    is_booked: bool
    is_unavailable: bool
    booked_by_others: bool
    next_occurrence: datetime


class ProfessorSlotsResponse(BaseModel):
    professor: ParticipantResponse
    slots: list[BrowseSlotResponse]


class BrowseSlotsResponse(BaseModel):
    week_number: int
    year: int
    professors: list[ProfessorSlotsResponse]


def slot_sort_key(slot: AvailabilitySlot) -> tuple:
    return (WEEKDAY_NUMBERS.get(slot.day, len(WEEKDAY_NUMBERS) + 1), slot.start_time)


def get_owned_slot(db: Session, slot_id: int, professor: Profile) -> AvailabilitySlot:
    slot = db.query(AvailabilitySlot).filter(AvailabilitySlot.id == slot_id).first()
    if slot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Slot not found.')
    if slot.professor_id != professor.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only the professor who owns this slot can change it.',
        )
    return slot


def get_week_appointments(db: Session, slot_ids: list[int], week_number: int, year: int) -> list[Appointment]:
    if not slot_ids:
        return []
    return db.query(Appointment).filter(
        Appointment.slot_id.in_(slot_ids),
        Appointment.week_number == week_number,
        Appointment.year == year,
        Appointment.status == CONFIRMED_STATUS,
    ).all()


def matches_filters(
    reconciled: ReconciledSlot,
    professor: Profile | None,
    professor_search: str | None,
    modality: str | None,
) -> bool:
    if professor is None:
        return False
    if professor_search and professor_search.lower() not in professor.username.lower():
        return False
    if modality and modality not in (reconciled.slot.modalities or []):
        return False
    return True


@router.get('/mine', response_model=list[SlotResponse])
def list_my_slots(
    professor: Profile = Depends(require_professor),
    db: Session = Depends(get_db),
):
    try:
        slots = db.query(AvailabilitySlot).filter(AvailabilitySlot.professor_id == professor.id).all()
    except SQLAlchemyError as exc:
        logger.exception('Could not load slots for professor %s', professor.id)
        raise database_unavailable() from exc

    return sorted(slots, key=slot_sort_key)


@router.post('', response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
def create_slot(
    data: SlotRequest,
    professor: Profile = Depends(require_professor),
    db: Session = Depends(get_db),
):
    try:
        slot = AvailabilitySlot(
            professor_id=professor.id,
            day=data.day,
            start_time=data.start_time,
            duration_minutes=data.duration_minutes,
            modalities=data.modalities,
            location=data.location,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Could not create slot for professor %s', professor.id)
        raise database_unavailable() from exc

    return slot


@router.put('/{slot_id}', response_model=SlotResponse)
def update_slot(
    slot_id: int,
    data: SlotRequest,
    professor: Profile = Depends(require_professor),
    db: Session = Depends(get_db),
):
    try:
        slot = get_owned_slot(db, slot_id, professor)
        slot.day = data.day
        slot.start_time = data.start_time
        slot.duration_minutes = data.duration_minutes
        slot.modalities = data.modalities
        slot.location = data.location
        db.commit()
        db.refresh(slot)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Could not update slot %s', slot_id)
        raise database_unavailable() from exc

    return slot


@router.delete('/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(
    slot_id: int,
    professor: Profile = Depends(require_professor),
    db: Session = Depends(get_db),
):
    try:
        slot = get_owned_slot(db, slot_id, professor)
        db.delete(slot)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Could not delete slot %s', slot_id)
        raise database_unavailable() from exc


@router.get('/browse', response_model=BrowseSlotsResponse)
def browse_slots(
    professor_name: str | None = Query(default=None, alias='professor'),
    day: str | None = Query(default=None),
    modality: str | None = Query(default=None),
    viewer: Profile | None = Depends(get_optional_profile),
    db: Session = Depends(get_db),
):
    try:
        normalized_day = normalize_weekday(day) if day else None
        normalized_modality = normalize_modality(modality) if modality else None
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    week_number, year = current_week()
    today = local_today()

    try:
        query = db.query(AvailabilitySlot)
        if normalized_day:
            query = query.filter(AvailabilitySlot.day == normalized_day)
        slots = sorted(query.all(), key=slot_sort_key)

        professors = profiles_by_id(db, [slot.professor_id for slot in slots])
        appointments = get_week_appointments(db, [slot.id for slot in slots], week_number, year)
    except SQLAlchemyError as exc:
        logger.exception('Could not load slots for browsing')
        raise database_unavailable() from exc

    # Recomputed on every request; another student may have booked meanwhile.
    reconciled_slots = reconcile_slots(slots, appointments, viewer.id if viewer else None)

    grouped: dict[str, ProfessorSlotsResponse] = {}
    for reconciled in reconciled_slots:
        slot = reconciled.slot
        owner = professors.get(slot.professor_id)
        if owner is None or owner.role != PROFESSOR_ROLE:
            continue
        if not matches_filters(reconciled, owner, professor_name, normalized_modality):
            continue

        entry = grouped.setdefault(
            owner.id,
            ProfessorSlotsResponse(professor=ParticipantResponse.model_validate(owner), slots=[]),
        )
        entry.slots.append(
            BrowseSlotResponse(
                id=slot.id,
                professor_id=slot.professor_id,
                day=slot.day,
                start_time=slot.start_time,
                duration_minutes=slot.duration_minutes,
                modalities=slot.modalities or [],
                location=slot.location or '',
                is_booked=reconciled.is_booked,
                is_unavailable=reconciled.is_unavailable,
                booked_by_others=reconciled.booked_by_others,
                next_occurrence=resolve_day_time(
                    slot.day,
                    slot.start_time,
                    ResolutionPolicy.NEXT_OCCURRENCE,
                    today=today,
                ),
            )
        )

    return BrowseSlotsResponse(week_number=week_number, year=year, professors=list(grouped.values()))

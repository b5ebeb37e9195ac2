from datetime import date, datetime
from zoneinfo import ZoneInfo

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from office_hours.core import config
from office_hours.database import ensure_appointment_schema
from office_hours.models.profile import Profile
from office_hours.scheduling.iso_week import current_iso_week

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Please try again in a moment.'


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def app_timezone() -> ZoneInfo:
    return ZoneInfo(config.APP_TIMEZONE)


def local_now() -> datetime:
    return datetime.now(app_timezone())


def local_today() -> date:
    return local_now().date()


def current_week() -> tuple[int, int]:
    return current_iso_week(local_today())


def profiles_by_id(db: Session, profile_ids) -> dict[str, Profile]:
    ids = {profile_id for profile_id in profile_ids if profile_id}
    if not ids:
        return {}
    profiles = db.query(Profile).filter(Profile.id.in_(ids)).all()
    return {profile.id: profile for profile in profiles}

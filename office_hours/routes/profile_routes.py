import logging
import re

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from office_hours.auth.dependencies import get_current_profile, get_token_subject
from office_hours.database import get_db
from office_hours.models.profile import PROFESSOR_ROLE, ROLES, STUDENT_ROLE, Profile
from office_hours.routes.common import database_unavailable

router = APIRouter(tags=['profiles'])

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_]{3,}$')
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
DASHBOARDS = {
    STUDENT_ROLE: '/dashboard/student',
    PROFESSOR_ROLE: '/dashboard/professor',
}


def normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError('Email is required.')
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError('Email is not valid.')
    return normalized


class CreateProfileRequest(BaseModel):
    username: str
    email: str
    role: str

    @field_validator('username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        normalized = value.strip()
        if not USERNAME_PATTERN.match(normalized):
            raise ValueError('Username must be at least 3 characters of letters, numbers or underscores.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in ROLES:
            raise ValueError('Role must be student or professor.')
        return normalized


class ProfileResponse(BaseModel):
    id: str
    username: str
    email: str
    role: str

    class Config:
        from_attributes = True


class ParticipantResponse(BaseModel):
    id: str
    username: str
    email: str

    class Config:
        from_attributes = True


class DashboardResponse(BaseModel):
    role: str
    dashboard: str


@router.post('', response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def create_profile(
    data: CreateProfileRequest,
    subject: str = Depends(get_token_subject),
    db: Session = Depends(get_db),
):
    try:
        if db.query(Profile).filter(Profile.id == subject).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='A profile already exists for this account.',
            )

        profile = Profile(id=subject, username=data.username, email=data.email, role=data.role)
        db.add(profile)
        db.commit()
        db.refresh(profile)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This email is already registered.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Could not create profile %s', subject)
        raise database_unavailable() from exc

    logger.info('Registered %s profile %s', profile.role, profile.id)
    return profile


@router.get('/me', response_model=ProfileResponse)
def read_my_profile(profile: Profile = Depends(get_current_profile)):
    return profile


@router.get('/me/dashboard', response_model=DashboardResponse)
def read_my_dashboard(profile: Profile = Depends(get_current_profile)):
    return DashboardResponse(role=profile.role, dashboard=DASHBOARDS[profile.role])

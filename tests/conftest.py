import os

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key-long-enough-for-hs256-signing')

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from office_hours.database import Base  # noqa: E402
from office_hours.models.appointment import Appointment  # noqa: E402
from office_hours.models.availability_slot import AvailabilitySlot  # noqa: E402
from office_hours.models.profile import Profile  # noqa: E402


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[Profile.__table__, AvailabilitySlot.__table__, Appointment.__table__])

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=[Appointment.__table__, AvailabilitySlot.__table__, Profile.__table__])


@pytest.fixture
def make_profile(db_session):
    def _make_profile(profile_id: str, role: str, username: str | None = None) -> Profile:
        username = username or profile_id
        profile = Profile(id=profile_id, username=username, email=f'{username}@uni.edu', role=role)
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _make_profile


@pytest.fixture
def make_slot(db_session):
    def _make_slot(professor: Profile, **overrides) -> AvailabilitySlot:
        values = {
            'day': 'Monday',
            'start_time': '09:00',
            'duration_minutes': 45,
            'modalities': ['in-person', 'online'],
            'location': 'Office 301, Building A',
        }
        values.update(overrides)
        slot = AvailabilitySlot(professor_id=professor.id, **values)
        db_session.add(slot)
        db_session.commit()
        db_session.refresh(slot)
        return slot

    return _make_slot

"""Profile model definitions."""

from sqlalchemy import Column, String
from office_hours.database import Base


STUDENT_ROLE = "student"
PROFESSOR_ROLE = "professor"
ROLES = (STUDENT_ROLE, PROFESSOR_ROLE)


class Profile(Base):
    """Represents a registered user; the id is issued by the auth provider."""
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    username = Column(String, nullable=False, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, nullable=False)  # student/professor

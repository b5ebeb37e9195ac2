import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from office_hours.auth import jwt_handler
from office_hours.database import get_db
from office_hours.models.profile import ROLES, Profile

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

REAUTHENTICATE_DETAIL = "Profile not found. Sign in again."


def get_token_subject(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Invalid token subject")
    return subject


def load_profile(db: Session, profile_id: str) -> Profile | None:
    try:
        return db.query(Profile).filter(Profile.id == profile_id).first()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable. Please try again.",
        ) from exc


def get_current_profile(
    subject: str = Depends(get_token_subject),
    db: Session = Depends(get_db),
) -> Profile:
    profile = load_profile(db, subject)
    # A session without a resolvable role must go back through sign-in.
    if profile is None or profile.role not in ROLES:
        raise HTTPException(status_code=401, detail=REAUTHENTICATE_DETAIL)
    return profile


def get_optional_profile(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_security),
    db: Session = Depends(get_db),
) -> Profile | None:
    if credentials is None:
        return None
    subject = get_token_subject(credentials)
    profile = load_profile(db, subject)
    if profile is None or profile.role not in ROLES:
        raise HTTPException(status_code=401, detail=REAUTHENTICATE_DETAIL)
    return profile


def require_role(role: str):
    """Dependency factory: only profiles holding ``role`` get through."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")

    def _dependency(profile: Profile = Depends(get_current_profile)) -> Profile:
        if profile.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only {role}s can access this resource.",
            )
        return profile

    return _dependency


require_student = require_role("student")
require_professor = require_role("professor")

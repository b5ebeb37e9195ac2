import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, field_validator

from office_hours.notifications.dispatcher import dispatch_booking_notifications
from office_hours.notifications.errors import MailConfigurationError, NotificationDeliveryError
from office_hours.notifications.messages import BookingDetails
from office_hours.routes.profile_routes import EMAIL_PATTERN

router = APIRouter(tags=['notifications'])

logger = logging.getLogger(__name__)


class BookingConfirmationRequest(BaseModel):
    studentEmail: str | None = None
    professorEmail: str | None = None
    studentName: str | None = None
    professorName: str | None = None
    day: str = ''
    startTime: str = ''
    duration: int = 0
    modality: str = ''
    location: str = ''

    @field_validator('studentEmail', 'professorEmail')
    @classmethod
    def strip_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()


class BookingConfirmationResponse(BaseModel):
    ok: bool


def validate_recipients(data: BookingConfirmationRequest) -> None:
    if not data.studentEmail or not data.professorEmail:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Both the student and the professor email are required.',
        )
    for address in (data.studentEmail, data.professorEmail):
        if not EMAIL_PATTERN.match(address):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'Invalid email address: {address}',
            )


@router.post('/booking-confirmation', response_model=BookingConfirmationResponse)
def send_booking_confirmation(data: BookingConfirmationRequest):
    validate_recipients(data)

    details = BookingDetails(
        student_email=data.studentEmail,
        professor_email=data.professorEmail,
        student_name=data.studentName,
        professor_name=data.professorName,
        day=data.day,
        start_time=data.startTime,
        duration_minutes=data.duration,
        modality=data.modality,
        location=data.location,
    )

    try:
        dispatch_booking_notifications(details)
    except MailConfigurationError as exc:
        logger.error('Mail relay is not configured: %s', ', '.join(exc.missing_settings))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Mail configuration incomplete.',
        ) from exc
    except NotificationDeliveryError as exc:
        logger.exception('Booking confirmation emails could not be sent')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={'error': 'Error sending emails', 'details': str(exc)},
        ) from exc

    return BookingConfirmationResponse(ok=True)

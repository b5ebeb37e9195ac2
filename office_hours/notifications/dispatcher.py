import logging
from dataclasses import dataclass
from typing import Callable

from office_hours.notifications.errors import MailConfigurationError, NotificationError
from office_hours.notifications.mailer import OAuth2Mailer
from office_hours.notifications.messages import (
    PROFESSOR_SUBJECT,
    STUDENT_SUBJECT,
    BookingDetails,
    build_message,
    professor_body,
    student_body,
)

logger = logging.getLogger(__name__)

NOTIFICATION_SENT = "sent"
NOTIFICATION_FAILED = "failed"
NOTIFICATION_NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class NotificationOutcome:
    status: str
    detail: str | None = None

    @property
    def sent(self) -> bool:
        return self.status == NOTIFICATION_SENT


def dispatch_booking_notifications(details: BookingDetails, mailer: OAuth2Mailer | None = None) -> None:
    """Email the student and the professor about a confirmed booking.

    Raises ``MailConfigurationError`` when the relay is not configured and
    ``NotificationDeliveryError`` when sending fails.
    """
    mailer = mailer or OAuth2Mailer.from_config()
    sender = mailer.from_header
    mailer.send(
        [
            build_message(sender, details.student_email, STUDENT_SUBJECT, student_body(details)),
            build_message(sender, details.professor_email, PROFESSOR_SUBJECT, professor_body(details)),
        ]
    )


MailerFactory = Callable[[], OAuth2Mailer]


def notify_booking_committed(
    details: BookingDetails,
    mailer_factory: MailerFactory = OAuth2Mailer.from_config,
) -> NotificationOutcome:
    """Post-commit hook for a new appointment.

    Never raises: the appointment is already stored, so a mail failure is
    reported back to the caller instead of undoing the booking.
    """
    try:
        dispatch_booking_notifications(details, mailer_factory())
    except MailConfigurationError as exc:
        logger.warning('Booking notification skipped: %s', exc)
        return NotificationOutcome(status=NOTIFICATION_NOT_CONFIGURED, detail=str(exc))
    except NotificationError as exc:
        logger.exception('Booking notification delivery failed')
        return NotificationOutcome(status=NOTIFICATION_FAILED, detail=str(exc))
    return NotificationOutcome(status=NOTIFICATION_SENT)

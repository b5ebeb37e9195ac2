"""Plain-text bodies for booking confirmation emails."""

from dataclasses import dataclass
from email.mime.text import MIMEText


STUDENT_SUBJECT = "Office hours booking confirmed"
PROFESSOR_SUBJECT = "New office hours booking"


@dataclass(frozen=True)
class BookingDetails:
    student_email: str
    professor_email: str
    day: str
    start_time: str
    duration_minutes: int
    modality: str
    location: str
    student_name: str | None = None
    professor_name: str | None = None


def booking_summary(details: BookingDetails) -> str:
    return "\n".join(
        [
            f"Day: {details.day}",
            f"Time: {details.start_time}",
            f"Duration: {details.duration_minutes} minutes",
            f"Modality: {details.modality}",
            f"Location / link: {details.location}",
        ]
    )


def student_body(details: BookingDetails) -> str:
    return (
        f"Hello {details.student_name or 'student'},\n\n"
        f"Your office hours booking with {details.professor_name or 'your professor'} is confirmed.\n\n"
        f"{booking_summary(details)}\n\n"
        "If you cannot attend, please cancel the booking in the system."
    )


def professor_body(details: BookingDetails) -> str:
    return (
        f"Hello {details.professor_name or 'professor'},\n\n"
        f"{details.student_name or 'A student'} has booked office hours with you.\n\n"
        f"{booking_summary(details)}\n\n"
        "You can review and manage it from your professor dashboard."
    )


def build_message(sender: str, recipient: str, subject: str, body: str) -> MIMEText:
    message = MIMEText(body, "plain", "utf-8")
    message["Subject"] = subject
    message["From"] = sender
    message["To"] = recipient
    return message

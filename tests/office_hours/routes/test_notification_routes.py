import pytest
from fastapi import HTTPException

from office_hours.core import config
from office_hours.notifications.errors import NotificationDeliveryError
from office_hours.routes import notification_routes
from office_hours.routes.notification_routes import BookingConfirmationRequest, send_booking_confirmation


def _request(**overrides) -> BookingConfirmationRequest:
    values = {
        'studentEmail': 'sam@uni.edu',
        'professorEmail': 'ada@uni.edu',
        'studentName': 'sam',
        'professorName': 'ada',
        'day': 'Monday',
        'startTime': '09:00',
        'duration': 45,
        'modality': 'in-person',
        'location': 'Office 301, Building A',
    }
    values.update(overrides)
    return BookingConfirmationRequest(**values)


@pytest.mark.parametrize('overrides', [{'studentEmail': None}, {'professorEmail': '  '}])
def test_missing_recipient_is_rejected(overrides: dict) -> None:
    with pytest.raises(HTTPException) as exception_info:
        send_booking_confirmation(_request(**overrides))

    assert exception_info.value.status_code == 400


def test_invalid_recipient_is_rejected() -> None:
    with pytest.raises(HTTPException) as exception_info:
        send_booking_confirmation(_request(studentEmail='sam-at-uni'))

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Invalid email address: sam-at-uni'


def test_missing_mail_configuration_returns_500(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'MAIL_SENDER_ADDRESS', '')

    with pytest.raises(HTTPException) as exception_info:
        send_booking_confirmation(_request())

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == 'Mail configuration incomplete.'


def test_delivery_failure_returns_500_with_details(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_dispatch(details):
        raise NotificationDeliveryError('relay down')

    monkeypatch.setattr(notification_routes, 'dispatch_booking_notifications', failing_dispatch)

    with pytest.raises(HTTPException) as exception_info:
        send_booking_confirmation(_request())

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == {'error': 'Error sending emails', 'details': 'relay down'}


def test_successful_dispatch_returns_ok(monkeypatch: pytest.MonkeyPatch) -> None:
    dispatched = []
    monkeypatch.setattr(notification_routes, 'dispatch_booking_notifications', dispatched.append)

    response = send_booking_confirmation(_request())

    assert response.ok is True
    assert dispatched[0].student_email == 'sam@uni.edu'
    assert dispatched[0].duration_minutes == 45

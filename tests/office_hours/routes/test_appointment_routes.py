import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from office_hours.models.appointment import CANCELLED_STATUS, CONFIRMED_STATUS, Appointment
from office_hours.models.profile import PROFESSOR_ROLE, STUDENT_ROLE
from office_hours.notifications.dispatcher import NOTIFICATION_FAILED, NOTIFICATION_SENT, NotificationOutcome
from office_hours.routes import appointment_routes
from office_hours.routes.appointment_routes import (
    MAX_APPOINTMENT_NOTES_LENGTH,
    SLOT_TAKEN_DETAIL,
    CreateAppointmentRequest,
    UpdateNotesRequest,
    book_appointment,
    cancel_appointment,
    list_my_appointments,
    list_professor_appointments,
    update_appointment_notes,
)


@pytest.fixture(autouse=True)
def fixed_week(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(appointment_routes, 'current_week', lambda: (42, 2026))
    monkeypatch.setattr(appointment_routes, 'ensure_database_ready', lambda: None)


@pytest.fixture
def sent_notifications(monkeypatch: pytest.MonkeyPatch) -> list:
    sent = []

    def fake_notify(details):
        sent.append(details)
        return NotificationOutcome(status=NOTIFICATION_SENT)

    monkeypatch.setattr(appointment_routes, 'notify_booking_committed', fake_notify)
    return sent


@pytest.fixture
def people(make_profile):
    return {
        'professor': make_profile('prof-1', PROFESSOR_ROLE, 'ada'),
        'student': make_profile('student-1', STUDENT_ROLE, 'sam'),
        'other_student': make_profile('student-2', STUDENT_ROLE, 'kim'),
    }


def _add_appointment(db_session, slot, student, week_number, year, status=CONFIRMED_STATUS, **overrides) -> Appointment:
    values = {
        'slot_id': slot.id,
        'student_id': student.id,
        'professor_id': slot.professor_id,
        'day': slot.day,
        'start_time': slot.start_time,
        'duration_minutes': slot.duration_minutes,
        'modality': 'online',
        'location': slot.location,
        'status': status,
        'week_number': week_number,
        'year': year,
    }
    values.update(overrides)
    appointment = Appointment(**values)
    db_session.add(appointment)
    db_session.commit()
    db_session.refresh(appointment)
    return appointment


def test_create_appointment_request_normalizes_fields() -> None:
    request = CreateAppointmentRequest(slot_id=1, modality=' Online ', notes='  Chapter 3  ')

    assert request.modality == 'online'
    assert request.notes == 'Chapter 3'


def test_create_appointment_request_turns_blank_notes_into_none() -> None:
    assert CreateAppointmentRequest(slot_id=1, modality='online', notes='   ').notes is None


def test_notes_longer_than_limit_are_rejected() -> None:
    with pytest.raises(ValidationError):
        UpdateNotesRequest(notes='x' * (MAX_APPOINTMENT_NOTES_LENGTH + 1))


def test_book_appointment_stores_slot_copy_for_current_week(db_session, people, make_slot, sent_notifications) -> None:
    slot = make_slot(people['professor'], day='Wednesday', start_time='14:30')

    response = book_appointment(
        CreateAppointmentRequest(slot_id=slot.id, modality='in-person', notes='Project questions'),
        student=people['student'],
        db=db_session,
    )

    appointment = response.appointment
    assert appointment.status == CONFIRMED_STATUS
    assert (appointment.week_number, appointment.year) == (42, 2026)
    assert (appointment.day, appointment.start_time) == ('Wednesday', '14:30')
    assert appointment.location == 'Office 301, Building A'
    assert appointment.professor.username == 'ada'
    assert appointment.student.email == 'sam@uni.edu'
    assert response.notification.status == NOTIFICATION_SENT

    assert len(sent_notifications) == 1
    assert sent_notifications[0].student_email == 'sam@uni.edu'
    assert sent_notifications[0].professor_email == 'ada@uni.edu'


def test_book_appointment_rejects_second_confirmed_booking_in_same_week(
    db_session, people, make_slot, sent_notifications
) -> None:
    slot = make_slot(people['professor'])
    book_appointment(
        CreateAppointmentRequest(slot_id=slot.id, modality='online'),
        student=people['student'],
        db=db_session,
    )

    with pytest.raises(HTTPException) as exception_info:
        book_appointment(
            CreateAppointmentRequest(slot_id=slot.id, modality='online'),
            student=people['other_student'],
            db=db_session,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == SLOT_TAKEN_DETAIL
    assert db_session.query(Appointment).count() == 1
    assert len(sent_notifications) == 1


def test_cancelled_booking_frees_the_slot_for_the_week(db_session, people, make_slot, sent_notifications) -> None:
    slot = make_slot(people['professor'])
    first = book_appointment(
        CreateAppointmentRequest(slot_id=slot.id, modality='online'),
        student=people['student'],
        db=db_session,
    )
    cancel_appointment(first.appointment.id, profile=people['student'], db=db_session)

    second = book_appointment(
        CreateAppointmentRequest(slot_id=slot.id, modality='online'),
        student=people['other_student'],
        db=db_session,
    )

    assert second.appointment.student_id == 'student-2'
    statuses = sorted(appointment.status for appointment in db_session.query(Appointment).all())
    assert statuses == [CANCELLED_STATUS, CONFIRMED_STATUS]


def test_same_slot_can_be_booked_in_a_different_week(db_session, people, make_slot, sent_notifications) -> None:
    slot = make_slot(people['professor'])
    _add_appointment(db_session, slot, people['other_student'], 41, 2026)

    response = book_appointment(
        CreateAppointmentRequest(slot_id=slot.id, modality='online'),
        student=people['student'],
        db=db_session,
    )

    assert response.appointment.week_number == 42


def test_book_appointment_returns_404_for_missing_slot(db_session, people, sent_notifications) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_appointment(
            CreateAppointmentRequest(slot_id=999, modality='online'),
            student=people['student'],
            db=db_session,
        )

    assert exception_info.value.status_code == 404


def test_book_appointment_rejects_modality_the_slot_does_not_offer(
    db_session, people, make_slot, sent_notifications
) -> None:
    slot = make_slot(people['professor'], modalities=['in-person'])

    with pytest.raises(HTTPException) as exception_info:
        book_appointment(
            CreateAppointmentRequest(slot_id=slot.id, modality='online'),
            student=people['student'],
            db=db_session,
        )

    assert exception_info.value.status_code == 400
    assert db_session.query(Appointment).count() == 0
    assert sent_notifications == []


def test_notification_failure_keeps_the_booking(db_session, people, make_slot, monkeypatch) -> None:
    monkeypatch.setattr(
        appointment_routes,
        'notify_booking_committed',
        lambda details: NotificationOutcome(status=NOTIFICATION_FAILED, detail='relay down'),
    )
    slot = make_slot(people['professor'])

    response = book_appointment(
        CreateAppointmentRequest(slot_id=slot.id, modality='online'),
        student=people['student'],
        db=db_session,
    )

    assert response.notification.status == NOTIFICATION_FAILED
    assert response.notification.detail == 'relay down'
    stored = db_session.query(Appointment).one()
    assert stored.status == CONFIRMED_STATUS


def test_list_my_appointments_partitions_by_week(db_session, people, make_slot) -> None:
    slot = make_slot(people['professor'])
    other_slot = make_slot(people['professor'], day='Friday')
    student = people['student']
    current = _add_appointment(db_session, slot, student, 42, 2026)
    cancelled = _add_appointment(db_session, other_slot, student, 42, 2026, status=CANCELLED_STATUS)
    past = _add_appointment(db_session, slot, student, 40, 2026)
    last_year = _add_appointment(db_session, slot, student, 50, 2025)
    _add_appointment(db_session, slot, people['other_student'], 43, 2026)

    response = list_my_appointments(student=student, db=db_session)

    assert (response.week_number, response.year) == (42, 2026)
    assert [item.id for item in response.upcoming.active] == [current.id]
    assert [item.id for item in response.upcoming.cancelled] == [cancelled.id]
    assert [item.id for item in response.history.active] == [past.id, last_year.id]
    assert response.history.cancelled == []
    assert response.upcoming.active[0].professor.username == 'ada'


def test_list_professor_appointments_returns_current_week_only(db_session, people, make_slot) -> None:
    professor = people['professor']
    monday = make_slot(professor, day='Monday', start_time='10:00')
    tuesday = make_slot(professor, day='Tuesday', start_time='09:00')
    later = _add_appointment(db_session, tuesday, people['student'], 42, 2026)
    earlier = _add_appointment(db_session, monday, people['other_student'], 42, 2026)
    _add_appointment(db_session, monday, people['student'], 41, 2026)

    response = list_professor_appointments(professor=professor, db=db_session)

    assert [item.id for item in response.appointments.active] == [earlier.id, later.id]
    assert response.appointments.active[0].student.username == 'kim'


def test_professor_can_cancel_their_appointment(db_session, people, make_slot) -> None:
    slot = make_slot(people['professor'])
    appointment = _add_appointment(db_session, slot, people['student'], 42, 2026)

    response = cancel_appointment(appointment.id, profile=people['professor'], db=db_session)

    assert response.status == CANCELLED_STATUS


def test_cancel_appointment_rejects_unrelated_profile(db_session, people, make_slot) -> None:
    slot = make_slot(people['professor'])
    appointment = _add_appointment(db_session, slot, people['student'], 42, 2026)

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment.id, profile=people['other_student'], db=db_session)

    assert exception_info.value.status_code == 403
    db_session.refresh(appointment)
    assert appointment.status == CONFIRMED_STATUS


def test_cancel_appointment_rejects_already_cancelled(db_session, people, make_slot) -> None:
    slot = make_slot(people['professor'])
    appointment = _add_appointment(db_session, slot, people['student'], 42, 2026, status=CANCELLED_STATUS)

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment.id, profile=people['student'], db=db_session)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This appointment is already cancelled.'


def test_cancel_appointment_returns_404_for_unknown_id(db_session, people) -> None:
    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(12345, profile=people['student'], db=db_session)

    assert exception_info.value.status_code == 404


def test_student_can_edit_and_clear_notes(db_session, people, make_slot) -> None:
    slot = make_slot(people['professor'])
    appointment = _add_appointment(db_session, slot, people['student'], 42, 2026)

    updated = update_appointment_notes(
        appointment.id,
        UpdateNotesRequest(notes=' Bring the draft '),
        student=people['student'],
        db=db_session,
    )
    assert updated.notes == 'Bring the draft'

    cleared = update_appointment_notes(
        appointment.id,
        UpdateNotesRequest(notes=''),
        student=people['student'],
        db=db_session,
    )
    assert cleared.notes is None


def test_notes_can_only_be_edited_by_the_booking_student(db_session, people, make_slot) -> None:
    slot = make_slot(people['professor'])
    appointment = _add_appointment(db_session, slot, people['student'], 42, 2026)

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_notes(
            appointment.id,
            UpdateNotesRequest(notes='Not mine'),
            student=people['other_student'],
            db=db_session,
        )

    assert exception_info.value.status_code == 403

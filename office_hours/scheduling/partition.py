"""Split a user's appointment history into the current/upcoming weeks and the past."""

from dataclasses import dataclass, field
from typing import Any, Iterable

from office_hours.models.appointment import CANCELLED_STATUS, CONFIRMED_STATUS
from office_hours.scheduling.weekdays import WEEKDAY_NUMBERS


@dataclass
class StatusGroups:
    active: list[Any] = field(default_factory=list)
    cancelled: list[Any] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.active) + len(self.cancelled)


@dataclass
class AppointmentPartition:
    upcoming: list[Any] = field(default_factory=list)
    history: list[Any] = field(default_factory=list)

    @property
    def upcoming_by_status(self) -> StatusGroups:
        return split_by_status(self.upcoming)

    @property
    def history_by_status(self) -> StatusGroups:
        return split_by_status(self.history)


def is_upcoming(appointment: Any, current_week: int, current_year: int) -> bool:
    if appointment.year != current_year:
        return appointment.year > current_year
    return appointment.week_number >= current_week


def display_sort_key(appointment: Any) -> tuple:
    # Newest week first, then chronological inside the week.
    return (
        -appointment.year,
        -appointment.week_number,
        WEEKDAY_NUMBERS.get(appointment.day, len(WEEKDAY_NUMBERS) + 1),
        appointment.start_time,
    )


def sort_for_display(appointments: Iterable[Any]) -> list[Any]:
    return sorted(appointments, key=display_sort_key)


def split_by_status(appointments: Iterable[Any]) -> StatusGroups:
    groups = StatusGroups()
    for appointment in appointments:
        if appointment.status == CANCELLED_STATUS:
            groups.cancelled.append(appointment)
        elif appointment.status == CONFIRMED_STATUS:
            groups.active.append(appointment)
    return groups


def partition_appointments(
    appointments: Iterable[Any],
    current_week: int,
    current_year: int,
) -> AppointmentPartition:
    partition = AppointmentPartition()
    for appointment in sort_for_display(appointments):
        if is_upcoming(appointment, current_week, current_year):
            partition.upcoming.append(appointment)
        else:
            partition.history.append(appointment)
    return partition

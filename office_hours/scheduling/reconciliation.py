"""Cross-reference weekly slots with the week's confirmed appointments."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable

from office_hours.models.appointment import CONFIRMED_STATUS


@dataclass(frozen=True)
class ReconciledSlot:
    slot: Any
    is_booked: bool
    is_unavailable: bool

    @property
    def booked_by_others(self) -> bool:
        return self.is_unavailable and not self.is_booked


def group_confirmed_by_slot(appointments: Iterable[Any]) -> dict[Any, list[Any]]:
    grouped: dict[Any, list[Any]] = defaultdict(list)
    for appointment in appointments:
        if appointment.status == CONFIRMED_STATUS:
            grouped[appointment.slot_id].append(appointment)
    return grouped


def reconcile_slots(
    slots: Iterable[Any],
    week_appointments: Iterable[Any],
    current_user_id: str | None = None,
) -> list[ReconciledSlot]:
    """Flag each slot as booked by the caller, booked by someone, or free.

    ``week_appointments`` must already be restricted to one ISO week. Any
    number of confirmed appointments on a slot marks it unavailable;
    anonymous callers (``current_user_id=None``) never see ``is_booked``.
    """
    by_slot = group_confirmed_by_slot(week_appointments)

    reconciled: list[ReconciledSlot] = []
    for slot in slots:
        slot_appointments = by_slot.get(slot.id, [])
        is_booked = current_user_id is not None and any(
            appointment.student_id == current_user_id for appointment in slot_appointments
        )
        reconciled.append(
            ReconciledSlot(
                slot=slot,
                is_booked=is_booked,
                is_unavailable=bool(slot_appointments),
            )
        )
    return reconciled

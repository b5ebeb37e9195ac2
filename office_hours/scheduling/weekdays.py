"""Symbolic weekday, time-of-day and modality values shared by slots and appointments."""

from datetime import time


WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
# ISO weekday numbers, Monday == 1.
WEEKDAY_NUMBERS = {name: index for index, name in enumerate(WEEKDAYS, start=1)}

IN_PERSON_MODALITY = "in-person"
ONLINE_MODALITY = "online"
MODALITIES = (IN_PERSON_MODALITY, ONLINE_MODALITY)


def normalize_weekday(value: str) -> str:
    normalized = value.strip().capitalize()
    if normalized not in WEEKDAY_NUMBERS:
        raise ValueError(f"Day must be one of: {', '.join(WEEKDAYS)}.")
    return normalized


def weekday_number(day: str) -> int:
    return WEEKDAY_NUMBERS[normalize_weekday(day)]


def parse_clock_time(value: str) -> time:
    """Parse an ``HH:MM`` string, raising ``ValueError`` when it is malformed."""
    hours, separator, minutes = value.strip().partition(":")
    if not separator or len(minutes) != 2 or not hours.isdigit() or not minutes.isdigit():
        raise ValueError("Time must use the HH:MM format.")
    return time(int(hours), int(minutes))


def normalize_clock_time(value: str) -> str:
    return parse_clock_time(value).strftime("%H:%M")


def normalize_modality(value: str) -> str:
    normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
    if normalized not in MODALITIES:
        raise ValueError(f"Modality must be one of: {', '.join(MODALITIES)}.")
    return normalized

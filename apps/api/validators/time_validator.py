"""Time validation utilities"""
import re
from datetime import datetime, time
from typing import Iterable, Optional
from errors import ValidationFailed
from models import utcnow

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def validate_time_format(time_str: str) -> bool:
    """Validate time string is in HH:MM format"""
    pattern = r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$'
    if not time_str or not re.match(pattern, time_str):
        raise ValidationFailed(f"Invalid time format: {time_str}. Use HH:MM format (e.g., 09:30, 14:00)")
    return True


def parse_time_string(time_str: str) -> time:
    """Parse time string to time object"""
    validate_time_format(time_str)
    return datetime.strptime(time_str, "%H:%M").time()


def validate_time_range(start_time_str: str, end_time_str: str) -> bool:
    """Validate that end time is after start time"""
    start = parse_time_string(start_time_str)
    end = parse_time_string(end_time_str)

    if end <= start:
        raise ValidationFailed(f"End time ({end_time_str}) must be after start time ({start_time_str})")
    return True


def validate_availability(windows: Iterable[dict]) -> bool:
    """Validate doctor availability windows ({day, start_time, end_time})"""
    for window in windows:
        day = window.get("day")
        if day not in WEEKDAYS:
            raise ValidationFailed(f"Invalid day: {day}. Use one of {', '.join(WEEKDAYS)}")
        validate_time_range(window.get("start_time"), window.get("end_time"))
    return True


def validate_not_in_past(dt: datetime, now: Optional[datetime] = None) -> bool:
    """Validate a booking date is today or later"""
    now = now or utcnow()
    if dt.date() < now.date():
        raise ValidationFailed("Cannot book appointments in the past")
    return True

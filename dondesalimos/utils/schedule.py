from typing import Optional


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    """Parse "HH:MM" or "HH:MM:SS" into minutes since midnight."""
    if not value or not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    try:
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        return None
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def is_overnight(open_minutes: int, close_minutes: int) -> bool:
    return close_minutes < open_minutes


def within_hours(time_minutes: int, open_minutes: int, close_minutes: int) -> bool:
    if is_overnight(open_minutes, close_minutes):
        return time_minutes >= open_minutes or time_minutes <= close_minutes
    return open_minutes <= time_minutes <= close_minutes

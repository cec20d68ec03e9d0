import math
from datetime import datetime, timezone


def convert_to_seconds(hours=0, minutes=0, seconds=0):
    """
    Converts hours, minutes, and seconds into a total duration in seconds.

    Raises:
        ValueError: If any input is negative.
    """
    if any(val < 0 for val in [hours, minutes, seconds]):
        raise ValueError("Time components cannot be negative.")
    return (hours * 3600) + (minutes * 60) + seconds


def format_seconds_to_ms(total_seconds):
    """Renders a countdown as MM:SS, rounding partial seconds up."""
    if total_seconds < 0:
        return "-Invalid Time-"
    total_seconds = int(math.ceil(total_seconds - 1e-9))
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02}:{seconds:02}"


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds between two timestamps."""
    return int(round((end - start).total_seconds() * 1000))


def parse_timestamp(value) -> datetime:
    """Accepts a datetime or an ISO-8601 string. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise ValueError(f"Not a timestamp: {value!r}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.isoformat()

from datetime import datetime


def to_local_naive(value: datetime | None) -> datetime | None:
    """Stored datetimes are naive local wall-clock values."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value

"""UTC clock used for every stored timestamp.

Columns are naive ``DateTime`` holding UTC, so the value is stripped of its
tzinfo before it reaches the database.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalise an incoming timestamp (aware or naive-UTC) for comparison."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite returns these) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def is_past(value: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when value is set and not after now. None never expires."""
    if value is None:
        return False
    return as_utc(value) <= (now or utcnow())

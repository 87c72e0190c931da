from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(moment: Optional[datetime] = None) -> datetime:
    """Return ``moment`` as an aware UTC datetime (now if omitted).

    Naive datetimes are taken to be UTC already.
    """
    if moment is None:
        return utcnow()
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_timestamp(moment: datetime) -> str:
    """Format for storage, e.g. ``2024-01-15T00:00:00+00:00``."""
    return ensure_utc(moment).replace(microsecond=0).isoformat()


def parse_timestamp(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value))

"""Timezone helpers: every stored instant is timezone-aware UTC."""
from datetime import datetime, timezone
from typing import Optional

import pytz

from filmnight.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: Optional[datetime], tz_name: Optional[str] = None) -> Optional[datetime]:
    """Normalize a datetime to UTC.

    Naive values are interpreted in ``tz_name`` (default: settings.DEFAULT_TIMEZONE),
    which is how admins type screening times into a form.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        tz = pytz.timezone(tz_name or settings.DEFAULT_TIMEZONE)
        value = tz.localize(value)
    return value.astimezone(pytz.utc)


def as_aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes for aware columns; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

UTC_ZONE_ID = "UTC"


class InvalidTimeZone(ValueError):
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def load_timezone(tz_id: Optional[str]) -> ZoneInfo:
    if not tz_id:
        raise InvalidTimeZone("time zone id is empty")
    try:
        return ZoneInfo(tz_id)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimeZone(f"unable to load time zone {tz_id!r}") from exc


def as_local(dt: datetime, tz: ZoneInfo) -> datetime:
    """Naive values are wall-clock times in ``tz``; aware ones are converted."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def resolve_expiration(
    expires_at: Optional[datetime],
    timezone_id: Optional[str],
    expires_in: Optional[timedelta],
    now: Optional[datetime] = None,
) -> tuple[datetime, str]:
    """
    Reduce either expiration mode to one (UTC instant, time zone id) pair.
    Input is expected to be validated already.
    """
    if expires_in:
        return (now or utc_now()).astimezone(timezone.utc) + expires_in, UTC_ZONE_ID
    tz = load_timezone(timezone_id)
    return as_local(expires_at, tz).astimezone(timezone.utc), timezone_id

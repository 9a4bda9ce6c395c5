"""Calendar-day arithmetic for progress entries.

Every comparison between entries happens on a day key (``YYYY-MM-DD`` in the
server time zone), never on raw timestamps.
"""
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple

from ..config import get_settings


def _zone(zone: Optional[tzinfo]) -> tzinfo:
    return zone or get_settings().zone


def to_local(moment: datetime, zone: Optional[tzinfo] = None) -> datetime:
    tz = _zone(zone)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def to_iso(moment: datetime) -> str:
    """UTC ISO-8601 with a ``Z`` suffix; sorts chronologically as a string."""
    return to_local(moment).astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def local_day(moment: datetime, zone: Optional[tzinfo] = None) -> date:
    return to_local(moment, zone).date()


def day_key(moment: datetime, zone: Optional[tzinfo] = None) -> str:
    return local_day(moment, zone).isoformat()


def previous_day_key(moment: datetime, zone: Optional[tzinfo] = None) -> str:
    return (local_day(moment, zone) - timedelta(days=1)).isoformat()


def day_bounds(moment: datetime, zone: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    local = to_local(moment, zone)
    start = datetime.combine(local.date(), time.min, tzinfo=local.tzinfo)
    end = datetime.combine(local.date(), time(23, 59, 59, 999000), tzinfo=local.tzinfo)
    return start, end


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(moment: datetime) -> datetime:
    return to_local(moment).astimezone(timezone.utc)

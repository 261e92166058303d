# deploy_checklist/services/clock.py
"""Civil-offset time helpers. Every stored and displayed timestamp goes through here."""
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from ..config import settings

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

def civil_tz(offset_hours: Optional[int] = None) -> timezone:
    hours = settings.civil_utc_offset_hours if offset_hours is None else offset_hours
    return timezone(timedelta(hours=hours))

def civil_now(offset_hours: Optional[int] = None) -> datetime:
    return datetime.now(timezone.utc).astimezone(civil_tz(offset_hours))

def civil_today(offset_hours: Optional[int] = None) -> date:
    return civil_now(offset_hours).date()

def format_timestamp(dt: datetime) -> str:
    """Render as 'YYYY-MM-DD HH:MM:SS' in the civil offset (naive datetimes are taken as civil)."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(civil_tz())
    return dt.strftime(TIMESTAMP_FORMAT)

def format_display_date(value: Optional[str]) -> str:
    """'2026-10-18 21:05:00' -> '18 Oct 2026, 09:05 PM'. Missing or malformed values render as an em dash."""
    if not value:
        return "—"
    try:
        dt = datetime.strptime(value[:19], TIMESTAMP_FORMAT)
    except ValueError:
        return value
    return dt.strftime("%d %b %Y, %I:%M %p")

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from app.core.config import get_settings


def gym_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().gym_timezone)


def gym_now() -> datetime:
    """Current instant in the gym's local time zone."""
    return datetime.now(gym_tz())


def gym_today() -> date:
    return gym_now().date()


def normalize_to_gym_tz(dt: datetime) -> datetime:
    """Attach the gym time zone to naive datetimes, convert aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=gym_tz())
    return dt.astimezone(gym_tz())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

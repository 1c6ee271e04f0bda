"""
DateTime utility functions for the application.

The maintenance core never reads the clock itself; routes, background jobs
and scripts resolve "today" here and pass it in.
"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def get_facility_timezone(tz_name=None):
    """
    Get the facility timezone object.

    Args:
        tz_name: IANA timezone name. Defaults to Config.FACILITY_TIMEZONE.

    Returns:
        ZoneInfo: Facility timezone object
    """
    if tz_name is None:
        from app.config import Config
        tz_name = Config.FACILITY_TIMEZONE
    return ZoneInfo(tz_name)


def facility_now(tz_name=None):
    """Current aware datetime in the facility timezone."""
    return datetime.now(timezone.utc).astimezone(get_facility_timezone(tz_name))


def facility_today(tz_name=None):
    """Current calendar day at the facility (the day that decides the active window)."""
    return facility_now(tz_name).date()


def format_date_iso(d):
    """
    Format a date as YYYY-MM-DD.

    Args:
        d: date/datetime or None

    Returns:
        str or None
    """
    if d is None:
        return None
    if isinstance(d, datetime):
        d = d.date()
    return d.isoformat()


"""
Next prayer selection: the first prayer of today strictly after `now`,
wrapping to tomorrow's Fajr once Isha has passed.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from .errors import ParseError
from .models import ERROR_INFO, NextPrayerInfo, PrayerTimes, parse_time_of_day

logger = logging.getLogger(__name__)


def _instant_on(day_of: datetime, time_str: str) -> Optional[datetime]:
    """Combine the calendar date of day_of with an HH:mm string. None if it does not parse."""
    try:
        hour, minute = parse_time_of_day(time_str)
    except ParseError as e:
        logger.debug(f"Skipping unparseable prayer time: {e}")
        return None
    return day_of.replace(hour=hour, minute=minute, second=0, microsecond=0)


def resolve_next(now: datetime, times: PrayerTimes) -> NextPrayerInfo:
    """Return the next upcoming prayer for `now`.

    A prayer whose time equals `now` exactly is already past. Entries that fail to
    parse never match. After Isha the answer is tomorrow's Fajr; if Fajr itself
    cannot be parsed at that point, ERROR_INFO is returned instead of raising.
    """
    for name, time_str in times.items():
        prayer_at = _instant_on(now, time_str)
        if prayer_at is not None and prayer_at > now:
            return NextPrayerInfo(name, prayer_at.strftime("%H:%M"), prayer_at)

    fajr_today = _instant_on(now, times.fajr)
    if fajr_today is None:
        return ERROR_INFO
    fajr_tomorrow = fajr_today + timedelta(days=1)
    return NextPrayerInfo("Fajr", fajr_tomorrow.strftime("%H:%M"), fajr_tomorrow)

from .errors import (
    LocationUnavailableError,
    NoDataError,
    NotificationError,
    ParseError,
    PastTimeError,
    PrayPalError,
    ScheduleError,
)
from .models import (
    ERROR_INFO,
    PRAYER_ORDER,
    Location,
    NextPrayerInfo,
    NotificationTrigger,
    PrayerTimes,
    parse_time_of_day,
)
from .resolver import resolve_next
from .schedule import build_schedule

__all__ = [
    "ERROR_INFO",
    "PRAYER_ORDER",
    "Location",
    "LocationUnavailableError",
    "NextPrayerInfo",
    "NoDataError",
    "NotificationError",
    "NotificationTrigger",
    "ParseError",
    "PastTimeError",
    "PrayPalError",
    "PrayerTimes",
    "ScheduleError",
    "build_schedule",
    "parse_time_of_day",
    "resolve_next",
]

"""
Value types shared by the resolver, the schedule builder and the notification center.
Plain named tuples; nothing here is persisted.
"""
import re
from collections import namedtuple
from typing import Any, Dict, Iterator, Mapping, Tuple

from .errors import ParseError

PRAYER_ORDER = ("Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha")

# Two-digit hour 00-23, two-digit minute 00-59
_TIME_OF_DAY_RE = re.compile(r"([01][0-9]|2[0-3]):([0-5][0-9])")


def parse_time_of_day(text: Any) -> Tuple[int, int]:
    """Parse a strict HH:mm string into (hour, minute). Raises ParseError."""
    if not isinstance(text, str):
        raise ParseError(text)
    match = _TIME_OF_DAY_RE.fullmatch(text)
    if not match:
        raise ParseError(text)
    return int(match.group(1)), int(match.group(2))


class PrayerTimes(namedtuple("PrayerTimes", ["fajr", "sunrise", "dhuhr", "asr", "maghrib", "isha"])):
    """One day's schedule: six HH:mm strings in canonical order."""

    __slots__ = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PrayerTimes":
        """Build from a dict keyed by prayer name in any case. Raises KeyError if one is missing."""
        lowered = {str(k).lower(): v for k, v in data.items()}
        return cls(**{field: str(lowered[field]) for field in cls._fields})

    def items(self) -> Iterator[Tuple[str, str]]:
        """Yield (display name, time string) in PRAYER_ORDER."""
        return zip(PRAYER_ORDER, self)

    def to_dict(self) -> Dict[str, str]:
        return dict(self.items())


# name: prayer name or "Error"; time: HH:mm or "Error"; at: absolute datetime or None
NextPrayerInfo = namedtuple("NextPrayerInfo", ["name", "time", "at"], defaults=(None,))

ERROR_INFO = NextPrayerInfo("Error", "Error", None)
LOADING_INFO = NextPrayerInfo("Loading...", "Loading...", None)
NO_DATA_INFO = NextPrayerInfo("Error", "Error loading prayer times", None)

# One repeating daily alarm
NotificationTrigger = namedtuple("NotificationTrigger", ["hour", "minute"])

Location = namedtuple("Location", ["province", "city"])

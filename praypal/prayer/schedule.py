"""
Notification schedule derivation from a target time of day.
"""
from datetime import datetime
from typing import List

from .errors import PastTimeError
from .models import NotificationTrigger, parse_time_of_day

TRIGGERS_PER_SCHEDULE = 60


def build_schedule(target: str, now: datetime) -> List[NotificationTrigger]:
    """Build the repeating triggers for `target` (HH:mm) on `now`'s date.

    Raises ParseError for a malformed target and PastTimeError unless the target is
    strictly after `now`. On success returns one trigger for every minute of the hour
    starting at the target minute, wrapping at 60 with the hour left unchanged.
    """
    hour, minute = parse_time_of_day(target)
    scheduled_time = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if scheduled_time <= now:
        raise PastTimeError(scheduled_time, now)

    return [
        NotificationTrigger(scheduled_time.hour, (scheduled_time.minute + offset) % 60)
        for offset in range(TRIGGERS_PER_SCHEDULE)
    ]

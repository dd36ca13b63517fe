"""
Error types for prayer time resolution and notification scheduling.
All of them are recoverable: callers show a sentinel or retry on the next tick.
"""


class PrayPalError(Exception):
    """Base class for all PrayPal errors."""


class ScheduleError(PrayPalError):
    """A notification schedule could not be built."""


class ParseError(ScheduleError, ValueError):
    """A time-of-day string is not in HH:mm form."""

    def __init__(self, text):
        self.text = text
        super().__init__(f"Invalid time of day (expected HH:mm): {text!r}")


class PastTimeError(ScheduleError):
    """Requested notification time is not strictly in the future."""

    def __init__(self, scheduled_time, now):
        self.scheduled_time = scheduled_time
        self.now = now
        super().__init__(
            f"Scheduled time must be in the future: {scheduled_time:%H:%M} <= {now:%H:%M:%S}"
        )


class NoDataError(PrayPalError):
    """Prayer time lookup returned nothing for the given date and location."""


class LocationUnavailableError(PrayPalError):
    """Location has not been resolved yet."""


class NotificationError(PrayPalError):
    """A single notification registration was rejected."""

"""
Service layer: the state the refresh loop keeps between ticks, and the
three notification actions (permission, schedule, cancel).
"""
import logging
import threading
from datetime import datetime
from typing import List, Optional

from .errors import LocationUnavailableError, NoDataError
from .location import LocationProvider
from .lookup import PrayerTimesLookup
from .models import LOADING_INFO, NO_DATA_INFO, NextPrayerInfo, PrayerTimes
from .notifications import (
    NotificationCenter,
    NotificationContent,
    NotificationRequest,
    SubmitResult,
    submit_schedule,
)
from .resolver import resolve_next
from .schedule import build_schedule


class PrayerService:
    def __init__(
        self,
        location_provider: LocationProvider,
        lookup: PrayerTimesLookup,
        notification_center: NotificationCenter,
        content: Optional[NotificationContent] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.location_provider = location_provider
        self.lookup = lookup
        self.notification_center = notification_center
        self.content = content or NotificationContent()
        self._lock = threading.Lock()
        self._state = LOADING_INFO

    @property
    def state(self) -> NextPrayerInfo:
        """Latest displayed next prayer"""
        with self._lock:
            return self._state

    def _load_times(self, now: datetime) -> PrayerTimes:
        """Look up today's times for the current location"""
        location = self.location_provider.get_location()
        if location is None:
            raise LocationUnavailableError("Location not available")
        times = self.lookup.lookup(now.date(), location.province, location.city)
        if times is None:
            raise NoDataError(
                f"No prayer times for {location.province}/{location.city} on {now.date()}"
            )
        return times

    def refresh(self, now: Optional[datetime] = None) -> NextPrayerInfo:
        """Recompute the next prayer. Keeps the previous state while location is unknown."""
        now = now or datetime.now()
        try:
            info = resolve_next(now, self._load_times(now))
        except LocationUnavailableError as e:
            self.logger.debug(str(e))
            return self.state
        except NoDataError as e:
            self.logger.warning(str(e))
            info = NO_DATA_INFO

        with self._lock:
            if info != self._state:
                self.logger.info(f"Next prayer: {info.name} at {info.time}")
            self._state = info
        return info

    def request_permission(self) -> bool:
        return self.notification_center.request_authorization()

    def schedule_notification(self, target: Optional[str] = None, now: Optional[datetime] = None) -> SubmitResult:
        """Schedule repeating reminders at target (defaults to the displayed prayer time).

        ParseError and PastTimeError propagate; nothing is submitted in that case.
        """
        now = now or datetime.now()
        if target is None:
            target = self.state.time
        triggers = build_schedule(target, now)
        return submit_schedule(self.notification_center, triggers, self.content)

    def cancel_notifications(self) -> int:
        return self.notification_center.remove_all_pending()

    def deliver_due(self, now: Optional[datetime] = None) -> List[NotificationRequest]:
        """Deliver notifications due this minute by logging them"""
        now = now or datetime.now()
        delivered = self.notification_center.due(now)
        for request in delivered:
            self.logger.info(
                f"Notification: {request.content.title} - {request.content.subtitle} "
                f"({request.trigger.hour:02d}:{request.trigger.minute:02d})"
            )
        return delivered

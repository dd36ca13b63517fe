"""
In-memory local notification center and best-effort batch submission.

The center stands in for the device notification service: it keeps pending
repeating requests, and reports which ones are due for a given minute.
"""
import logging
import threading
import uuid
from collections import namedtuple
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import NotificationError
from .models import NotificationTrigger

logger = logging.getLogger(__name__)

NotificationContent = namedtuple(
    "NotificationContent",
    ["title", "subtitle", "sound"],
    defaults=("Prayer Reminder", "You have not prayed yet", "default"),
)

NotificationRequest = namedtuple(
    "NotificationRequest",
    ["identifier", "trigger", "content", "repeats"],
    defaults=(True,),
)

# scheduled: identifiers registered; failed: number of rejected registrations
SubmitResult = namedtuple("SubmitResult", ["scheduled", "failed", "triggers"], defaults=((),))


def content_from_config(config: Optional[Dict[str, Any]]) -> NotificationContent:
    """Build notification content from the `notifications` config section"""
    config = config or {}
    defaults = NotificationContent()
    return NotificationContent(
        title=config.get("title", defaults.title),
        subtitle=config.get("subtitle", defaults.subtitle),
        sound=config.get("sound", defaults.sound),
    )


class NotificationCenter:
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)
        self._lock = threading.Lock()
        self._pending: Dict[str, NotificationRequest] = {}
        # identifier -> (date, hour, minute) it last fired in
        self._last_fired: Dict[str, Tuple[Any, int, int]] = {}
        self.authorized = False

    def request_authorization(self) -> bool:
        """Ask for permission to show alerts, badges and sounds"""
        self.authorized = bool(self.config.get("allow", True))
        if self.authorized:
            self.logger.info("Notification permission granted")
        else:
            self.logger.warning("Notification permission denied")
        return self.authorized

    def apply_config(self, config: Optional[Dict[str, Any]]) -> None:
        """Swap in new settings; withdrawing `allow` revokes an earlier grant"""
        self.config = config or {}
        if self.authorized and not self.config.get("allow", True):
            self.authorized = False
            self.logger.warning("Notification permission revoked by configuration")

    def add(self, request: NotificationRequest) -> None:
        """Register one request. Raises NotificationError if it is rejected."""
        if not self.authorized:
            raise NotificationError("Notifications are not authorized")
        with self._lock:
            if request.identifier in self._pending:
                raise NotificationError(f"Duplicate notification identifier: {request.identifier}")
            self._pending[request.identifier] = request
        self.logger.debug(
            f"Notification {request.identifier} scheduled for "
            f"{request.trigger.hour:02d}:{request.trigger.minute:02d} (repeats={request.repeats})"
        )

    def remove_all_pending(self) -> int:
        """Clear every pending request, returning how many were removed"""
        with self._lock:
            count = len(self._pending)
            self._pending.clear()
            self._last_fired.clear()
        self.logger.info(f"All notifications cancelled ({count})")
        return count

    def pending(self) -> List[NotificationRequest]:
        with self._lock:
            return list(self._pending.values())

    def due(self, now: datetime) -> List[NotificationRequest]:
        """Return requests matching now's hour and minute that have not fired in this minute yet"""
        stamp = (now.date(), now.hour, now.minute)
        fired = []
        with self._lock:
            for identifier, request in list(self._pending.items()):
                trigger = request.trigger
                if (trigger.hour, trigger.minute) != (now.hour, now.minute):
                    continue
                if self._last_fired.get(identifier) == stamp:
                    continue
                self._last_fired[identifier] = stamp
                fired.append(request)
                if not request.repeats:
                    del self._pending[identifier]
        return fired


def submit_schedule(
    center: NotificationCenter,
    triggers: Iterable[NotificationTrigger],
    content: NotificationContent,
) -> SubmitResult:
    """Register each trigger under a fresh identifier.

    Best effort: a rejected registration is logged and counted, the rest still go through
    and nothing already registered is rolled back.
    """
    scheduled = []
    failed = 0
    triggers = list(triggers)
    for trigger in triggers:
        request = NotificationRequest(str(uuid.uuid4()), trigger, content, True)
        try:
            center.add(request)
            scheduled.append(request.identifier)
        except NotificationError as e:
            failed += 1
            logger.error(f"Error adding notification: {e}")
    logger.info(f"Scheduled {len(scheduled)} notifications ({failed} failed)")
    return SubmitResult(tuple(scheduled), failed, tuple(triggers))

from datetime import timedelta

import pytest

from conftest import at
from praypal.prayer.errors import NotificationError
from praypal.prayer.models import NotificationTrigger
from praypal.prayer.notifications import (
    NotificationCenter,
    NotificationContent,
    NotificationRequest,
    content_from_config,
    submit_schedule,
)
from praypal.prayer.schedule import build_schedule


def test_add_requires_authorization():
    center = NotificationCenter()
    request = NotificationRequest("a", NotificationTrigger(7, 30), NotificationContent())
    with pytest.raises(NotificationError):
        center.add(request)


def test_authorization_denied_by_config():
    center = NotificationCenter({"allow": False})
    assert center.request_authorization() is False


def test_submit_registers_every_trigger(notification_center):
    notification_center.request_authorization()
    triggers = build_schedule("07:30", at(6, 0))
    result = submit_schedule(notification_center, triggers, NotificationContent())
    assert len(result.scheduled) == 60
    assert len(set(result.scheduled)) == 60
    assert result.failed == 0
    assert len(notification_center.pending()) == 60
    assert all(r.repeats for r in notification_center.pending())


def test_submit_is_best_effort():
    class FlakyCenter(NotificationCenter):
        calls = 0

        def add(self, request):
            self.calls += 1
            if self.calls % 2 == 0:
                raise NotificationError("rejected")
            super().add(request)

    center = FlakyCenter()
    center.request_authorization()
    triggers = [NotificationTrigger(7, m) for m in range(4)]
    result = submit_schedule(center, triggers, NotificationContent())
    assert len(result.scheduled) == 2
    assert result.failed == 2
    assert len(center.pending()) == 2


def test_submit_without_permission_fails_every_entry(notification_center):
    result = submit_schedule(notification_center, [NotificationTrigger(7, 30)], NotificationContent())
    assert result.scheduled == ()
    assert result.failed == 1


def test_duplicate_identifier_is_rejected(notification_center):
    notification_center.request_authorization()
    request = NotificationRequest("same", NotificationTrigger(7, 30), NotificationContent())
    notification_center.add(request)
    with pytest.raises(NotificationError):
        notification_center.add(request)


def test_remove_all_pending(notification_center):
    notification_center.request_authorization()
    submit_schedule(notification_center, build_schedule("07:30", at(6, 0)), NotificationContent())
    assert notification_center.remove_all_pending() == 60
    assert notification_center.pending() == []
    assert notification_center.remove_all_pending() == 0


def test_due_fires_once_per_minute_and_repeats_daily(notification_center):
    notification_center.request_authorization()
    request = NotificationRequest("r", NotificationTrigger(7, 30), NotificationContent())
    notification_center.add(request)

    assert notification_center.due(at(7, 29, 59)) == []
    assert notification_center.due(at(7, 30, 0)) == [request]
    assert notification_center.due(at(7, 30, 30)) == []
    assert notification_center.due(at(7, 30) + timedelta(days=1)) == [request]


def test_non_repeating_request_is_removed_after_firing(notification_center):
    notification_center.request_authorization()
    request = NotificationRequest("once", NotificationTrigger(7, 30), NotificationContent(), False)
    notification_center.add(request)
    assert notification_center.due(at(7, 30)) == [request]
    assert notification_center.pending() == []


def test_content_from_config_defaults():
    content = content_from_config({"title": "Peringatan Sholat"})
    assert content.title == "Peringatan Sholat"
    assert content.subtitle == NotificationContent().subtitle
    assert content_from_config(None) == NotificationContent()


def test_apply_config_revokes_permission(notification_center):
    assert notification_center.request_authorization() is True
    notification_center.apply_config({"allow": True, "title": "x"})
    assert notification_center.authorized is True
    notification_center.apply_config({"allow": False})
    assert notification_center.authorized is False
    with pytest.raises(NotificationError):
        notification_center.add(NotificationRequest("a", NotificationTrigger(7, 30), NotificationContent()))

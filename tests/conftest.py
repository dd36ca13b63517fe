from datetime import datetime

import pytest

from praypal.prayer.location import LocationProvider
from praypal.prayer.lookup import TablePrayerTimesLookup
from praypal.prayer.models import Location, PrayerTimes
from praypal.prayer.notifications import NotificationCenter
from praypal.prayer.service import PrayerService

DAY = datetime(2024, 5, 21)


def at(hour, minute, second=0, day=DAY):
    return day.replace(hour=hour, minute=minute, second=second)


@pytest.fixture
def prayer_times():
    return PrayerTimes(
        fajr="04:30",
        sunrise="05:45",
        dhuhr="12:00",
        asr="15:15",
        maghrib="18:00",
        isha="19:15",
    )


@pytest.fixture
def table(prayer_times):
    return {
        "Jawa Barat": {
            "Bandung": {
                "2024-05-21": prayer_times.to_dict(),
            }
        }
    }


@pytest.fixture
def notification_center():
    return NotificationCenter({"allow": True})


@pytest.fixture
def service(table, notification_center):
    return PrayerService(
        LocationProvider(Location("Jawa Barat", "Bandung")),
        TablePrayerTimesLookup({"table": table}),
        notification_center,
    )

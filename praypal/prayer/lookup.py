"""
Prayer time lookup backends, keyed on (date, province, city).
Backends return PrayerTimes or None ("no data"); they never raise for missing data.
"""
import logging
import time
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import requests
import yaml

from .models import PrayerTimes

ALADHAN_URL = "https://api.aladhan.com/v1/timingsByCity/{date}"

# Aladhan timing keys -> PrayerTimes fields
ALADHAN_TIMINGS = {
    "Fajr": "fajr",
    "Sunrise": "sunrise",
    "Dhuhr": "dhuhr",
    "Asr": "asr",
    "Maghrib": "maghrib",
    "Isha": "isha",
}


class PrayerTimesLookup(ABC):
    """Base class for prayer time lookups"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def lookup(self, day: date, province: str, city: str) -> Optional[PrayerTimes]:
        """Get prayer times for one day at one location
        Returns:
            PrayerTimes, or None if there is no data
        """
        pass


class TablePrayerTimesLookup(PrayerTimesLookup):
    """Lookup from a YAML table: province -> city -> YYYY-MM-DD -> {fajr: "HH:MM", ...}"""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.table: Dict[str, Any] = {}
        table_file = self.config.get("table_file")
        if table_file:
            self.table = self._load_table(Path(table_file).expanduser())
        elif isinstance(self.config.get("table"), dict):
            self.table = self.config["table"]

    def _load_table(self, path: Path) -> Dict[str, Any]:
        """Read the table file; an unreadable file is an empty table"""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError("Invalid prayer table format: root must be a dictionary")
            self.logger.info(f"Loaded prayer times table from {path}")
            return data
        except Exception as e:
            self.logger.error(f"Error loading prayer times table {path}: {e}")
            return {}

    def lookup(self, day: date, province: str, city: str) -> Optional[PrayerTimes]:
        days = (self.table.get(province) or {}).get(city) or {}
        # YAML loads unquoted ISO dates as date objects
        row = days.get(day.isoformat(), days.get(day))
        if not isinstance(row, dict):
            self.logger.debug(f"No prayer times for {province}/{city} on {day}")
            return None
        try:
            return PrayerTimes.from_mapping(row)
        except KeyError as e:
            self.logger.error(f"Prayer times for {province}/{city} on {day} missing {e}")
            return None


class AladhanPrayerTimesLookup(PrayerTimesLookup):
    """Lookup using api.aladhan.com, memoised in memory per (date, province, city)"""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.country = self.config.get("country", "")
        self.method = self.config.get("method", 2)
        self.timeout = self.config.get("timeout", 10)
        self.retry_interval = self.config.get("retry_interval", 60)
        # key -> (monotonic fetch time, result)
        self._memo: Dict[Tuple[date, str, str], Tuple[float, Optional[PrayerTimes]]] = {}

    def lookup(self, day: date, province: str, city: str) -> Optional[PrayerTimes]:
        key = (day, province, city)
        cached = self._memo.get(key)
        if cached is not None:
            fetched_at, times = cached
            if times is not None or time.monotonic() - fetched_at < self.retry_interval:
                return times

        times = self._fetch(day, province, city)
        self._memo = {k: v for k, v in self._memo.items() if k[0] >= day}
        self._memo[key] = (time.monotonic(), times)
        return times

    def _fetch(self, day: date, province: str, city: str) -> Optional[PrayerTimes]:
        """Fetch one day of timings from the API"""
        url = ALADHAN_URL.format(date=day.strftime("%d-%m-%Y"))
        params = {
            "city": city,
            "state": province,
            "country": self.country,
            "method": self.method,
        }
        try:
            self.logger.info(f"Making API request to {url} with params {params}")
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            timings = response.json()["data"]["timings"]
            return PrayerTimes(**{
                field: str(timings[name]).split(" ")[0]
                for name, field in ALADHAN_TIMINGS.items()
            })
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            self.logger.error(f"Error fetching prayer times for {province}/{city}: {e}")
            return None


_LOOKUPS = {
    "table": TablePrayerTimesLookup,
    "aladhan": AladhanPrayerTimesLookup,
}


def get_lookup(backend_type: str, config: Dict[str, Any]) -> PrayerTimesLookup:
    """Factory: return lookup instance for given type."""
    cls = _LOOKUPS.get((backend_type or "").lower())
    if not cls:
        raise ValueError(f"Unknown prayer times backend: {backend_type}")
    return cls(config)

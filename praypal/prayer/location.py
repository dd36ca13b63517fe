"""
Location provider: holds the current (province, city) or nothing.
No acquisition happens here; the value comes from config or the API.
"""
import logging
import threading
from typing import Any, Dict, Optional

from .models import Location


class LocationProvider:
    def __init__(self, location: Optional[Location] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._lock = threading.Lock()
        self._location = location

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "LocationProvider":
        """Build from the `location` config section; missing province or city means no location"""
        config = config or {}
        province = config.get("province")
        city = config.get("city")
        if province and city:
            return cls(Location(str(province), str(city)))
        return cls()

    def get_location(self) -> Optional[Location]:
        with self._lock:
            return self._location

    def set_location(self, province: str, city: str) -> Location:
        location = Location(province, city)
        with self._lock:
            self._location = location
        self.logger.info(f"Location set to {province}/{city}")
        return location

    def clear(self) -> None:
        with self._lock:
            self._location = None
        self.logger.info("Location cleared")

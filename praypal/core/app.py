import logging
import sys
import threading
from typing import Any, Dict, Optional

from praypal.prayer.location import LocationProvider
from praypal.prayer.lookup import get_lookup
from praypal.prayer.notifications import NotificationCenter, content_from_config
from praypal.prayer.service import PrayerService

from .config import Config
from .task_manager import TaskManager

REFRESH_TASK = "next_prayer_refresh"


class PrayPalApp:
    def __init__(self, config_path: Optional[str] = None, watch_config: bool = True):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(config_path=config_path, watch=watch_config)
        self.config.register_change_callback(self.handle_config_change)

        self._log_handlers = []
        self._setup_logging()
        self._applied_sections = self._sections(self.config.data)

        self.task_manager = TaskManager()
        self.notification_center = NotificationCenter(self.config.get_section("notifications"))
        self.service = PrayerService(
            LocationProvider.from_config(self.config.get_section("location")),
            self._create_lookup(self.config.data),
            self.notification_center,
            content_from_config(self.config.get_section("notifications")),
        )
        self._stop_event = threading.Event()

    def _create_lookup(self, config_data: Dict[str, Any]):
        """Create prayer times lookup based on configuration"""
        lookup_config = config_data.get("lookup") or {}
        return get_lookup(lookup_config.get("backend", "table"), lookup_config)

    def _setup_logging(self, logging_config: Optional[Dict[str, Any]] = None) -> None:
        """Configure logging to write to stdout and, if configured, a file"""
        if logging_config is None:
            logging_config = self.config.get_section("logging")
        root_logger = logging.getLogger()
        if self._log_handlers:
            self._close_log_handlers()
        else:
            # Replace the basic handler installed before the config was loaded
            for handler in list(root_logger.handlers):
                root_logger.removeHandler(handler)
        root_logger.setLevel(getattr(logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        if logging_config.get("file"):
            file_handler = logging.FileHandler(logging_config["file"])
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            self._log_handlers.append(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
        self._log_handlers.append(console_handler)

        logging.info(f"Logging at {logging.getLevelName(root_logger.level)}")

    def _close_log_handlers(self) -> None:
        """Detach and close the handlers installed by _setup_logging"""
        root_logger = logging.getLogger()
        for handler in self._log_handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._log_handlers = []

    def handle_config_change(self, config_data: Dict[str, Any]) -> None:
        """Apply a reloaded config; unchanged sections keep their live state"""
        previous = self._applied_sections
        self._applied_sections = self._sections(config_data)

        if self._applied_sections["logging"] != previous["logging"]:
            self._setup_logging(self._applied_sections["logging"])
        # A location set through the API survives reloads that do not touch this section
        if self._applied_sections["location"] != previous["location"]:
            self.service.location_provider = LocationProvider.from_config(config_data.get("location"))
        try:
            self.service.lookup = self._create_lookup(config_data)
        except ValueError as e:
            self.logger.error(f"Keeping previous prayer times lookup: {e}")
        notifications = config_data.get("notifications") or {}
        self.notification_center.apply_config(notifications)
        self.service.content = content_from_config(notifications)
        self.logger.info("Applied configuration change")
        self.tick()

    @staticmethod
    def _sections(config_data: Dict[str, Any]) -> Dict[str, Any]:
        return {name: config_data.get(name) or {} for name in ("logging", "location")}

    def tick(self) -> None:
        """One refresh: recompute the next prayer, then deliver due notifications"""
        self.service.refresh()
        self.service.deliver_due()

    def start(self) -> None:
        """Start the refresh loop and, if enabled, the API server"""
        interval = float(self.config.data.get("refresh_interval", 1))
        self.tick()
        self.task_manager.schedule_task(REFRESH_TASK, self.tick, interval, one_time=False)
        self.logger.info(f"Refreshing next prayer every {interval} seconds")

        try:
            from praypal.api import run_api_server
            run_api_server(self)
        except Exception as e:
            self.logger.warning(f"API server not started: {e}")

    def stop(self) -> None:
        self._stop_event.set()
        self.task_manager.stop()
        self.config.cleanup()
        self.logger.info("PrayPal stopped")
        self._close_log_handlers()

    def run(self) -> None:
        """Start and block until interrupted"""
        self.start()
        try:
            while not self._stop_event.wait(1.0):
                pass
        except KeyboardInterrupt:
            self.logger.info("Interrupted")
        finally:
            self.stop()

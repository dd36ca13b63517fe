import logging
from datetime import datetime

import pytest
import yaml

from praypal.core.app import REFRESH_TASK, PrayPalApp
from praypal.prayer.lookup import AladhanPrayerTimesLookup, TablePrayerTimesLookup


@pytest.fixture(autouse=True)
def restore_root_logging():
    root_logger = logging.getLogger()
    handlers, level = list(root_logger.handlers), root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def _write_config(path, **overrides):
    data = {
        "location": {"province": "Jawa Barat", "city": "Bandung"},
        "lookup": {"backend": "table", "table_file": "missing.yaml"},
        "api": {"enabled": False},
    }
    data.update(overrides)
    path.write_text(yaml.dump(data))


def test_app_wires_service_from_config(tmp_path):
    config_file = tmp_path / "config.yaml"
    _write_config(config_file, notifications={"title": "Peringatan Sholat"})
    app = PrayPalApp(config_path=str(config_file), watch_config=False)
    try:
        assert isinstance(app.service.lookup, TablePrayerTimesLookup)
        assert app.service.location_provider.get_location().city == "Bandung"
        assert app.service.content.title == "Peringatan Sholat"
    finally:
        app.stop()


def test_start_schedules_refresh_tick(tmp_path):
    config_file = tmp_path / "config.yaml"
    _write_config(config_file, refresh_interval=60)
    app = PrayPalApp(config_path=str(config_file), watch_config=False)
    try:
        app.start()
        assert app.service.state.name == "Error"
        assert REFRESH_TASK in [t["name"] for t in app.task_manager.get_active_timers()]
    finally:
        app.stop()


def test_config_change_rebuilds_lookup_and_location(tmp_path):
    config_file = tmp_path / "config.yaml"
    _write_config(config_file)
    app = PrayPalApp(config_path=str(config_file), watch_config=False)
    try:
        app.handle_config_change({
            "location": {},
            "lookup": {"backend": "aladhan"},
            "logging": {"level": "INFO"},
        })
        assert isinstance(app.service.lookup, AladhanPrayerTimesLookup)
        assert app.service.location_provider.get_location() is None

        app.handle_config_change({"lookup": {"backend": "nope"}, "logging": {}})
        assert isinstance(app.service.lookup, AladhanPrayerTimesLookup)
    finally:
        app.stop()


def _file_handlers(app):
    return [h for h in app._log_handlers if isinstance(h, logging.FileHandler)]


def test_logging_change_closes_replaced_handlers(tmp_path):
    config_file = tmp_path / "config.yaml"
    _write_config(config_file, logging={"level": "INFO", "file": str(tmp_path / "a.log")})
    app = PrayPalApp(config_path=str(config_file), watch_config=False)
    try:
        replaced = []
        for level in ("DEBUG", "WARNING", "INFO"):
            replaced.extend(_file_handlers(app))
            data = dict(app.config.data, logging={"level": level, "file": str(tmp_path / "a.log")})
            app.handle_config_change(data)

        assert len(replaced) == 3
        assert all(h.stream is None for h in replaced)
        root_handlers = logging.getLogger().handlers
        assert not any(h in root_handlers for h in replaced)
        assert len(_file_handlers(app)) == 1
    finally:
        app.stop()
    assert app._log_handlers == []


def test_unchanged_logging_section_keeps_handlers(tmp_path):
    config_file = tmp_path / "config.yaml"
    _write_config(config_file, logging={"level": "INFO", "file": str(tmp_path / "a.log")})
    app = PrayPalApp(config_path=str(config_file), watch_config=False)
    try:
        handlers = list(app._log_handlers)
        app.handle_config_change(dict(app.config.data, refresh_interval=5))
        assert app._log_handlers == handlers
        assert all(h.stream is not None for h in _file_handlers(app))
    finally:
        app.stop()


def test_location_set_at_runtime_survives_unrelated_reload(tmp_path):
    config_file = tmp_path / "config.yaml"
    _write_config(config_file)
    app = PrayPalApp(config_path=str(config_file), watch_config=False)
    try:
        app.service.location_provider.set_location("Bali", "Denpasar")
        app.handle_config_change(dict(app.config.data, refresh_interval=5))
        assert app.service.location_provider.get_location().city == "Denpasar"

        app.handle_config_change(dict(app.config.data, location={"province": "Aceh", "city": "Banda Aceh"}))
        assert app.service.location_provider.get_location().city == "Banda Aceh"
    finally:
        app.stop()


def test_disallowing_notifications_on_reload_revokes_permission(tmp_path):
    config_file = tmp_path / "config.yaml"
    _write_config(config_file)
    app = PrayPalApp(config_path=str(config_file), watch_config=False)
    try:
        assert app.service.request_permission() is True
        app.handle_config_change(dict(app.config.data, notifications={"allow": False}))
        assert app.notification_center.authorized is False
        result = app.service.schedule_notification("23:59", now=datetime(2024, 5, 21, 6, 0))
        assert result.failed == 60
    finally:
        app.stop()

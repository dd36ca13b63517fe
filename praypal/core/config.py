"""
YAML configuration with defaults, .env / $VAR expansion and hot reload.
"""
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "refresh_interval": 1,  # seconds
    "location": {
        "province": None,
        "city": None,
    },
    "lookup": {
        "backend": "table",
        "table_file": "prayer_times.yaml",
    },
    "notifications": {
        "allow": True,
        "title": "Prayer Reminder",
        "subtitle": "You have not prayed yet",
        "sound": "default",
    },
    "logging": {
        "level": "INFO",
    },
    "api": {
        "enabled": False,
        "host": "127.0.0.1",
        "port": 8765,
    },
}

_ENV_LINE_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")
# Whole-value reference: ${NAME} or $NAME
_ENV_REF_RE = re.compile(r"^\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))$")


def load_env_file(candidates: Iterable[Path]) -> Optional[Path]:
    """Load KEY=VALUE lines from the first existing candidate. Existing variables win."""
    env_file = next((path for path in candidates if path.exists()), None)
    if env_file is None:
        logger.debug("No .env file found, skipping environment variable loading")
        return None

    logger.info(f"Loading environment variables from: {env_file}")
    try:
        for line in env_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            match = _ENV_LINE_RE.match(line)
            if match:
                key, value = match.groups()
                os.environ.setdefault(key, value.strip('"').strip("'"))
    except OSError as e:
        logger.warning(f"Error loading .env file: {e}")
    return env_file


def expand_env(data: Any) -> Any:
    """Replace string values that are a single env reference; unknown names are left as written"""
    if isinstance(data, dict):
        return {key: expand_env(value) for key, value in data.items()}
    if isinstance(data, list):
        return [expand_env(item) for item in data]
    if isinstance(data, str):
        match = _ENV_REF_RE.match(data)
        if match:
            return os.environ.get(match.group(1) or match.group(2), data)
    return data


def diff_config(old: Dict[str, Any], new: Dict[str, Any], path: str = "") -> List[str]:
    """Describe added, removed and changed keys, recursing into sections"""
    changes = []
    for key in sorted(set(old) | set(new), key=str):
        key_path = f"{path}.{key}" if path else str(key)
        if key not in new:
            changes.append(f"removed {key_path}: {old[key]}")
        elif key not in old:
            changes.append(f"added {key_path}: {new[key]}")
        elif isinstance(old[key], dict) and isinstance(new[key], dict):
            changes.extend(diff_config(old[key], new[key], key_path))
        elif old[key] != new[key]:
            changes.append(f"changed {key_path}: {old[key]} -> {new[key]}")
    return changes


def merge_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fill missing top-level keys and section keys from DEFAULT_CONFIG"""
    merged = dict(data)
    for key, default in DEFAULT_CONFIG.items():
        value = data.get(key, default)
        if isinstance(default, dict):
            merged[key] = {**default, **(value if isinstance(value, dict) else {})}
        else:
            merged[key] = value
    return merged


class ConfigChangeHandler(FileSystemEventHandler):
    """Reload the config when its file is written or replaced (editors often save by rename)"""

    def __init__(self, config: "Config", cooldown: float = 1.0):
        self.config = config
        self.cooldown = cooldown
        self.last_reload = 0.0

    def _maybe_reload(self, path: str) -> None:
        if Path(path).resolve() != self.config.config_file:
            return
        now = time.monotonic()
        if now - self.last_reload < self.cooldown:
            return
        self.last_reload = now
        self.config.reload()

    def on_modified(self, event):
        if not event.is_directory:
            self._maybe_reload(event.src_path)

    def on_created(self, event):
        if not event.is_directory:
            self._maybe_reload(event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._maybe_reload(event.dest_path)


class Config:
    def __init__(self, config_path: Optional[str] = None, watch: bool = True):
        self.config_file = Path(config_path or "config.yaml").resolve()
        self.config_dir = self.config_file.parent
        self.change_callbacks: List[Callable[[Dict[str, Any]], None]] = []
        self._reloading = False
        self.observer = None
        self.data: Dict[str, Any] = {}
        logger.debug(f"Using config file: {self.config_file}")

        load_env_file([self.config_dir / ".env", Path.cwd() / ".env"])
        self._write_default_if_missing()
        self.data = self._read() or merge_defaults({})

        if watch:
            self.observer = Observer()
            self.observer.schedule(ConfigChangeHandler(self), str(self.config_dir), recursive=False)
            self.observer.start()
            logger.info(f"Watching {self.config_file} for changes")

    def register_change_callback(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """Register a callback to be called with the new data after a reload"""
        self.change_callbacks.append(callback)

    def reload(self) -> None:
        """Re-read the file; on a bad file keep the previous data and skip callbacks"""
        if self._reloading:
            return
        self._reloading = True
        try:
            # Let the writer finish
            time.sleep(0.1)
            new_data = self._read()
            if new_data is None:
                logger.info("Keeping previous configuration")
                return

            changes = diff_config(self.data, new_data)
            self.data = new_data
            logger.info(f"Configuration reloaded with {len(changes)} change(s)")
            for change in changes:
                logger.info(f"Config {change}")

            for callback in self.change_callbacks:
                try:
                    callback(self.data)
                except Exception as e:
                    logger.error(f"Error in config change callback: {e}", exc_info=True)
        finally:
            self._reloading = False

    def cleanup(self) -> None:
        """Stop the file observer"""
        if self.observer:
            self.observer.stop()
            self.observer.join()

    def get_section(self, name: str) -> Dict[str, Any]:
        """Get one config section as a dict"""
        section = self.data.get(name)
        return section if isinstance(section, dict) else {}

    def _write_default_if_missing(self) -> None:
        if self.config_file.exists():
            return
        logger.info(f"Creating default config file: {self.config_file}")
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(yaml.dump(DEFAULT_CONFIG))

    def _resolve_path(self, value: str) -> str:
        """Expand ~ and make relative paths relative to the config file"""
        path = Path(value).expanduser()
        return str(path if path.is_absolute() else self.config_dir / path)

    def _read(self) -> Optional[Dict[str, Any]]:
        """Parse the config file. Returns None if it cannot be used."""
        try:
            with open(self.config_file) as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading config: {e}")
            return None
        if not isinstance(raw, dict):
            logger.error("Invalid config format: root must be a dictionary")
            return None

        data = merge_defaults(expand_env(raw))
        if data["lookup"].get("table_file"):
            data["lookup"]["table_file"] = self._resolve_path(data["lookup"]["table_file"])
        if data["logging"].get("file"):
            data["logging"]["file"] = self._resolve_path(data["logging"]["file"])
        logger.debug(f"Loaded config data: {data}")
        return data

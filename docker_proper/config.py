import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_DIR = Path("/etc/docker-proper")
CONFIG_FILE = CONFIG_DIR / "config.json"
CONFIG_ENV_VAR = "DOCKER_PROPER_CONFIG"

DEFAULT_CONFIG = {
    "docker_host": "unix:///var/run/docker.sock",
    "container_max_age": "4w",
    "image_max_age": "4w",
    "interval": "0",  # run once
    "dry_run_mode": False,
    "unsafe_mode": False,  # delete containers without a recorded finish time
    "verbose": False,
    "log_level": "INFO",
    "log_file": "/var/log/docker-proper.log",
    "journal_enabled": False,
    "journal_file": "/var/lib/docker-proper/journal.json",
    "api_timeout_seconds": 60,
}

_DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}
_DURATION_PART = re.compile(r"(\d+)([smhdw])")


def parse_duration(value) -> timedelta:
    """Parses "672h", "4w", "1h30m" or a plain number of seconds."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Invalid duration: {value!r}")
        return timedelta(seconds=value)

    text = str(value).strip().lower()
    if text.isdigit():
        return timedelta(seconds=int(text))
    if not text or _DURATION_PART.sub("", text):
        raise ValueError(f"Invalid duration: {value!r}")
    total = timedelta()
    for amount, unit in _DURATION_PART.findall(text):
        total += int(amount) * _DURATION_UNITS[unit]
    return total


def config_path(path=None) -> Path:
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return CONFIG_FILE


def load_config(path=None) -> dict:
    """Loads the configuration from the JSON file."""
    config_file = config_path(path)
    if not config_file.exists():
        save_config(DEFAULT_CONFIG, config_file)
        return dict(DEFAULT_CONFIG)
    try:
        with open(config_file, "r") as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Ignoring unreadable config file {config_file}: {e}")
        return dict(DEFAULT_CONFIG)
    if not isinstance(config, dict):
        logger.warning(f"Ignoring config file {config_file}: not a JSON object")
        return dict(DEFAULT_CONFIG)
    # Ensure all keys are present
    for key, value in DEFAULT_CONFIG.items():
        config.setdefault(key, value)
    return config


def save_config(config: dict, path=None):
    """Saves the configuration to the JSON file."""
    config_file = config_path(path)
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, "w") as f:
            json.dump(config, f, indent=4)
    except IOError as e:
        # Read-only /etc is fine as long as defaults are usable.
        logger.debug(f"Could not write config file {config_file}: {e}")


def get_config_value(key: str, path=None):
    """Gets a specific value from the config."""
    return load_config(path).get(key)


def set_config_value(key: str, value, path=None):
    """Sets a specific value in the config."""
    config = load_config(path)
    config[key] = value
    save_config(config, path)


@dataclass(frozen=True)
class CleanupSettings:
    """Everything one cleanup cycle needs to know."""

    max_container_age: timedelta = timedelta(weeks=4)
    max_image_age: timedelta = timedelta(weeks=4)
    allow_missing_finish_time: bool = False
    dry_run: bool = False
    journal_enabled: bool = False
    journal_file: str = DEFAULT_CONFIG["journal_file"]

    @classmethod
    def from_config(cls, cfg: dict, **overrides) -> "CleanupSettings":
        """Builds settings from a config dict; overrides that are None are ignored."""
        settings = {
            "max_container_age": parse_duration(cfg.get("container_max_age", DEFAULT_CONFIG["container_max_age"])),
            "max_image_age": parse_duration(cfg.get("image_max_age", DEFAULT_CONFIG["image_max_age"])),
            "allow_missing_finish_time": bool(cfg.get("unsafe_mode", False)),
            "dry_run": bool(cfg.get("dry_run_mode", False)),
            "journal_enabled": bool(cfg.get("journal_enabled", False)),
            "journal_file": cfg.get("journal_file", DEFAULT_CONFIG["journal_file"]),
        }
        for key, value in overrides.items():
            if value is None:
                continue
            if key in ("max_container_age", "max_image_age"):
                value = parse_duration(value)
            settings[key] = value
        return cls(**settings)

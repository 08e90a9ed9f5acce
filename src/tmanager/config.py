"""Configuration management for TManager."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TMANAGER_HOME = Path(os.environ.get("TMANAGER_HOME", Path.home() / "tmanager"))
CONFIG_FILE = TMANAGER_HOME / "config" / "tmanager.conf"


@dataclass
class Config:
    """TManager configuration."""

    api_base_url: str = "http://localhost:3000"
    request_timeout: float = 10.0
    page_size: int = 10
    notifications_enabled: bool = True
    refresh_interval_minutes: int = 5
    timezone: str = "UTC"
    log_level: str = "INFO"


def _parse_bool(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


def _strip_value(value: str) -> str:
    """Handle quoted values with inline comments: "value" # comment"""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        if end_quote != -1:
            return value[1:end_quote]
        return value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from tmanager.conf, then apply env overrides."""
    config = Config()
    path = path or CONFIG_FILE

    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _strip_value(value.strip())

            try:
                match key:
                    case "api_base_url":
                        config.api_base_url = value.rstrip("/")
                    case "request_timeout":
                        config.request_timeout = float(value)
                    case "page_size":
                        config.page_size = int(value)
                    case "notifications_enabled":
                        config.notifications_enabled = _parse_bool(value)
                    case "refresh_interval_minutes":
                        config.refresh_interval_minutes = int(value)
                    case "timezone":
                        config.timezone = value
                    case "log_level":
                        config.log_level = value.upper()
                    case _:
                        logger.debug(f"Ignoring unknown config key: {key}")
            except ValueError:
                logger.warning(f"Invalid value for {key.upper()}: {value!r}, keeping default")

    env_url = os.environ.get("TMANAGER_API_BASE_URL")
    if env_url:
        config.api_base_url = env_url.rstrip("/")

    return config

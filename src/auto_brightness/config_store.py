from __future__ import annotations

import json
import logging
import math
import os
from pathlib import Path
from typing import Any

from .models import (
    DEFAULT_DAY_START,
    DEFAULT_NIGHT_START,
    DEFAULT_UPDATE_INTERVAL_SECONDS,
    Settings,
    clamp_brightness,
    clamp_interval,
    format_time_of_day,
    parse_time_of_day,
)


APP_FOLDER_NAME = "AutoBrightnessScheduler"
CONFIG_FILE_NAME = "settings.json"

logger = logging.getLogger(__name__)


def get_default_config_path() -> Path:
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / APP_FOLDER_NAME / CONFIG_FILE_NAME
    return Path.home() / ".config" / APP_FOLDER_NAME / CONFIG_FILE_NAME


class ConfigStore:
    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path = config_path or get_default_config_path()

    def load(self) -> Settings:
        if not self.config_path.exists():
            return Settings()

        try:
            raw_data = json.loads(self.config_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read settings from {self.config_path}, using defaults: {e}")
            return Settings()

        if not isinstance(raw_data, dict):
            logger.warning(f"Settings file {self.config_path} is not an object, using defaults")
            return Settings()
        return self._parse(raw_data)

    def save(self, settings: Settings) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "enabled": bool(settings.enabled),
            "use_geolocation": bool(settings.use_geolocation),
            "use_sun_schedule": bool(settings.use_sun_schedule),
            "start_with_system": bool(settings.start_with_system),
            "day_brightness": clamp_brightness(settings.day_brightness),
            "night_brightness": clamp_brightness(settings.night_brightness),
            "city": settings.city.strip(),
            "day_start_time": format_time_of_day(settings.day_start_time),
            "night_start_time": format_time_of_day(settings.night_start_time),
            "last_latitude": settings.last_latitude,
            "last_longitude": settings.last_longitude,
            "last_city": settings.last_city,
            "last_country": settings.last_country,
            "update_interval_seconds": clamp_interval(settings.update_interval_seconds),
            "sun_times_source": settings.sun_times_source,
        }
        self.config_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.debug(f"Saved settings to {self.config_path}")

    def _parse(self, data: dict[str, Any]) -> Settings:
        settings = Settings()
        settings.enabled = bool(data.get("enabled", True))
        settings.use_geolocation = bool(data.get("use_geolocation", True))
        settings.use_sun_schedule = bool(data.get("use_sun_schedule", True))
        settings.start_with_system = bool(data.get("start_with_system", False))
        settings.day_brightness = self._brightness(data.get("day_brightness"), 80)
        settings.night_brightness = self._brightness(data.get("night_brightness"), 33)
        settings.city = str(data.get("city") or "").strip()
        settings.day_start_time = parse_time_of_day(data.get("day_start_time"), DEFAULT_DAY_START)
        settings.night_start_time = parse_time_of_day(
            data.get("night_start_time"), DEFAULT_NIGHT_START
        )

        settings.last_latitude = self._optional_float(data.get("last_latitude"))
        settings.last_longitude = self._optional_float(data.get("last_longitude"))
        if settings.last_latitude is None or settings.last_longitude is None:
            settings.last_latitude = None
            settings.last_longitude = None
        settings.last_city = self._optional_text(data.get("last_city"))
        settings.last_country = self._optional_text(data.get("last_country"))

        try:
            interval = int(data.get("update_interval_seconds", DEFAULT_UPDATE_INTERVAL_SECONDS))
        except (TypeError, ValueError, OverflowError):
            interval = DEFAULT_UPDATE_INTERVAL_SECONDS
        settings.update_interval_seconds = clamp_interval(interval)

        source = str(data.get("sun_times_source", "api")).strip().lower()
        settings.sun_times_source = "astral" if source == "astral" else "api"
        return settings

    @staticmethod
    def _brightness(value: Any, default: int) -> int:
        try:
            return clamp_brightness(float(value))
        except (TypeError, ValueError, OverflowError):
            return default

    @staticmethod
    def _optional_float(value: Any) -> float | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number):
            return None
        return number

    @staticmethod
    def _optional_text(value: Any) -> str | None:
        if value is None:
            return None
        return str(value)

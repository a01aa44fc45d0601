from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Literal


LocationSource = Literal["IP Geolocation", "City Geocoding", "Last known"]
SunTimesSource = Literal["api", "astral"]
CycleState = Literal["disabled", "applied", "apply_failed", "skipped", "error"]

DEFAULT_DAY_START = time(7, 0)
DEFAULT_NIGHT_START = time(19, 0)
DEFAULT_UPDATE_INTERVAL_SECONDS = 60

SOURCE_SUN = "Sunrise/sunset"
SOURCE_MANUAL = "Manual schedule"
SOURCE_MANUAL_NO_LOCATION = "Manual schedule (location required)"
SOURCE_MANUAL_NO_SUN_TIMES = "Manual schedule (sunrise/sunset unavailable)"


def clamp_brightness(value: int | float) -> int:
    return max(0, min(100, int(round(value))))


def clamp_interval(value: int | float) -> int:
    return max(10, min(3600, int(value)))


def parse_time_of_day(value: object, default: time) -> time:
    """Parse ``HH:MM`` text (or pass a ``time`` through), falling back to ``default``."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    text = str(value or "").strip()
    if ":" not in text:
        return default
    parts = text.split(":")
    if len(parts) not in (2, 3):
        return default
    try:
        hour = int(parts[0])
        minute = int(parts[1])
    except (TypeError, ValueError):
        return default
    if hour < 0 or hour > 23 or minute < 0 or minute > 59:
        return default
    return time(hour=hour, minute=minute)


def format_time_of_day(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


@dataclass
class Settings:
    enabled: bool = True
    use_geolocation: bool = True
    use_sun_schedule: bool = True
    start_with_system: bool = False
    day_brightness: int = 80
    night_brightness: int = 33
    city: str = ""
    day_start_time: time = DEFAULT_DAY_START
    night_start_time: time = DEFAULT_NIGHT_START
    last_latitude: float | None = None
    last_longitude: float | None = None
    last_city: str | None = None
    last_country: str | None = None
    update_interval_seconds: int = DEFAULT_UPDATE_INTERVAL_SECONDS
    sun_times_source: SunTimesSource = "api"

    def has_cached_location(self) -> bool:
        return self.last_latitude is not None and self.last_longitude is not None

    def remember_location(self, location: LocationResult) -> None:
        self.last_latitude = location.latitude
        self.last_longitude = location.longitude
        self.last_city = location.city
        self.last_country = location.country

    def target_brightness(self, is_day: bool) -> int:
        return clamp_brightness(self.day_brightness if is_day else self.night_brightness)

    def location_label(self) -> str:
        if not self.has_cached_location():
            return "Not set"
        return _location_text(
            self.last_city or "",
            self.last_country or "",
            float(self.last_latitude),  # type: ignore[arg-type]
            float(self.last_longitude),  # type: ignore[arg-type]
        )


@dataclass(frozen=True)
class LocationResult:
    latitude: float
    longitude: float
    city: str = ""
    country: str = ""
    source: LocationSource = "Last known"

    def label(self) -> str:
        return _location_text(self.city, self.country, self.latitude, self.longitude)


@dataclass(frozen=True)
class SunTimes:
    sunrise: datetime
    sunset: datetime


@dataclass(frozen=True)
class ScheduleDecision:
    is_day: bool
    next_change_at: datetime
    source: str = SOURCE_MANUAL

    @property
    def period(self) -> str:
        return "Day" if self.is_day else "Night"


@dataclass(frozen=True)
class ApplyResult:
    ok: bool
    reason: str | None = None

    @classmethod
    def applied(cls) -> ApplyResult:
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: str) -> ApplyResult:
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class CycleStatus:
    state: CycleState
    evaluated_at: datetime | None = None
    decision: ScheduleDecision | None = None
    target_brightness: int | None = None
    location: LocationResult | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def text(self) -> str:
        if self.state == "disabled":
            return "Status: Disabled"
        if self.state == "skipped":
            return "Status: Busy (update already running)"
        if self.decision is None:
            return "Status: Error"
        return (
            f"Status: {self.decision.period} | {self.decision.source} | "
            f"Next change: {self.decision.next_change_at:%H:%M}"
        )


def _location_text(city: str, country: str, latitude: float, longitude: float) -> str:
    name = " ".join(part for part in (city.strip(), country.strip()) if part)
    coordinates = f"[{latitude:.4f}, {longitude:.4f}]"
    if name:
        return f"{name} {coordinates}"
    return coordinates

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Callable
from zoneinfo import ZoneInfo

import requests
from astral import LocationInfo
from astral.sun import sun
from tzlocal import get_localzone_name

from .models import SunTimes, SunTimesSource


SUNRISE_SUNSET_URL = "https://api.sunrise-sunset.org/json"
FETCH_TIMEOUT_SECONDS = 6.0
USER_AGENT = "AutoBrightnessScheduler/1.0"

SunTimesFetcher = Callable[[float, float, date], "SunTimes | None"]

logger = logging.getLogger(__name__)


def local_timezone() -> tzinfo:
    try:
        return ZoneInfo(get_localzone_name())
    except Exception as e:
        logger.warning(f"Could not determine local timezone, using UTC: {e}")
        return timezone.utc


class SunriseSunsetApi:
    """Fetches sunrise/sunset instants from api.sunrise-sunset.org."""

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        tz: tzinfo | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.timeout = timeout
        self.tz = tz

    def __call__(self, latitude: float, longitude: float, target_date: date) -> SunTimes | None:
        params = {
            "lat": f"{latitude}",
            "lng": f"{longitude}",
            "date": target_date.isoformat(),
            "formatted": 0,
        }
        try:
            response = self.session.get(SUNRISE_SUNSET_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Sunrise/sunset request failed: {e}")
            return None

        return self.parse_payload(payload, self.tz or local_timezone())

    @staticmethod
    def parse_payload(payload: Any, tz: tzinfo) -> SunTimes | None:
        if not isinstance(payload, dict):
            return None
        if payload.get("status") != "OK":
            logger.warning(f"Sunrise/sunset service returned status {payload.get('status')!r}")
            return None

        results = payload.get("results")
        if not isinstance(results, dict):
            return None

        sunrise = _parse_utc_instant(results.get("sunrise"))
        sunset = _parse_utc_instant(results.get("sunset"))
        if sunrise is None or sunset is None:
            logger.warning("Sunrise/sunset payload had unparsable instants")
            return None
        return SunTimes(sunrise=sunrise.astimezone(tz), sunset=sunset.astimezone(tz))


class AstralSunTimes:
    """Computes sunrise/sunset locally, for use without network access."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz

    def __call__(self, latitude: float, longitude: float, target_date: date) -> SunTimes | None:
        tz = self.tz or local_timezone()
        location = LocationInfo(
            name="Local",
            region="Local",
            timezone=getattr(tz, "key", "UTC"),
            latitude=latitude,
            longitude=longitude,
        )
        try:
            sun_times = sun(location.observer, date=target_date, tzinfo=tz)
        except ValueError as e:
            # Polar day or night: the sun never crosses the horizon.
            logger.info(f"No sunrise/sunset on {target_date} at ({latitude}, {longitude}): {e}")
            return None

        sunrise = sun_times.get("sunrise")
        sunset = sun_times.get("sunset")
        if sunrise is None or sunset is None:
            return None
        return SunTimes(sunrise=sunrise, sunset=sunset)


class SunTimesProvider:
    def __init__(self, fetcher: SunTimesFetcher | None = None) -> None:
        self.fetcher = fetcher or SunriseSunsetApi()
        self._cache_key: tuple[date, float, float] | None = None
        self._cached: SunTimes | None = None

    @classmethod
    def for_source(cls, source: SunTimesSource) -> SunTimesProvider:
        if source == "astral":
            return cls(AstralSunTimes())
        return cls(SunriseSunsetApi())

    def get_sun_times(self, latitude: float, longitude: float, target_date: date) -> SunTimes | None:
        key = (target_date, latitude, longitude)
        if self._cached is not None and self._cache_key == key:
            return self._cached

        try:
            sun_times = self.fetcher(latitude, longitude, target_date)
        except Exception as e:
            logger.warning(f"Sunrise/sunset lookup failed: {e}")
            return None

        if sun_times is None:
            return None

        self._cache_key, self._cached = key, sun_times
        logger.debug(
            f"Sun times for {target_date}: sunrise {sun_times.sunrise:%H:%M}, "
            f"sunset {sun_times.sunset:%H:%M}"
        )
        return sun_times

    def clear(self) -> None:
        self._cache_key, self._cached = None, None


def _parse_utc_instant(value: Any) -> datetime | None:
    text = str(value or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

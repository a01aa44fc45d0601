from __future__ import annotations

import logging
from typing import Any, Callable

from .models import LocationResult, Settings


LOOKUP_TIMEOUT_SECONDS = 5.0

IpLookup = Callable[[], "LocationResult | None"]
CityLookup = Callable[[str], "LocationResult | None"]
PersistCallback = Callable[[Settings], None]

logger = logging.getLogger(__name__)


def detect_location_from_ip(timeout: float = LOOKUP_TIMEOUT_SECONDS) -> LocationResult | None:
    try:
        import geocoder
    except Exception as e:
        logger.warning(f"geocoder is unavailable, skipping IP geolocation: {e}")
        return None

    try:
        result = geocoder.ip("me", timeout=timeout)
    except Exception as e:
        logger.debug(f"IP geolocation request failed: {e}")
        return None

    if not result or not getattr(result, "ok", False):
        logger.debug("IP geolocation service returned no result")
        return None

    coords = _parse_latlng(getattr(result, "latlng", None))
    if coords is None:
        logger.debug("IP geolocation payload had no usable coordinates")
        return None

    payload = getattr(result, "json", {})
    if not isinstance(payload, dict):
        payload = {}
    raw_payload = payload.get("raw", {})
    if not isinstance(raw_payload, dict):
        raw_payload = {}

    city = _first_non_empty(
        getattr(result, "city", None),
        payload.get("city"),
        raw_payload.get("city"),
    )
    country = _first_non_empty(
        getattr(result, "country", None),
        payload.get("country"),
        raw_payload.get("country"),
    )
    return LocationResult(
        latitude=coords[0],
        longitude=coords[1],
        city=city or "",
        country=country or "",
        source="IP Geolocation",
    )


def geocode_city(city: str, timeout: float = LOOKUP_TIMEOUT_SECONDS) -> LocationResult | None:
    query = city.strip()
    if not query:
        return None

    try:
        import geocoder
    except Exception as e:
        logger.warning(f"geocoder is unavailable, skipping city geocoding: {e}")
        return None

    try:
        result = geocoder.osm(query, maxRows=1, timeout=timeout)
    except Exception as e:
        logger.debug(f"Geocoding request for '{query}' failed: {e}")
        return None

    if not result or not getattr(result, "ok", False):
        logger.debug(f"No geocoding match for '{query}'")
        return None

    coords = _parse_latlng(getattr(result, "latlng", None))
    if coords is None:
        logger.debug(f"Geocoding match for '{query}' had no usable coordinates")
        return None

    return LocationResult(
        latitude=coords[0],
        longitude=coords[1],
        city=query,
        country="",
        source="City Geocoding",
    )


class LocationResolver:
    """Resolves a location by trying IP geolocation, the last known fix, then the city name."""

    def __init__(
        self,
        ip_lookup: IpLookup | None = None,
        city_lookup: CityLookup | None = None,
        on_persist: PersistCallback | None = None,
    ) -> None:
        self.ip_lookup = ip_lookup or detect_location_from_ip
        self.city_lookup = city_lookup or geocode_city
        self.on_persist = on_persist

    def resolve(self, settings: Settings) -> LocationResult | None:
        if settings.use_geolocation:
            location = self._safe_lookup("IP geolocation", self.ip_lookup)
            if location is not None:
                logger.info(f"Location from IP geolocation: {location.label()}")
                self._persist(settings, location)
                return location

        if settings.has_cached_location():
            location = LocationResult(
                latitude=float(settings.last_latitude),  # type: ignore[arg-type]
                longitude=float(settings.last_longitude),  # type: ignore[arg-type]
                city=settings.last_city or "",
                country=settings.last_country or "",
                source="Last known",
            )
            logger.debug(f"Using last known location: {location.label()}")
            return location

        city = settings.city.strip()
        if city:
            location = self._safe_lookup("city geocoding", self.city_lookup, city)
            if location is not None:
                logger.info(f"Location from city geocoding: {location.label()}")
                self._persist(settings, location)
                return location

        logger.info("No location could be resolved")
        return None

    def _persist(self, settings: Settings, location: LocationResult) -> None:
        settings.remember_location(location)
        if self.on_persist is None:
            return
        try:
            self.on_persist(settings)
        except OSError as e:
            logger.warning(f"Could not save resolved location: {e}")

    @staticmethod
    def _safe_lookup(name: str, lookup: Callable[..., LocationResult | None], *args: Any) -> LocationResult | None:
        try:
            return lookup(*args)
        except Exception as e:
            logger.warning(f"{name} failed: {e}")
            return None


def _parse_latlng(latlng: Any) -> tuple[float, float] | None:
    if not latlng or len(latlng) != 2:
        return None
    try:
        latitude = float(latlng[0])
        longitude = float(latlng[1])
    except (TypeError, ValueError):
        return None
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        return None
    return (latitude, longitude)


def _first_non_empty(*values) -> str | None:
    for value in values:
        text = str(value or "").strip()
        if text:
            return text
    return None

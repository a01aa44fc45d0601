import pytest
from types import SimpleNamespace
from unittest.mock import Mock, patch

from auto_brightness.location import LocationResolver, detect_location_from_ip, geocode_city
from auto_brightness.models import LocationResult, Settings

IP_RESULT = LocationResult(52.52, 13.405, "Berlin", "Germany", "IP Geolocation")
CITY_RESULT = LocationResult(48.8566, 2.3522, "Paris", "", "City Geocoding")


@pytest.fixture
def ip_lookup():
    return Mock(return_value=IP_RESULT)


@pytest.fixture
def city_lookup():
    return Mock(return_value=CITY_RESULT)


class TestLocationResolver:
    """Tests for the location fallback chain"""

    def test_ip_geolocation_wins(self, ip_lookup, city_lookup):
        persisted = Mock()
        resolver = LocationResolver(ip_lookup, city_lookup, on_persist=persisted)
        settings = Settings(use_geolocation=True, city="Paris", last_latitude=1.0, last_longitude=2.0)

        assert resolver.resolve(settings) == IP_RESULT
        city_lookup.assert_not_called()
        persisted.assert_called_once_with(settings)
        assert settings.last_latitude == IP_RESULT.latitude
        assert settings.last_city == "Berlin"
        assert settings.last_country == "Germany"

    def test_falls_back_to_last_known(self, city_lookup):
        persisted = Mock()
        resolver = LocationResolver(Mock(return_value=None), city_lookup, on_persist=persisted)
        settings = Settings(
            use_geolocation=True,
            city="Paris",
            last_latitude=59.33,
            last_longitude=18.07,
            last_city="Stockholm",
            last_country="Sweden",
        )

        location = resolver.resolve(settings)
        assert location == LocationResult(59.33, 18.07, "Stockholm", "Sweden", "Last known")
        city_lookup.assert_not_called()
        persisted.assert_not_called()

    def test_geolocation_exception_falls_through(self, city_lookup):
        resolver = LocationResolver(Mock(side_effect=TimeoutError("timed out")), city_lookup)
        settings = Settings(use_geolocation=True, last_latitude=1.5, last_longitude=2.5)

        location = resolver.resolve(settings)
        assert location is not None
        assert location.source == "Last known"

    def test_geocodes_city_without_geolocation_or_cache(self, ip_lookup, city_lookup):
        persisted = Mock()
        resolver = LocationResolver(ip_lookup, city_lookup, on_persist=persisted)
        settings = Settings(use_geolocation=False, city="  Paris ")

        assert resolver.resolve(settings) == CITY_RESULT
        ip_lookup.assert_not_called()
        city_lookup.assert_called_once_with("Paris")
        persisted.assert_called_once_with(settings)
        assert settings.last_latitude == CITY_RESULT.latitude
        assert settings.last_longitude == CITY_RESULT.longitude

    def test_not_found(self, ip_lookup, city_lookup):
        city_lookup.return_value = None
        resolver = LocationResolver(ip_lookup, city_lookup)

        assert resolver.resolve(Settings(use_geolocation=False, city="Atlantis")) is None
        assert resolver.resolve(Settings(use_geolocation=False, city="")) is None
        ip_lookup.assert_not_called()

    def test_persist_failure_does_not_lose_location(self, ip_lookup):
        resolver = LocationResolver(ip_lookup, Mock(), on_persist=Mock(side_effect=OSError("read-only")))
        assert resolver.resolve(Settings()) == IP_RESULT


class TestLookups:
    """Tests for the geocoder-backed lookups"""

    def test_ip_lookup_parses_result(self):
        result = SimpleNamespace(
            ok=True,
            latlng=[52.52, 13.405],
            city="Berlin",
            country="DE",
            json={"raw": {}},
        )
        with patch("geocoder.ip", return_value=result) as ip:
            location = detect_location_from_ip()

        ip.assert_called_once_with("me", timeout=5.0)
        assert location == LocationResult(52.52, 13.405, "Berlin", "DE", "IP Geolocation")

    @pytest.mark.parametrize("result", [
        None,
        SimpleNamespace(ok=False, latlng=[1.0, 2.0]),
        SimpleNamespace(ok=True, latlng=[]),
        SimpleNamespace(ok=True, latlng=["north", "east"]),
    ])
    def test_ip_lookup_without_usable_result(self, result):
        with patch("geocoder.ip", return_value=result):
            assert detect_location_from_ip() is None

    def test_ip_lookup_network_error(self):
        with patch("geocoder.ip", side_effect=ConnectionError("offline")):
            assert detect_location_from_ip() is None

    def test_city_lookup_parses_numeric_strings(self):
        result = SimpleNamespace(ok=True, latlng=["48.8566", "2.3522"])
        with patch("geocoder.osm", return_value=result) as osm:
            location = geocode_city("Paris")

        osm.assert_called_once_with("Paris", maxRows=1, timeout=5.0)
        assert location == CITY_RESULT

    def test_city_lookup_no_match(self):
        with patch("geocoder.osm", return_value=SimpleNamespace(ok=False, latlng=None)):
            assert geocode_city("Nowhere") is None

    def test_blank_city_is_not_looked_up(self):
        with patch("geocoder.osm") as osm:
            assert geocode_city("   ") is None
            osm.assert_not_called()

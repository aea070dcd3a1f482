"""Unit tests for distance and geohash computation."""

import pytest

from seconde.core.geo import distance_km, encode_geohash, within_radius
from seconde.domain.entities import GeoPoint

PARIS = GeoPoint(48.8566, 2.3522)
LYON = GeoPoint(45.7640, 4.8357)
SYDNEY = GeoPoint(-33.8688, 151.2093)


class TestDistance:
    """Test haversine distance."""

    def test_identity(self):
        assert distance_km(PARIS, PARIS) == 0.0

    @pytest.mark.parametrize("a,b", [(PARIS, LYON), (LYON, SYDNEY), (SYDNEY, PARIS)])
    def test_symmetry(self, a, b):
        assert distance_km(a, b) == pytest.approx(distance_km(b, a))

    def test_known_distance(self):
        """Paris to Lyon is about 392 km as the crow flies."""
        assert distance_km(PARIS, LYON) == pytest.approx(392, abs=2)

    def test_one_degree_of_latitude(self):
        assert distance_km(GeoPoint(0, 0), GeoPoint(1, 0)) == pytest.approx(111.19, abs=0.01)

    def test_antipodes_do_not_fail(self):
        distance = distance_km(GeoPoint(0, 0), GeoPoint(0, 180))
        assert distance == pytest.approx(3.141592653589793 * 6371, rel=1e-9)

    @pytest.mark.parametrize("d_lat,d_lon", [(0.5, 0.0), (0.0, 0.5), (-0.3, -0.3), (0.2, -0.4)])
    def test_monotonic_along_bearing(self, d_lat, d_lon):
        """Moving farther from the origin in a fixed direction always increases distance."""
        distances = [
            distance_km(PARIS, GeoPoint(PARIS.lat + step * d_lat, PARIS.lon + step * d_lon))
            for step in range(1, 20)
        ]
        assert all(a < b for a, b in zip(distances, distances[1:]))

    def test_never_negative(self):
        assert distance_km(SYDNEY, LYON) > 0


class TestWithinRadius:
    """Test radius filtering."""

    def test_filters_and_sorts(self):
        near = GeoPoint(48.86, 2.35)
        mid = GeoPoint(48.95, 2.35)
        candidates = [("mid", mid), ("far", LYON), ("near", near), ("nowhere", None)]

        kept = within_radius(PARIS, candidates, 25)

        assert [value for value, _ in kept] == ["near", "mid"]
        assert kept[0][1] < kept[1][1]

    def test_radius_is_inclusive(self):
        point = GeoPoint(1, 0)
        exact = distance_km(GeoPoint(0, 0), point)
        assert within_radius(GeoPoint(0, 0), [("edge", point)], exact) == [("edge", exact)]


class TestGeohash:
    """Test geohash encoding."""

    def test_known_value(self):
        """Reference value for 57.64911, 10.40744."""
        assert encode_geohash(57.64911, 10.40744, 11) == "u4pruydqqvj"

    def test_precision(self):
        assert len(encode_geohash(PARIS.lat, PARIS.lon)) == 7
        assert len(encode_geohash(PARIS.lat, PARIS.lon, 5)) == 5

    def test_prefix_property(self):
        """Shorter hashes are prefixes of longer ones."""
        full = encode_geohash(PARIS.lat, PARIS.lon, 9)
        assert full.startswith(encode_geohash(PARIS.lat, PARIS.lon, 4))

    def test_paris(self):
        assert encode_geohash(PARIS.lat, PARIS.lon, 5) == "u09tv"

"""
Great-circle distance and geohash encoding.

Example:
    >>> from seconde.core.geo import distance_km, GeoPoint
    >>> distance_km(GeoPoint(48.8566, 2.3522), GeoPoint(45.7640, 4.8357))
    391.5...
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Tuple, TypeVar

from seconde.domain.entities.item import GeoPoint

EARTH_RADIUS_KM = 6371.0
GEOHASH_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"

T = TypeVar("T")


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """
    Haversine distance between two points on a sphere of radius 6371 km.

    Symmetric, never negative, and zero for identical points.

    Args:
        a: First point (degrees).
        b: Second point (degrees).

    Returns:
        Distance in kilometres.
    """
    lat1, lon1 = math.radians(a[0]), math.radians(a[1])
    lat2, lon2 = math.radians(b[0]), math.radians(b[1])
    d_lat = lat2 - lat1
    d_lon = lon2 - lon1

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push h a hair outside [0, 1]
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def within_radius(
    center: GeoPoint,
    candidates: Iterable[Tuple[T, Optional[GeoPoint]]],
    max_distance_km: float,
) -> List[Tuple[T, float]]:
    """
    Keep candidates no farther than ``max_distance_km``, nearest first.

    Candidates without coordinates are skipped.

    Args:
        center: Reference point.
        candidates: (value, point) pairs.
        max_distance_km: Inclusive radius.

    Returns:
        (value, distance) pairs sorted ascending by distance.
    """
    kept = []
    for value, point in candidates:
        if point is None:
            continue
        distance = distance_km(center, point)
        if distance <= max_distance_km:
            kept.append((value, distance))
    kept.sort(key=lambda pair: pair[1])
    return kept


def encode_geohash(latitude: float, longitude: float, precision: int = 7) -> str:
    """
    Encode a coordinate as a base32 geohash.

    Bits alternate longitude then latitude, five bits per character.
    """
    lat_min, lat_max = -90.0, 90.0
    lon_min, lon_max = -180.0, 180.0
    geohash = []
    idx = 0
    bit = 0
    even_bit = True

    while len(geohash) < precision:
        if even_bit:
            mid = (lon_min + lon_max) / 2
            if longitude >= mid:
                idx = (idx << 1) + 1
                lon_min = mid
            else:
                idx = idx << 1
                lon_max = mid
        else:
            mid = (lat_min + lat_max) / 2
            if latitude >= mid:
                idx = (idx << 1) + 1
                lat_min = mid
            else:
                idx = idx << 1
                lat_max = mid

        even_bit = not even_bit
        bit += 1
        if bit == 5:
            geohash.append(GEOHASH_BASE32[idx])
            bit = 0
            idx = 0

    return "".join(geohash)

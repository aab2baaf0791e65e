from __future__ import annotations

import math

from geo.aoi import COORD_FACTOR, Bounds, Location, Rectangle


EARTH_RADIUS_M = 6_371_000


def to_degrees(value: int) -> float:
    return value / COORD_FACTOR


def latitude_degrees(point: Location) -> float:
    return to_degrees(point.latitude)


def longitude_degrees(point: Location) -> float:
    return to_degrees(point.longitude)


def normalize_rectangle(lo: Location, hi: Location) -> Bounds:
    return Rectangle(lo=lo, hi=hi).normalized()


def contains(rect: Rectangle | Bounds, point: Location) -> bool:
    """
    Boundary-inclusive containment test on the encoded integer grid.
    """
    b = rect.normalized() if isinstance(rect, Rectangle) else rect
    lat = point.latitude
    lon = point.longitude
    return b.left <= lon <= b.right and b.bottom <= lat <= b.top


def distance_m(start: Location, end: Location) -> int:
    """
    Great-circle distance in whole meters using the haversine formula.

    See http://mathforum.org/library/drmath/view/51879.html.
    The result is truncated, not rounded.
    """
    lat1 = math.radians(latitude_degrees(start))
    lat2 = math.radians(latitude_degrees(end))
    lon1 = math.radians(longitude_degrees(start))
    lon2 = math.radians(longitude_degrees(end))
    d_lat = lat2 - lat1
    d_lon = lon2 - lon1

    a = math.sin(d_lat / 2.0) * math.sin(d_lat / 2.0) + math.cos(lat1) * math.cos(
        lat2
    ) * math.sin(d_lon / 2.0) * math.sin(d_lon / 2.0)
    # Rounding can push `a` just past 1 for antipodal points.
    a = max(0.0, min(1.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return int(EARTH_RADIUS_M * c)

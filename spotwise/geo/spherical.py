# spotwise/geo/spherical.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

from spotwise.core.errors import InvalidLocation

# IUGG mean earth radius
EARTH_RADIUS_M = 6_371_008.8


@dataclass(frozen=True)
class GeoPoint:
    longitude: float
    latitude: float

    def as_coordinates(self) -> List[float]:
        return [self.longitude, self.latitude]


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    # one range, or two when the box wraps across the antimeridian
    lon_ranges: Tuple[Tuple[float, float], ...]


def validate_point(longitude, latitude) -> GeoPoint:
    try:
        lon = float(longitude)
        lat = float(latitude)
    except (TypeError, ValueError):
        raise InvalidLocation("Location coordinates must be numbers.")
    if isinstance(longitude, bool) or isinstance(latitude, bool):
        raise InvalidLocation("Location coordinates must be numbers.")
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise InvalidLocation("Location coordinates must be finite.")
    if not -180.0 <= lon <= 180.0:
        raise InvalidLocation(f"Longitude {lon} outside [-180, 180].")
    if not -90.0 <= lat <= 90.0:
        raise InvalidLocation(f"Latitude {lat} outside [-90, 90].")
    return GeoPoint(longitude=lon, latitude=lat)


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # clamp: rounding can push h a hair above 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def bounding_box(center: GeoPoint, radius_m: float) -> BoundingBox:
    """
    Conservative lat/lon box enclosing every point within `radius_m` of `center`.

    Only a pre-filter for indexed columns; membership is decided by haversine_m.
    """
    angular = radius_m / EARTH_RADIUS_M
    lat = math.radians(center.latitude)
    lon = math.radians(center.longitude)

    min_lat = lat - angular
    max_lat = lat + angular

    if min_lat <= -math.pi / 2 or max_lat >= math.pi / 2 or angular >= math.pi:
        # box reaches a pole: every longitude qualifies
        return BoundingBox(
            min_lat=math.degrees(max(min_lat, -math.pi / 2)),
            max_lat=math.degrees(min(max_lat, math.pi / 2)),
            lon_ranges=((-180.0, 180.0),),
        )

    delta_lon = math.asin(min(1.0, math.sin(angular) / math.cos(lat)))
    min_lon = math.degrees(lon - delta_lon)
    max_lon = math.degrees(lon + delta_lon)

    if min_lon < -180.0:
        ranges = ((min_lon + 360.0, 180.0), (-180.0, max_lon))
    elif max_lon > 180.0:
        ranges = ((min_lon, 180.0), (-180.0, max_lon - 360.0))
    else:
        ranges = ((min_lon, max_lon),)

    return BoundingBox(
        min_lat=math.degrees(min_lat),
        max_lat=math.degrees(max_lat),
        lon_ranges=ranges,
    )

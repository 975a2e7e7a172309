"""
StoreHub Backend: Geographic Helpers
=====================================

What:  Great-circle distance and the bounding box used to prefilter
       proximity queries before exact distances are computed.
"""

from dataclasses import dataclass
from math import asin, cos, degrees, isfinite, radians, sin, sqrt
from typing import Optional, Tuple

from storehub.exceptions import ValidationError

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Distance in meters between two (longitude, latitude) points."""
    lng1_r, lat1_r, lng2_r, lat2_r = map(radians, [lng1, lat1, lng2, lat2])
    dlng = lng2_r - lng1_r
    dlat = lat2_r - lat1_r
    a = sin(dlat / 2) ** 2 + cos(lat1_r) * cos(lat2_r) * sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(min(1.0, sqrt(a)))


def validate_point(longitude: float, latitude: float) -> Tuple[float, float]:
    if not isfinite(longitude) or not -180.0 <= longitude <= 180.0:
        raise ValidationError(
            message="Longitude must be a number between -180 and 180.",
            field="lng",
            context={"lng": longitude},
        )
    if not isfinite(latitude) or not -90.0 <= latitude <= 90.0:
        raise ValidationError(
            message="Latitude must be a number between -90 and 90.",
            field="lat",
            context={"lat": latitude},
        )
    return longitude, latitude


@dataclass(frozen=True)
class BoundingBox:
    """
    Degrees around a center that contain every point within a radius.

    `west`/`east` are None when the box spans every longitude (radius reaching
    a pole). When the box crosses the antimeridian, west > east.
    """
    south: float
    north: float
    west: Optional[float]
    east: Optional[float]

    @property
    def wraps(self) -> bool:
        return self.west is not None and self.east is not None and self.west > self.east


def bounding_box(longitude: float, latitude: float, radius_m: float) -> BoundingBox:
    lat_delta = degrees(radius_m / EARTH_RADIUS_M)
    south = max(-90.0, latitude - lat_delta)
    north = min(90.0, latitude + lat_delta)

    # Longitude degrees shrink toward the poles: size the box for the
    # highest latitude it reaches
    widest_lat = max(abs(south), abs(north))
    cos_lat = cos(radians(widest_lat))
    if cos_lat < 1e-9:
        return BoundingBox(south=south, north=north, west=None, east=None)

    lng_delta = degrees(radius_m / (EARTH_RADIUS_M * cos_lat))
    if lng_delta >= 180.0:
        return BoundingBox(south=south, north=north, west=None, east=None)

    west = longitude - lng_delta
    east = longitude + lng_delta
    if west < -180.0:
        west += 360.0
    if east > 180.0:
        east -= 360.0
    return BoundingBox(south=south, north=north, west=west, east=east)

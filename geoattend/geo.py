"""Geofence check: haversine distance reconciled with the device's reported accuracy."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from geoattend.exceptions import ConfigurationError, InvalidInputError

EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class Anchor:
    latitude: float
    longitude: float
    radius_meters: float

    def __post_init__(self):
        if not math.isfinite(self.radius_meters) or self.radius_meters < 0:
            raise ConfigurationError(f"Anchor radius must be a non-negative number, got {self.radius_meters!r}")
        try:
            _check_coordinates(self.latitude, self.longitude)
        except InvalidInputError as e:
            raise ConfigurationError(f"Invalid anchor coordinates: {e}") from e


@dataclass(frozen=True)
class RangeCheck:
    within_range: bool
    distance_meters: float


def _check_coordinates(latitude: float, longitude: float) -> None:
    if latitude is None or longitude is None:
        raise InvalidInputError("Latitude and longitude are required")
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise InvalidInputError("Coordinates must be finite numbers")
    if not -90.0 <= latitude <= 90.0:
        raise InvalidInputError(f"Latitude out of range: {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise InvalidInputError(f"Longitude out of range: {longitude}")


def validate_fix(latitude: float, longitude: float, accuracy_meters: Optional[float]) -> None:
    """Reject a device fix that cannot be judged: bad coordinates or no usable accuracy."""
    _check_coordinates(latitude, longitude)
    if accuracy_meters is None:
        raise InvalidInputError("Location accuracy is required")
    if not math.isfinite(accuracy_meters) or accuracy_meters <= 0:
        raise InvalidInputError(f"Location accuracy must be a positive number of meters, got {accuracy_meters!r}")


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two (lat, lon) points given in degrees."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    # rounding can push a just past 1 for antipodal points
    a = min(1.0, a)
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_within_range(
    student_lat: float,
    student_lon: float,
    accuracy_meters: Optional[float],
    anchor: Anchor,
) -> RangeCheck:
    """Decide whether a reported fix lies inside the anchor's geofence.

    The reported accuracy is added to the measured distance before comparing
    against the radius, so an imprecise fix near the boundary is rejected
    rather than accepted. An accuracy of zero or none at all is not treated as
    a perfect fix: it is an input error.
    """
    validate_fix(student_lat, student_lon, accuracy_meters)

    distance = haversine_m(student_lat, student_lon, anchor.latitude, anchor.longitude)
    return RangeCheck(
        within_range=(distance + accuracy_meters) <= anchor.radius_meters,
        distance_meters=distance,
    )

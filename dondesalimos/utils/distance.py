import math
from typing import Optional, Tuple

from geopy.distance import great_circle

EARTH_RADIUS_METERS = 6371000.0

Coordinate = Tuple[float, float]


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters between two (lat, lng) points."""
    return great_circle(a, b, radius=EARTH_RADIUS_METERS / 1000).meters


def format_distance(meters: Optional[float]) -> Optional[str]:
    if meters is None:
        return None
    if meters < 1000:
        return f"{int(meters + 0.5)} m"
    return f"{meters / 1000:.1f} km"


def is_valid_coordinate(lat, lng) -> bool:
    """Usable coordinate: finite numbers in range, neither axis exactly zero."""
    for value in (lat, lng):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if math.isnan(value) or math.isinf(value) or value == 0:
            return False
    return -90 <= lat <= 90 and -180 <= lng <= 180

import math
from typing import Tuple

EARTH_RADIUS_METERS = 6_371_000


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in metres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(lat: float, lng: float, radius_meters: float) -> Tuple[float, float, float, float]:
    """
    Lat/lng box that contains every point within `radius_meters` of the centre.

    Returns:
        Tuple: (min_lat, max_lat, min_lng, max_lng)
    """
    d_lat = math.degrees(radius_meters / EARTH_RADIUS_METERS)
    min_lat, max_lat = max(-90.0, lat - d_lat), min(90.0, lat + d_lat)

    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6 or max_lat >= 90.0 or min_lat <= -90.0:
        return min_lat, max_lat, -180.0, 180.0

    d_lng = math.degrees(radius_meters / (EARTH_RADIUS_METERS * cos_lat))
    if d_lng >= 180.0:
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, max(-180.0, lng - d_lng), min(180.0, lng + d_lng)

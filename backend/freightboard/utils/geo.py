"""Great-circle distance between load endpoints."""

from math import asin, cos, radians, sin, sqrt

EARTH_RADIUS_MILES = 3958.8


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in statute miles between two (lat, lon) points in degrees."""
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * asin(sqrt(a))


def route_distance(origin: dict, destination: dict) -> float | None:
    """Rounded distance between two location dicts, or None without coordinates."""
    try:
        lat1, lon1 = float(origin["latitude"]), float(origin["longitude"])
        lat2, lon2 = float(destination["latitude"]), float(destination["longitude"])
    except (KeyError, TypeError, ValueError):
        return None
    return round(haversine_miles(lat1, lon1, lat2, lon2), 1)


def rate_per_mile(rate: float, distance_miles: float | None) -> float | None:
    if not distance_miles:
        return None
    return round(rate / distance_miles, 2)

"""Great-circle helpers shared by the match and presence scorers."""

import math

EARTH_RADIUS_MILES = 3958.8
MILES_PER_DEGREE_LAT = 69.05


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the great-circle distance in miles between two lat/lng points."""
    R = EARTH_RADIUS_MILES
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlng / 2) ** 2
    )
    return R * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box(lat: float, lng: float, radius_miles: float) -> tuple[float, float, float, float]:
    """Return ``(min_lat, min_lng, max_lat, max_lng)`` enclosing the radius.

    Cheap pre-filter only: callers refine with ``haversine_miles``.  Near the
    poles the longitude span is widened to the full globe.
    """
    dlat = radius_miles / MILES_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6:
        dlng = 180.0
    else:
        dlng = min(180.0, radius_miles / (MILES_PER_DEGREE_LAT * cos_lat))
    return (
        max(-90.0, lat - dlat),
        max(-180.0, lng - dlng),
        min(90.0, lat + dlat),
        min(180.0, lng + dlng),
    )


def circle_area_sq_miles(radius_miles: float) -> float:
    return math.pi * radius_miles * radius_miles

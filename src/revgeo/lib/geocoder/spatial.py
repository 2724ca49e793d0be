"""Geodesic distance, meter-to-degree conversion, and synthetic bounding boxes."""

import math

from pyproj import Geod

from revgeo.lib.geocoder.base import BoundingBox, GeoPoint

# Same ellipsoid PostGIS uses for geography distance
WGS84 = Geod(ellps="WGS84")

METERS_PER_DEGREE_LAT = 111_320


def geodesic_distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Return the WGS84 geodesic distance between two points in meters."""
    _, _, distance = WGS84.inv(a.longitude, a.latitude, b.longitude, b.latitude)
    return distance


def meters_to_degrees(meters: float, latitude: float) -> float:
    """Convert meters to approximate degrees at a given latitude.

    Args:
        meters: Distance in meters.
        latitude: WGS84 latitude for longitude scaling.

    Returns:
        Conservative radius in degrees (max of lat/lng conversions).
    """
    if meters <= 0:
        return 0.0

    lat_deg = meters / METERS_PER_DEGREE_LAT
    # Clamp near the poles where cos() approaches zero
    cos_lat = max(math.cos(math.radians(latitude)), 1e-6)
    lng_deg = meters / (METERS_PER_DEGREE_LAT * cos_lat)
    return max(lat_deg, lng_deg)


def bounding_box_around(point: GeoPoint, meters: float) -> BoundingBox:
    """Build a square box with the given half-size centered on a point, clipped to valid ranges.

    Args:
        point: Center of the box.
        meters: Half-size of the box in meters.

    Returns:
        A BoundingBox strictly containing the point when ``meters`` > 0.
    """
    lat_delta = meters / METERS_PER_DEGREE_LAT
    lng_delta = min(meters_to_degrees(meters, point.latitude), 180.0)
    return BoundingBox(
        min_longitude=max(point.longitude - lng_delta, -180.0),
        min_latitude=max(point.latitude - lat_delta, -90.0),
        max_longitude=min(point.longitude + lng_delta, 180.0),
        max_latitude=min(point.latitude + lat_delta, 90.0),
    )

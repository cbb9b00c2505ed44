"""
Local displacement to latitude/longitude around a single anchor fix.

Equirectangular (flat-earth) approximation:

    Δlat = y / 111320
    Δlon = x / (111320 · cos(anchor_lat))

x points east, y points north, both in meters. Error grows with distance from
the anchor and towards the poles; fine for meters to a few kilometers, not for
long sessions. The anchor is fixed for the whole session, it is never
re-acquired.
"""

import math

from .models import LatLng, Vector3

METERS_PER_DEGREE = 111320.0  # one degree of latitude, and of longitude at the equator
EARTH_RADIUS = 6371000  # meters, for haversine
_MIN_COS_LAT = 1e-12


def _wrap_longitude(lon):
    """Keep longitude in [-180, 180)."""
    return (lon + 180.0) % 360.0 - 180.0


def meters_per_degree_lon(latitude):
    """Meters spanned by one degree of longitude at this latitude (0 at the poles)."""
    cos_lat = math.cos(math.radians(latitude))
    if abs(cos_lat) < _MIN_COS_LAT:
        return 0.0
    return METERS_PER_DEGREE * cos_lat


def project(anchor, displacement):
    """
    Project a planar displacement onto absolute coordinates.

    Args:
        anchor (AnchorFix): session start position (degrees)
        displacement (Vector3): east (x) / north (y) offset in meters; z ignored

    Returns:
        LatLng: projected position
    """
    latitude = anchor.latitude + displacement[1] / METERS_PER_DEGREE

    lon_scale = meters_per_degree_lon(anchor.latitude)
    if lon_scale == 0.0:
        # Longitude is undefined at the pole; do not move along it
        longitude = anchor.longitude
    else:
        longitude = _wrap_longitude(anchor.longitude + displacement[0] / lon_scale)

    return LatLng(latitude, longitude)


def unproject(anchor, position):
    """
    Inverse of project(): absolute position to local meters from the anchor.

    Returns:
        Vector3: (east, north, 0) in meters
    """
    y = (position.latitude - anchor.latitude) * METERS_PER_DEGREE
    delta_lon = _wrap_longitude(position.longitude - anchor.longitude)
    x = delta_lon * meters_per_degree_lon(anchor.latitude)
    return Vector3(x, y, 0.0)


def project_path(anchor, points):
    """Project a sequence of TrajectoryPoints (or Vector3 displacements)."""
    projected = []
    for point in points:
        displacement = getattr(point, 'displacement', point)
        projected.append(project(anchor, displacement))
    return projected


def haversine_distance(a, b):
    """
    Great-circle distance between two positions in meters.

    Args:
        a, b: objects with latitude/longitude in degrees (LatLng or AnchorFix)
    """
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_phi = math.radians(b.latitude - a.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)

    h = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    return 2 * EARTH_RADIUS * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def path_length(positions):
    """Sum of haversine segment lengths along a LatLng sequence."""
    total = 0.0
    for previous, current in zip(positions, positions[1:]):
        total += haversine_distance(previous, current)
    return total


__all__ = [
    'METERS_PER_DEGREE',
    'project', 'unproject', 'project_path', 'haversine_distance', 'path_length',
    'meters_per_degree_lon',
]

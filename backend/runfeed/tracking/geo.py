import math

from runfeed.core.constants import EARTH_RADIUS_M


def haversine_m(lat1, lon1, lat2, lon2):
    """Return great‑circle distance in meters between two WGS84 points.

    Uses the standard haversine formula; sufficient for per‑sample distances
    over a typical GPS activity track.
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def is_valid_coordinate(lat, lon) -> bool:
    if lat is None or lon is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def thin_route(points: list, max_points: int) -> list:
    """Halve a polyline by keeping every second point until it fits.

    The first and last points always survive so the drawn route still starts
    and ends where the runner did.
    """
    if max_points < 2:
        raise ValueError("max_points must be >= 2")
    while len(points) > max_points:
        last = points[-1]
        points = points[::2]
        if points[-1] is not last:
            points.append(last)
    return points

import math

from mm_eval.app.protocols import DistanceFunction
from mm_eval.domain.entities.geography import Point

EARTH_RADIUS_M = 6_371_000.0


def _project(p, a, b) -> Point:
    """Closest point to p on segment ab, computed in coordinate space."""
    dx, dy = b.x - a.x, b.y - a.y
    L2 = dx * dx + dy * dy
    if L2 == 0:
        return Point(a.x, a.y)
    s = ((p.x - a.x) * dx + (p.y - a.y) * dy) / L2
    s = min(1.0, max(0.0, s))
    return Point(a.x + s * dx, a.y + s * dy)


class EuclideanDistance(DistanceFunction):
    """Planar distance for projected / local coordinate datasets."""

    def distance(self, a, b) -> float:
        return math.hypot(b.x - a.x, b.y - a.y)

    def point_to_segment_distance(self, p, a, b) -> float:
        return self.distance(p, _project(p, a, b))

    def __repr__(self) -> str:
        return "EuclideanDistance()"


class GreatCircleDistance(DistanceFunction):
    """Haversine distance in meters; x is longitude, y is latitude (degrees)."""

    def __init__(self, radius_m: float = EARTH_RADIUS_M):
        self.radius_m = radius_m

    def distance(self, a, b) -> float:
        lat1, lat2 = math.radians(a.y), math.radians(b.y)
        dlat = lat2 - lat1
        dlon = math.radians(b.x - a.x)
        h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        r = math.sqrt(h)
        if r > 1.0:  # rounding noise on antipodal points; NaN passes through
            r = 1.0
        return 2 * self.radius_m * math.asin(r)

    def point_to_segment_distance(self, p, a, b) -> float:
        # projection in lon/lat space is accurate enough at road-segment scale
        return self.distance(p, _project(p, a, b))

    def __repr__(self) -> str:
        return f"GreatCircleDistance(radius_m={self.radius_m})"

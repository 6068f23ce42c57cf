from dataclasses import dataclass


# Core geometry type shared by distance functions and the spatial index
@dataclass(frozen=True)
class Point:
    x: float  # lon for geographic datasets, meters for projected ones
    y: float


BBox = tuple[float, float, float, float]  # (xmin, ymin, xmax, ymax)

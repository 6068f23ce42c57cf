# domain/mechanics/mechanics_simplify.py
import numpy as np

from mm_eval.app.protocols import DistanceFunction, TrajectorySimplifier
from mm_eval.domain.entities.trajectory import Trajectory


class DouglasPeuckerFilter(TrajectorySimplifier):
    """
    Douglas-Peucker key-point selection.
    tolerance == 0 means "keep everything"; ties on the max distance go to the lowest index.
    """

    def __init__(self, tolerance: float, distance: DistanceFunction | None = None):
        if not tolerance >= 0:
            raise ValueError(f"tolerance must be >= 0, got {tolerance!r}")
        self.tolerance, self.distance = tolerance, distance

    def key_indices(self, trajectory: Trajectory) -> list[int]:
        n = len(trajectory)
        if self.tolerance == 0 or n <= 2:
            return list(range(n))
        df = self.distance or trajectory.distance
        pts = trajectory.points
        keep = np.zeros(n, dtype=bool)
        keep[0] = keep[n - 1] = True
        stack = [(0, n - 1)]
        while stack:
            first, last = stack.pop()
            if last - first < 2:
                continue
            a, b = pts[first], pts[last]
            d = np.fromiter(
                (df.point_to_segment_distance(pts[i], a, b) for i in range(first + 1, last)),
                dtype=float,
                count=last - first - 1,
            )
            k = int(np.argmax(d))  # first occurrence on ties
            if d[k] > self.tolerance:
                split = first + 1 + k
                keep[split] = True
                stack.append((split, last))
                stack.append((first, split))
        return np.flatnonzero(keep).tolist()

    def simplify(self, trajectory: Trajectory) -> Trajectory:
        return trajectory.subset(self.key_indices(trajectory))

# domain/mechanics/mechanics_spatial_index.py
from collections.abc import Iterable, Iterator

import numpy as np

from mm_eval.app.protocols import DistanceFunction, SpatialIndex
from mm_eval.domain.entities.geography import Point
from mm_eval.domain.entities.spatial import XYObject, x_key


class SortedXYIndex(SpatialIndex):
    """
    Entries sorted by x (stable) with parallel numpy coordinate arrays.
    Box queries binary-search the x range, then filter y.
    """

    def __init__(self, entries: Iterable[XYObject]):
        self._entries: list[XYObject] = sorted(entries, key=x_key)
        n = len(self._entries)
        self._xs = np.fromiter((e.x for e in self._entries), dtype=float, count=n)
        self._ys = np.fromiter((e.y for e in self._entries), dtype=float, count=n)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[XYObject]:
        return iter(self._entries)

    def query(self, xmin: float, ymin: float, xmax: float, ymax: float) -> list[XYObject]:
        if xmin > xmax or ymin > ymax:
            return []
        lo = int(np.searchsorted(self._xs, xmin, side="left"))
        hi = int(np.searchsorted(self._xs, xmax, side="right"))
        ys = self._ys[lo:hi]
        hits = np.nonzero((ys >= ymin) & (ys <= ymax))[0]
        return [self._entries[lo + int(i)] for i in hits]

    def nearest(
        self, x: float, y: float, k: int = 1, *, distance: DistanceFunction | None = None
    ) -> list[XYObject]:
        n = len(self._entries)
        if k <= 0 or n == 0:
            return []
        if distance is None:
            d = np.hypot(self._xs - x, self._ys - y)
        else:
            q = Point(x, y)
            d = np.fromiter((distance.distance(q, e) for e in self._entries), dtype=float, count=n)
        order = np.argsort(d, kind="stable")[:k]
        return [self._entries[int(i)] for i in order]


def trajectory_point_index(trajectories) -> SortedXYIndex:
    """Index every point of every trajectory; payload is (trajectory_id, point_index)."""
    return SortedXYIndex(
        XYObject(p.x, p.y, (t.id, i)) for t in trajectories for i, p in enumerate(t.points)
    )

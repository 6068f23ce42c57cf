from collections.abc import Iterator, Sequence
from typing import Protocol, runtime_checkable

from mm_eval.domain.entities.geography import Point
from mm_eval.domain.entities.spatial import XYObject


# ------------- Mechanics --------------------
@runtime_checkable
class DistanceFunction(Protocol):
    """
    Responsibilities:
      • Distance between two points (anything exposing .x / .y).
      • Distance from a point to a segment, used by curve simplification.
    Pure and stateless; picked once per run from configuration.
    """

    def distance(self, a: Point, b: Point) -> float: ...
    def point_to_segment_distance(self, p: Point, a: Point, b: Point) -> float: ...


@runtime_checkable
class SpatialIndex(Protocol):
    """
    Bounding-box queries are exact and boundary-inclusive.
    Sub-linear query time is an optimisation, not part of the contract.
    """

    def query(self, xmin: float, ymin: float, xmax: float, ymax: float) -> list[XYObject]: ...
    def nearest(
        self, x: float, y: float, k: int = 1, *, distance: DistanceFunction | None = None
    ) -> list[XYObject]: ...
    def __len__(self) -> int: ...
    def __iter__(self) -> Iterator[XYObject]: ...


@runtime_checkable
class TrajectorySimplifier(Protocol):
    def key_indices(self, trajectory) -> Sequence[int]: ...
    def simplify(self, trajectory): ...

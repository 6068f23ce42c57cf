from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field, replace

from mm_eval.app.protocols import DistanceFunction
from mm_eval.domain.entities.geography import BBox
from mm_eval.domain.errors import ParseError


def _fmt(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else repr(float(v))


@dataclass(frozen=True)
class TrajectoryPoint:
    x: float
    y: float
    time: float  # seconds
    speed: float | None = None
    heading: float | None = None
    df: DistanceFunction | None = field(default=None, compare=False, repr=False)

    def distance_to(self, other) -> float:
        if self.df is None:
            raise ValueError("trajectory point has no distance function")
        return self.df.distance(self, other)

    def to_string(self) -> str:
        out = f"{repr(float(self.x))} {repr(float(self.y))} {_fmt(self.time)}"
        if self.speed is not None and self.heading is not None:
            out += f" {_fmt(self.speed)} {_fmt(self.heading)}"
        return out

    @classmethod
    def parse(
        cls,
        s: str,
        df: DistanceFunction | None = None,
        *,
        path=None,
        line_no: int | None = None,
    ) -> TrajectoryPoint:
        toks = s.split()
        if len(toks) not in (3, 5):
            raise ParseError(
                f"trajectory point needs 3 or 5 fields, got {len(toks)}",
                path=path,
                line_no=line_no,
                line=s,
            )
        try:
            vals = [float(t) for t in toks]
        except ValueError:
            raise ParseError("not a number", path=path, line_no=line_no, line=s) from None
        if len(vals) == 5:
            return cls(vals[0], vals[1], vals[2], vals[3], vals[4], df=df)
        return cls(vals[0], vals[1], vals[2], df=df)


@dataclass
class Trajectory:
    id: str
    distance: DistanceFunction
    points: list[TrajectoryPoint] = field(default_factory=list)

    def __post_init__(self):
        self.points = [self._bind(p) for p in self.points]

    def _bind(self, p: TrajectoryPoint) -> TrajectoryPoint:
        return p if p.df is self.distance else replace(p, df=self.distance)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[TrajectoryPoint]:
        return iter(self.points)

    def __getitem__(self, i: int) -> TrajectoryPoint:
        return self.points[i]

    def add(self, p: TrajectoryPoint) -> None:
        self.points.append(self._bind(p))

    def subset(self, indices: Sequence[int]) -> Trajectory:
        """New trajectory with the same id/distance, keeping the given point indices."""
        return Trajectory(self.id, self.distance, [self.points[i] for i in indices])

    # ---------- summaries ----------

    def length(self) -> float:
        return sum(self.distance.distance(a, b) for a, b in zip(self.points, self.points[1:]))

    def duration(self) -> float:
        if len(self.points) < 2:
            return 0.0
        return self.points[-1].time - self.points[0].time

    def is_time_ordered(self) -> bool:
        return all(a.time <= b.time for a, b in zip(self.points, self.points[1:]))

    def bounding_box(self) -> BBox | None:
        if not self.points:
            return None
        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        return min(xs), min(ys), max(xs), max(ys)

    def to_lines(self) -> Iterator[str]:
        for p in self.points:
            yield p.to_string()

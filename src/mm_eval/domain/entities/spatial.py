# domain/entities/spatial.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from mm_eval.domain.entities.geography import Point

T = TypeVar("T")


@dataclass(frozen=True)
class XYObject(Generic[T]):
    """
    Immutable (x, y) stand-in for any spatial entity, used for indexing.
    Equality and hashing look at the coordinates only; the payload rides along.
    """

    x: float
    y: float
    payload: T | None = field(default=None, compare=False)

    def equals_2d(self, other: XYObject | None) -> bool:
        if self is other:
            return True
        if other is None:
            return False
        return self.x == other.x and self.y == other.y

    def to_point(self) -> Point:
        return Point(self.x, self.y)

    def __str__(self) -> str:
        return f"{self.x:.5f} {self.y:.5f}"


# Stateless orderings; pass them to sorted()/list.sort() explicitly (both are stable).
def x_key(o: XYObject) -> float:
    return o.x


def y_key(o: XYObject) -> float:
    return o.y


def compare_x(a: XYObject, b: XYObject) -> int:
    if a.x < b.x:
        return -1
    if a.x > b.x:
        return 1
    return 0


def compare_y(a: XYObject, b: XYObject) -> int:
    if a.y < b.y:
        return -1
    if a.y > b.y:
        return 1
    return 0

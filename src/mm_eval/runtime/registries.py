# runtime/registries.py
from collections.abc import Callable
from typing import Any

from mm_eval.app.protocols import DistanceFunction
from mm_eval.config.models import (
    DistanceEuclideanModel,
    DistanceGreatCircleModel,
    DistanceUnion,
)
from mm_eval.domain.mechanics.mechanics_distance import EuclideanDistance, GreatCircleDistance

DistanceFactory = Callable[[DistanceUnion, dict[str, Any]], DistanceFunction]

_distance_registry: dict[str, DistanceFactory] = {}


# ------------------- Distance function registry ---------------------------


def register_distance(kind: str):
    def deco(fn: DistanceFactory):
        _distance_registry[kind] = fn
        return fn

    return deco


def make_distance(cfg: DistanceUnion, *, deps: dict | None = None) -> DistanceFunction:
    try:
        factory = _distance_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown distance kind {cfg.kind!r}") from None
    return factory(cfg, deps or {})


@register_distance("euclidean")
def _make_euclidean(cfg: DistanceEuclideanModel, deps):
    return EuclideanDistance()


@register_distance("great_circle")
def _make_great_circle(cfg: DistanceGreatCircleModel, deps):
    return GreatCircleDistance(radius_m=cfg.radius_m)

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class MatchResult:
    """Road-segment IDs a trajectory was matched to, in travel order."""

    trajectory_id: str
    segment_ids: tuple[str, ...] = ()

    @classmethod
    def of(cls, trajectory_id: str, segment_ids: Iterable[str]) -> MatchResult:
        return cls(str(trajectory_id), tuple(segment_ids))

    def segment_set(self) -> frozenset[str]:
        return frozenset(self.segment_ids)

    def __len__(self) -> int:
        return len(self.segment_ids)


def index_matches(results: Iterable[MatchResult] | Mapping[str, MatchResult]) -> dict[str, MatchResult]:
    """Key a collection by trajectory ID. Duplicate IDs are rejected."""
    if isinstance(results, Mapping):
        return dict(results)
    out: dict[str, MatchResult] = {}
    for r in results:
        if r.trajectory_id in out:
            raise ValueError(f"duplicate match result for trajectory {r.trajectory_id!r}")
        out[r.trajectory_id] = r
    return out

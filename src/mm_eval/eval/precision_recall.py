# eval/precision_recall.py
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from functools import reduce

from mm_eval.domain.entities.match import MatchResult, index_matches
from mm_eval.domain.graph import RoadNetworkGraph
from mm_eval.eval.hooks import EvaluationHooks, NoopHooks

log = logging.getLogger(__name__)

Matches = Iterable[MatchResult] | Mapping[str, MatchResult]


class Weighting(Enum):
    COUNT = "count"  # every segment weighs 1
    LENGTH = "length"  # every segment weighs its way length


@dataclass(frozen=True)
class TrajectoryScore:
    trajectory_id: str
    true_positive: float
    predicted_total: float
    ground_truth_total: float
    precision: float
    recall: float
    unknown_segments: int = 0
    predicted_count: int = 0
    ground_truth_count: int = 0


def _precision(
    tp: float, predicted: float, *, predicted_count: int, ground_truth_count: int
) -> float:
    # emptiness is decided on the segment sets; weights only give the ratio
    if predicted_count == 0:
        return 1.0 if ground_truth_count == 0 else 0.0
    if predicted == 0:
        return 0.0
    return tp / predicted


def _recall(tp: float, ground_truth: float, *, ground_truth_count: int) -> float:
    # nothing to find counts as everything found
    if ground_truth_count == 0:
        return 1.0
    if ground_truth == 0:
        return 0.0
    return tp / ground_truth


def f_score(precision: float, recall: float) -> float:
    if precision + recall == 0:
        return 0.0
    return 2.0 * precision * recall / (precision + recall)


def score_trajectory(
    trajectory_id: str,
    predicted: Iterable[str],
    ground_truth: Iterable[str],
    weight: Callable[[str], float] = lambda _sid: 1.0,
    known: Callable[[str], bool] = lambda _sid: True,
) -> TrajectoryScore:
    """Set-overlap precision/recall for one trajectory. Order and duplicates are ignored."""
    p, g = set(predicted), set(ground_truth)
    tp = sum(weight(s) for s in p & g)
    p_tot = sum(weight(s) for s in p)
    g_tot = sum(weight(s) for s in g)
    unknown = sum(1 for s in p | g if not known(s))
    return TrajectoryScore(
        trajectory_id=trajectory_id,
        true_positive=tp,
        predicted_total=p_tot,
        ground_truth_total=g_tot,
        precision=_precision(tp, p_tot, predicted_count=len(p), ground_truth_count=len(g)),
        recall=_recall(tp, g_tot, ground_truth_count=len(g)),
        unknown_segments=unknown,
        predicted_count=len(p),
        ground_truth_count=len(g),
    )


@dataclass(frozen=True)
class Partial:
    """Associative, commutative accumulator over trajectory scores."""

    evaluated: int = 0
    precision_sum: float = 0.0
    recall_sum: float = 0.0
    true_positive: float = 0.0
    predicted_total: float = 0.0
    ground_truth_total: float = 0.0
    unknown_segments: int = 0
    predicted_count: int = 0
    ground_truth_count: int = 0

    @classmethod
    def of(cls, s: TrajectoryScore) -> Partial:
        return cls(
            1,
            s.precision,
            s.recall,
            s.true_positive,
            s.predicted_total,
            s.ground_truth_total,
            s.unknown_segments,
            s.predicted_count,
            s.ground_truth_count,
        )

    def merge(self, other: Partial) -> Partial:
        return Partial(
            self.evaluated + other.evaluated,
            self.precision_sum + other.precision_sum,
            self.recall_sum + other.recall_sum,
            self.true_positive + other.true_positive,
            self.predicted_total + other.predicted_total,
            self.ground_truth_total + other.ground_truth_total,
            self.unknown_segments + other.unknown_segments,
            self.predicted_count + other.predicted_count,
            self.ground_truth_count + other.ground_truth_count,
        )


@dataclass(frozen=True)
class EvaluationResult:
    precision: float
    recall: float
    evaluated_count: int
    unmatched_count: int
    f_score: float = 0.0
    predicted_only: int = 0
    ground_truth_only: int = 0
    pooled_precision: float = 0.0
    pooled_recall: float = 0.0
    unknown_segment_count: int = 0
    weighting: str = Weighting.COUNT.value

    @classmethod
    def from_partial(
        cls, acc: Partial, *, predicted_only: int, ground_truth_only: int, weighting: Weighting
    ) -> EvaluationResult:
        if acc.evaluated:
            prec = acc.precision_sum / acc.evaluated
            rec = acc.recall_sum / acc.evaluated
        else:
            prec = rec = 0.0
        return cls(
            precision=prec,
            recall=rec,
            evaluated_count=acc.evaluated,
            unmatched_count=predicted_only + ground_truth_only,
            f_score=f_score(prec, rec),
            predicted_only=predicted_only,
            ground_truth_only=ground_truth_only,
            pooled_precision=_precision(
                acc.true_positive,
                acc.predicted_total,
                predicted_count=acc.predicted_count,
                ground_truth_count=acc.ground_truth_count,
            ),
            pooled_recall=_recall(
                acc.true_positive, acc.ground_truth_total, ground_truth_count=acc.ground_truth_count
            ),
            unknown_segment_count=acc.unknown_segments,
            weighting=weighting.value,
        )

    def summary(self) -> str:
        return (
            f"Precision recall: precision={self.precision:.5f}, recall={self.recall:.5f}, "
            f"f-score={self.f_score:.5f} over {self.evaluated_count} trajectories "
            f"({self.unmatched_count} unmatched, weighting={self.weighting})"
        )


class PrecisionRecallEvaluator:
    """
    Compares predicted and ground-truth route matches trajectory by trajectory.
    Only IDs present on both sides are scored; the rest are counted as unmatched.
    Per-trajectory precision/recall are averaged over the scored trajectories.
    """

    def __init__(
        self,
        graph: RoadNetworkGraph | None = None,
        weighting: Weighting | str | None = None,
        *,
        hooks: EvaluationHooks | None = None,
        workers: int = 1,
    ):
        self.graph = graph
        self.weighting = Weighting(weighting) if weighting is not None else Weighting.COUNT
        if self.weighting is Weighting.LENGTH and graph is None:
            raise ValueError("length weighting needs a road network graph")
        self.hooks = hooks or NoopHooks()
        self.workers = max(1, workers)

    def _weight(self, sid: str) -> float:
        if self.weighting is Weighting.COUNT:
            return 1.0
        way = self.graph.get_way(sid)
        return way.length if way is not None else 0.0

    def _known(self, sid: str) -> bool:
        return self.graph is None or self.graph.has_way(sid)

    def _score(self, pair: tuple[MatchResult, MatchResult]) -> TrajectoryScore:
        pred, gt = pair
        return score_trajectory(
            pred.trajectory_id, pred.segment_ids, gt.segment_ids, self._weight, self._known
        )

    def evaluate(self, predicted: Matches, ground_truth: Matches) -> EvaluationResult:
        t0 = time.perf_counter()
        pred, gt = index_matches(predicted), index_matches(ground_truth)
        self.hooks.run_start(
            predicted=len(pred), ground_truth=len(gt), weighting=self.weighting.value
        )

        common = sorted(pred.keys() & gt.keys())
        pred_only = sorted(pred.keys() - gt.keys())
        gt_only = sorted(gt.keys() - pred.keys())
        for tid in pred_only:
            self.hooks.unmatched(tid, side="predicted")
        for tid in gt_only:
            self.hooks.unmatched(tid, side="ground_truth")

        pairs = [(pred[tid], gt[tid]) for tid in common]
        if self.workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                scores = list(pool.map(self._score, pairs))
        else:
            scores = [self._score(p) for p in pairs]

        for seq, s in enumerate(scores, start=1):
            self.hooks.trajectory_scored(s, seq=seq)
        acc = reduce(Partial.merge, map(Partial.of, scores), Partial())

        if not acc.evaluated:
            log.warning("no trajectory present in both predicted and ground-truth results")
        if acc.unknown_segments:
            log.warning(
                "match results reference segments missing from the road network",
                extra={"extra": {"unknown_segments": acc.unknown_segments}},
            )
        result = EvaluationResult.from_partial(
            acc,
            predicted_only=len(pred_only),
            ground_truth_only=len(gt_only),
            weighting=self.weighting,
        )
        self.hooks.run_end(result, wall_ms=(time.perf_counter() - t0) * 1000)
        return result


def precision_recall_matching_eval(
    predicted: Matches,
    ground_truth: Matches,
    graph: RoadNetworkGraph | None,
    weighting: Weighting | str | None = None,
    **kw,
) -> EvaluationResult:
    return PrecisionRecallEvaluator(graph, weighting, **kw).evaluate(predicted, ground_truth)

# eval/hooks.py
from typing import Protocol


class EvaluationHooks(Protocol):
    def run_start(self, *, predicted, ground_truth, weighting): ...
    def trajectory_scored(self, score, *, seq): ...
    def unmatched(self, trajectory_id: str, *, side: str): ...
    def run_end(self, result, *, wall_ms): ...


class NoopHooks:
    def run_start(self, **_):
        pass

    def trajectory_scored(self, *_, **__):
        pass

    def unmatched(self, *_, **__):
        pass

    def run_end(self, *_, **__):
        pass

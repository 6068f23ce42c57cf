# io/eval_logging.py
import json
import logging
import sys

from mm_eval.eval.hooks import NoopHooks
from mm_eval.io.recorder import Recorder


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        return json.dumps(payload)


def _default_json_logger(name="mm_eval", level="INFO", stream=None):
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(stream or sys.stderr)
        h.setFormatter(_JsonFormatter())
        logger.addHandler(h)
    logger.setLevel(level)
    return logger


class EvaluationLogging(NoopHooks):
    """
    Structured logs for an evaluation run. Per-trajectory lines are DEBUG and
    sampled; score records go to the recorder (if any) unsampled.
    """

    def __init__(
        self,
        run_id: str = "local",
        level: str = "INFO",
        debug: bool = False,
        sample_every: int = 1000,
        logger: logging.Logger | None = None,
        recorder: Recorder | None = None,
    ):
        self.run_id, self.debug, self.sample_every = run_id, debug, max(1, sample_every)
        self.recorder = recorder
        self.log = logger or _default_json_logger(level=level)

    def _emit(self, level: str, msg: str, **extra):
        self.log.log(getattr(logging, level), msg, extra={"extra": {"run_id": self.run_id, **extra}})

    def run_start(self, *, predicted, ground_truth, weighting):
        self._emit(
            "INFO", "run_start", predicted=predicted, ground_truth=ground_truth, weighting=weighting
        )

    def trajectory_scored(self, score, *, seq):
        if self.recorder:
            self.recorder.emit(score)
        if self.debug and (seq % self.sample_every) == 0:
            self._emit(
                "DEBUG",
                "trajectory_scored",
                trajectory_id=score.trajectory_id,
                precision=score.precision,
                recall=score.recall,
                seq=seq,
            )

    def unmatched(self, trajectory_id: str, *, side: str):
        if self.debug:
            self._emit("DEBUG", "unmatched_trajectory", trajectory_id=trajectory_id, side=side)

    def run_end(self, result, *, wall_ms):
        self._emit(
            "INFO",
            "run_end",
            precision=result.precision,
            recall=result.recall,
            f_score=result.f_score,
            evaluated=result.evaluated_count,
            unmatched=result.unmatched_count,
            wall_ms=wall_ms,
        )

# mm_eval/app/build.py
import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from pathlib import Path

from mm_eval.app.protocols import DistanceFunction
from mm_eval.config.models import RunModel
from mm_eval.domain.entities.trajectory import Trajectory
from mm_eval.domain.graph import RoadNetworkGraph
from mm_eval.eval.hooks import EvaluationHooks, NoopHooks
from mm_eval.eval.precision_recall import EvaluationResult, PrecisionRecallEvaluator
from mm_eval.io.eval_logging import EvaluationLogging, _default_json_logger
from mm_eval.io.map_io import read_map
from mm_eval.io.match_io import read_match_results
from mm_eval.io.recorder import JsonlSink, Recorder, Sink
from mm_eval.io.trajectory_io import read_trajectories, write_trajectories
from mm_eval.runtime.registries import make_distance

log = logging.getLogger(__name__)


@dataclass
class App:
    model: RunModel
    distance: DistanceFunction
    hooks: EvaluationHooks
    graph: RoadNetworkGraph | None = None
    evaluator: PrecisionRecallEvaluator | None = None
    recorder: Recorder | None = None
    trajectories: list[Trajectory] = field(default_factory=list)

    def close(self) -> None:
        if self.recorder is not None:
            self.recorder.close()


def build(
    cfg: RunModel | Mapping, *, use_logging: bool = True, sinks: list[Sink] | None = None
) -> App:
    # 0) Validate config
    model = cfg if isinstance(cfg, RunModel) else RunModel.model_validate(cfg)

    # 1) Distance function, chosen once for the whole run
    distance = make_distance(model.distance)

    # 2) Logging
    if use_logging:
        _default_json_logger(level=model.log.level)

    # 3) Road network, read before any record file is opened
    graph = None
    if model.evaluation is not None:
        graph = read_map(model.evaluation.map_file, distance)

    # 4) Recorder + hooks
    sinks = list(sinks or [])
    if model.log.records_file:
        path = Path(model.log.records_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append(JsonlSink(path.open("w", encoding="utf-8"), owned=True))
    recorder = Recorder(*sinks) if sinks else None
    if use_logging:
        hooks = EvaluationLogging(
            run_id=model.name,
            level=model.log.level,
            debug=model.log.debug,
            sample_every=model.log.sample_every,
            recorder=recorder,
        )
    else:
        hooks = NoopHooks()

    # 5) Evaluator
    evaluator = None
    if model.evaluation is not None:
        evaluator = PrecisionRecallEvaluator(
            graph,
            model.evaluation.weighting,
            hooks=hooks,
            workers=model.evaluation.workers,
        )

    return App(model, distance, hooks, graph, evaluator, recorder)


def ingest(app: App) -> list[Trajectory]:
    cfg = app.model.ingestion
    if cfg is None:
        raise ValueError("no ingestion section configured")
    app.trajectories = read_trajectories(
        cfg.trajectory_folder,
        app.distance,
        cfg.down_sample_rate,
        cfg.tolerance,
        pattern=cfg.pattern,
        max_workers=cfg.max_workers,
    )
    log.info(
        "trajectories ingested",
        extra={
            "extra": {
                "trajectories": len(app.trajectories),
                "points": sum(len(t) for t in app.trajectories),
            }
        },
    )
    if cfg.output_folder:
        write_trajectories(app.trajectories, cfg.output_folder)
    return app.trajectories


def evaluate(app: App) -> EvaluationResult:
    cfg = app.model.evaluation
    if cfg is None or app.evaluator is None:
        raise ValueError("no evaluation section configured")
    predicted = read_match_results(cfg.predicted_folder)
    ground_truth = read_match_results(cfg.ground_truth_folder)
    log.info(
        f"Precision-recall map-matching evaluation of the {app.model.method or 'unnamed'} method "
        f"on {app.model.dataset or 'unnamed'} dataset"
    )
    result = app.evaluator.evaluate(predicted, ground_truth)
    log.info(result.summary())
    if cfg.output_file:
        out = Path(cfg.output_file)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(asdict(result), indent=2), encoding="utf-8")
    return result


def run(app: App) -> EvaluationResult | None:
    """Run the configured pipelines, then release the record sinks."""
    try:
        if app.model.ingestion is not None:
            ingest(app)
        if app.model.evaluation is not None:
            return evaluate(app)
        return None
    finally:
        app.close()

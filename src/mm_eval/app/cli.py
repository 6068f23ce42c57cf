# mm_eval/app/cli.py
import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from mm_eval.app.build import build, run
from mm_eval.config.models import RunModel
from mm_eval.domain.errors import MapMatchEvalError
from mm_eval.io.recorder import JsonlSink


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mm-eval", description="Precision/recall evaluation of map-matching results"
    )
    p.add_argument("--config", help="JSON run configuration")
    p.add_argument("--predicted", help="folder of predicted route match files")
    p.add_argument("--ground-truth", help="folder of ground-truth route match files")
    p.add_argument("--map", help="road network file")
    p.add_argument("--dataset", help="dataset name (selects the distance function)")
    p.add_argument("--weighting", choices=["count", "length"])
    p.add_argument("--output", help="write the structured result as JSON here")
    p.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--records", action="store_true", help="print per-trajectory scores as JSONL")
    return p


def load_config(args: argparse.Namespace) -> RunModel:
    raw: dict = {}
    if args.config:
        raw = json.loads(Path(args.config).read_text(encoding="utf-8"))
    if args.dataset:
        raw["dataset"] = args.dataset
    if args.log_level:
        raw.setdefault("log", {})["level"] = args.log_level
    overrides = {
        "predicted_folder": args.predicted,
        "ground_truth_folder": args.ground_truth,
        "map_file": args.map,
        "weighting": args.weighting,
        "output_file": args.output,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        raw.setdefault("evaluation", {}).update(overrides)
    return RunModel.model_validate(raw)


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    try:
        model = load_config(args)
        app = build(model, sinks=[JsonlSink(sys.stdout)] if args.records else None)
        result = run(app)
    except (MapMatchEvalError, ValidationError, OSError, json.JSONDecodeError) as exc:
        print(f"mm-eval: {exc}", file=sys.stderr)
        return 2
    if result is not None:
        print(result.summary())
    return 0

# io/map_io.py
import logging
from pathlib import Path

from mm_eval.app.protocols import DistanceFunction
from mm_eval.domain.errors import PathNotFound
from mm_eval.domain.graph import RoadNetworkGraph

log = logging.getLogger(__name__)


def read_map(path: str | Path, distance: DistanceFunction) -> RoadNetworkGraph:
    p = Path(path)
    if not p.is_file():
        raise PathNotFound(f"road network file doesn't exist: {p}")
    with p.open(encoding="utf-8") as f:
        g = RoadNetworkGraph.parse(f, distance, path=p)
    log.info(
        "road network loaded",
        extra={"extra": {"path": str(p), "nodes": g.node_count, "ways": g.way_count}},
    )
    return g


def write_map(graph: RoadNetworkGraph, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        for line in graph.to_lines():
            f.write(line + "\n")
    return p

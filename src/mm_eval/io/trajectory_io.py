# io/trajectory_io.py
import logging
import re
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Literal

from mm_eval.app.protocols import DistanceFunction
from mm_eval.domain.entities.trajectory import Trajectory, TrajectoryPoint
from mm_eval.domain.errors import PathNotFound
from mm_eval.domain.mechanics.mechanics_simplify import DouglasPeuckerFilter

log = logging.getLogger(__name__)

FilePattern = Literal["any", "trip"]

_PATTERNS: dict[str, re.Pattern] = {
    "any": re.compile(r"^[^_]*_([^.]+)\.txt$"),  # id = text between first '_' and first '.'
    "trip": re.compile(r"^trip_(\d+)\.txt$"),
}


def trajectory_id_from_name(name: str, pattern: FilePattern = "any") -> str | None:
    m = _PATTERNS[pattern].match(name)
    return m.group(1) if m else None


def id_sort_key(tid: str):
    # numeric IDs in numeric order, then everything else lexically
    return (0, int(tid), "") if tid.isdigit() else (1, 0, tid)


def parse_trajectory(
    lines: Iterable[str],
    trajectory_id: str,
    distance: DistanceFunction,
    down_sample_rate: int = 1,
    *,
    path=None,
) -> Trajectory:
    """
    Keep point i iff i == 0, i == last or i % rate == 0, then drop kept points whose
    timestamp repeats or goes back behind the previous kept one. Every line is parsed,
    kept or not.
    """
    if down_sample_rate < 1:
        raise ValueError(f"down_sample_rate must be >= 1, got {down_sample_rate}")
    rows = [
        (n, TrajectoryPoint.parse(raw.strip(), distance, path=path, line_no=n))
        for n, raw in enumerate(lines, start=1)
        if raw.strip()
    ]
    traj = Trajectory(trajectory_id, distance)
    last = len(rows) - 1
    prev_time = None
    out_of_order: list[int] = []
    for i, (line_no, p) in enumerate(rows):
        if not (i == 0 or i == last or i % down_sample_rate == 0):
            continue
        if prev_time is not None:
            if p.time == prev_time:
                continue
            if p.time < prev_time:
                out_of_order.append(line_no)
                continue
        traj.add(p)
        prev_time = p.time
    if out_of_order:
        log.warning(
            "dropped points with out-of-order timestamps",
            extra={
                "extra": {
                    "trajectory_id": trajectory_id,
                    "path": str(path),
                    "lines": out_of_order,
                }
            },
        )
    return traj


def _load(
    path: Path,
    trajectory_id: str,
    distance: DistanceFunction,
    down_sample_rate: int,
    tolerance: float,
) -> Trajectory:
    with path.open(encoding="utf-8") as f:
        traj = parse_trajectory(f, trajectory_id, distance, down_sample_rate, path=path)
    if tolerance > 0:
        traj = DouglasPeuckerFilter(tolerance, distance).simplify(traj)
    return traj


def read_trajectory_file(
    path: str | Path,
    distance: DistanceFunction,
    down_sample_rate: int = 1,
    tolerance: float = 0.0,
) -> Trajectory:
    p = Path(path)
    if not p.is_file():
        raise PathNotFound(f"input trajectory path doesn't exist: {p}")
    tid = trajectory_id_from_name(p.name) or "0"
    return _load(p, tid, distance, down_sample_rate, tolerance)


def _select_files(
    folder: Path, pattern: FilePattern, ids: set[str] | None
) -> list[tuple[Path, str]]:
    selected = []
    for f in sorted(folder.iterdir()):
        if not f.is_file():
            continue
        tid = trajectory_id_from_name(f.name, pattern)
        if tid is None:
            log.warning("skipping file with unexpected name", extra={"extra": {"file": f.name}})
            continue
        if ids is not None and tid not in ids:
            continue
        selected.append((f, tid))
    return selected


def iter_trajectories(
    folder: str | Path,
    distance: DistanceFunction,
    down_sample_rate: int = 1,
    tolerance: float = 0.0,
    *,
    pattern: FilePattern = "any",
    ids: set[str] | None = None,
    max_workers: int = 8,
) -> Iterator[Trajectory]:
    """
    Parse every matching file in a bounded thread pool and yield trajectories as
    they finish. Yield order is unspecified; call again to re-read.
    """
    root = Path(folder)
    if not root.exists():
        raise PathNotFound(f"input trajectory path doesn't exist: {root}")
    if root.is_file():
        return iter([read_trajectory_file(root, distance, down_sample_rate, tolerance)])
    files = _select_files(root, pattern, ids)
    if not files:
        log.warning("no trajectory files found", extra={"extra": {"folder": str(root)}})
        return iter(())
    return _stream(files, distance, down_sample_rate, tolerance, max_workers)


def _stream(
    files: list[tuple[Path, str]],
    distance: DistanceFunction,
    down_sample_rate: int,
    tolerance: float,
    max_workers: int,
) -> Iterator[Trajectory]:
    pool = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        futures = [
            pool.submit(_load, f, tid, distance, down_sample_rate, tolerance) for f, tid in files
        ]
        for fut in as_completed(futures):
            yield fut.result()
    finally:
        # a failed file or an abandoned consumer drops the queued files
        pool.shutdown(wait=True, cancel_futures=True)


def read_trajectories(
    folder: str | Path,
    distance: DistanceFunction,
    down_sample_rate: int = 1,
    tolerance: float = 0.0,
    **kw,
) -> list[Trajectory]:
    out = sorted(
        iter_trajectories(folder, distance, down_sample_rate, tolerance, **kw),
        key=lambda t: id_sort_key(t.id),
    )
    log.debug(
        "trajectories read",
        extra={"extra": {"trajectories": len(out), "points": sum(len(t) for t in out)}},
    )
    return out


def write_trajectory(traj: Trajectory, folder: str | Path, prefix: str = "trip") -> Path:
    root = Path(folder)
    root.mkdir(parents=True, exist_ok=True)
    p = root / f"{prefix}_{traj.id}.txt"
    with p.open("w", encoding="utf-8") as f:
        for line in traj.to_lines():
            f.write(line + "\n")
    return p


def write_trajectories(trajs: Iterable[Trajectory], folder: str | Path, prefix: str = "trip") -> int:
    n = 0
    for t in trajs:
        write_trajectory(t, folder, prefix)
        n += 1
    return n

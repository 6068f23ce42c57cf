# io/match_io.py
import logging
from collections.abc import Iterable
from pathlib import Path

from mm_eval.domain.entities.match import MatchResult
from mm_eval.domain.errors import ParseError, PathNotFound
from mm_eval.io.trajectory_io import id_sort_key, trajectory_id_from_name

log = logging.getLogger(__name__)


def parse_match_result(lines: Iterable[str], trajectory_id: str, *, path=None) -> MatchResult:
    ids = []
    for n, raw in enumerate(lines, start=1):
        sid = raw.strip()
        if not sid:
            continue
        if len(sid.split()) != 1:
            raise ParseError("one road segment id per line", path=path, line_no=n, line=sid)
        ids.append(sid)
    return MatchResult.of(trajectory_id, ids)


def read_match_results(folder: str | Path) -> list[MatchResult]:
    """One `*_<trajectory id>.txt` file per trajectory, one segment id per line."""
    root = Path(folder)
    if not root.is_dir():
        raise PathNotFound(f"match result folder doesn't exist: {root}")
    out: dict[str, MatchResult] = {}
    for f in sorted(root.iterdir()):
        if not f.is_file():
            continue
        tid = trajectory_id_from_name(f.name)
        if tid is None:
            log.warning("skipping file with unexpected name", extra={"extra": {"file": f.name}})
            continue
        if tid in out:
            raise ParseError(f"duplicate match result for trajectory {tid!r}", path=f)
        with f.open(encoding="utf-8") as fp:
            out[tid] = parse_match_result(fp, tid, path=f)
    log.debug("match results read", extra={"extra": {"folder": str(root), "results": len(out)}})
    return [out[k] for k in sorted(out, key=id_sort_key)]


def write_match_results(
    results: Iterable[MatchResult], folder: str | Path, prefix: str = "route"
) -> int:
    root = Path(folder)
    root.mkdir(parents=True, exist_ok=True)
    n = 0
    for r in results:
        with (root / f"{prefix}_{r.trajectory_id}.txt").open("w", encoding="utf-8") as f:
            for sid in r.segment_ids:
                f.write(sid + "\n")
        n += 1
    return n

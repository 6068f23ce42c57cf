# tests/io/test_trajectory_io.py
import logging
import time

import pytest

import mm_eval.io.trajectory_io as trajectory_io

from mm_eval.domain.errors import ParseError, PathNotFound
from mm_eval.domain.mechanics.mechanics_distance import EuclideanDistance
from mm_eval.io.trajectory_io import (
    iter_trajectories,
    parse_trajectory,
    read_trajectories,
    read_trajectory_file,
    trajectory_id_from_name,
    write_trajectories,
)

DF = EuclideanDistance()


def _lines(times):
    return [f"{float(i)} {float(i) * 2} {t}" for i, t in enumerate(times)]


# ---------- Down-sampling


def test_rate_one_keeps_every_distinct_timestamp():
    t = parse_trajectory(_lines([0, 1, 1, 2, 3, 3, 4]), "1", DF, 1)
    assert [p.time for p in t] == [0, 1, 2, 3, 4]


def test_rate_n_keeps_stride_and_last():
    t = parse_trajectory(_lines(range(10)), "1", DF, 3)
    assert [p.x for p in t] == [0.0, 3.0, 6.0, 9.0]
    t = parse_trajectory(_lines(range(11)), "1", DF, 3)
    assert [p.x for p in t] == [0.0, 3.0, 6.0, 9.0, 10.0]


def test_duplicate_time_drop_applies_after_striding():
    # index 2 repeats index 0's timestamp; index 4 is kept
    t = parse_trajectory(_lines([5, 6, 5, 7, 8]), "1", DF, 2)
    assert [p.x for p in t] == [0.0, 4.0]


def test_first_point_kept_even_with_zero_time():
    t = parse_trajectory(_lines([0, 0, 1]), "1", DF, 1)
    assert [p.x for p in t] == [0.0, 2.0]


def test_time_going_backwards_is_dropped(caplog):
    with caplog.at_level(logging.WARNING, logger="mm_eval"):
        t = parse_trajectory(_lines([10, 11, 9, 12]), "1", DF, 1, path="trip_1.txt")
    assert [p.time for p in t] == [10, 11, 12]
    assert t.is_time_ordered()
    (rec,) = [r for r in caplog.records if "out-of-order" in r.getMessage()]
    assert rec.extra["lines"] == [3]


def test_malformed_point_lines():
    with pytest.raises(ParseError) as exc:
        parse_trajectory(["0 0 1", "", "1 x 2"], "1", DF)
    assert exc.value.line_no == 3
    with pytest.raises(ParseError):
        parse_trajectory(["0 0"], "1", DF)
    with pytest.raises(ValueError):
        parse_trajectory(["0 0 1"], "1", DF, 0)


# ---------- Files


def test_trajectory_id_from_name():
    assert trajectory_id_from_name("trip_17.txt") == "17"
    assert trajectory_id_from_name("route_a_b.txt") == "a_b"
    assert trajectory_id_from_name("trip_17.txt", "trip") == "17"
    assert trajectory_id_from_name("route_x.txt", "trip") is None
    assert trajectory_id_from_name("notes.txt") is None
    assert trajectory_id_from_name("trip_1.csv") is None


@pytest.fixture
def traj_folder(tmp_path):
    for tid in (1, 2, 10):
        (tmp_path / f"trip_{tid}.txt").write_text("\n".join(_lines(range(6))) + "\n")
    (tmp_path / "README.md").write_text("not a trajectory")
    (tmp_path / "sub").mkdir()
    return tmp_path


def test_read_folder_skips_unexpected_names(traj_folder, caplog):
    with caplog.at_level(logging.WARNING, logger="mm_eval"):
        trajs = read_trajectories(traj_folder, DF, 2)
    assert [t.id for t in trajs] == ["1", "2", "10"]
    assert all([p.x for p in t] == [0.0, 2.0, 4.0, 5.0] for t in trajs)
    assert any("unexpected name" in r.getMessage() for r in caplog.records)


def test_stream_is_order_independent_and_restartable(traj_folder):
    first = {t.id: len(t) for t in iter_trajectories(traj_folder, DF, pattern="trip", max_workers=3)}
    again = {t.id: len(t) for t in iter_trajectories(traj_folder, DF, pattern="trip", max_workers=1)}
    assert first == again == {"1": 6, "2": 6, "10": 6}


def test_stream_id_filter(traj_folder):
    got = [t.id for t in iter_trajectories(traj_folder, DF, ids={"2"})]
    assert got == ["2"]


def test_down_sampling_then_simplification(tmp_path):
    lines = [f"{float(i)} 0.0 {i}" for i in range(9)]
    (tmp_path / "trip_5.txt").write_text("\n".join(lines))
    (t,) = read_trajectories(tmp_path, DF, 2, tolerance=0.1)
    assert [p.x for p in t] == [0.0, 8.0]


def test_single_file_and_missing_paths(tmp_path):
    f = tmp_path / "trip_9.txt"
    f.write_text("\n".join(_lines(range(3))))
    assert read_trajectory_file(f, DF).id == "9"
    other = tmp_path / "points.txt"
    other.write_text("\n".join(_lines(range(3))))
    assert read_trajectory_file(other, DF).id == "0"
    with pytest.raises(PathNotFound):
        read_trajectory_file(tmp_path / "missing.txt", DF)
    with pytest.raises(PathNotFound):
        read_trajectories(tmp_path / "nope", DF)


def test_write_then_read(tmp_path):
    src = tmp_path / "in"
    src.mkdir()
    (src / "trip_3.txt").write_text("1.5 2.5 10 3.0 180\n2.5 3.5 11 4.0 90\n")
    trajs = read_trajectories(src, DF)
    assert write_trajectories(trajs, tmp_path / "out") == 1
    (back,) = read_trajectories(tmp_path / "out", DF)
    assert back.id == "3" and back.points == trajs[0].points


# ---------- Failure handling


@pytest.fixture
def counted_loads(monkeypatch):
    calls = []
    real = trajectory_io._load

    def load(path, *args):
        calls.append(path.name)
        if path.name != "trip_0.txt":
            time.sleep(0.01)
        return real(path, *args)

    monkeypatch.setattr(trajectory_io, "_load", load)
    return calls


def _many_files(folder, n=20):
    (folder / "trip_0.txt").write_text("0 0 0\n1 bad 1\n")
    for tid in range(1, n + 1):
        (folder / f"trip_{tid}.txt").write_text("\n".join(_lines(range(3))))


def test_failed_file_stops_the_remaining_work(tmp_path, counted_loads):
    _many_files(tmp_path)
    with pytest.raises(ParseError):
        list(iter_trajectories(tmp_path, DF, max_workers=1))
    assert counted_loads[0] == "trip_0.txt"
    assert len(counted_loads) < 10


def test_abandoned_stream_stops_the_remaining_work(tmp_path, counted_loads):
    _many_files(tmp_path)
    (tmp_path / "trip_0.txt").unlink()
    stream = iter_trajectories(tmp_path, DF, max_workers=1)
    next(stream)
    stream.close()
    assert len(counted_loads) < 10


def test_missing_folder_fails_before_iteration(tmp_path):
    with pytest.raises(PathNotFound):
        iter_trajectories(tmp_path / "nope", DF)

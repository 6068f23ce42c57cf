# tests/domain/test_trajectory_simplify.py
import math

import pytest

from mm_eval.domain.entities.trajectory import Trajectory, TrajectoryPoint
from mm_eval.domain.mechanics.mechanics_distance import EuclideanDistance
from mm_eval.domain.mechanics.mechanics_simplify import DouglasPeuckerFilter
from mm_eval.domain.mechanics.mechanics_spatial_index import trajectory_point_index


def _traj(coords, tid="1") -> Trajectory:
    df = EuclideanDistance()
    return Trajectory(tid, df, [TrajectoryPoint(x, y, float(i)) for i, (x, y) in enumerate(coords)])


ZIGZAG = [(0, 0), (1, 0.1), (2, -0.1), (3, 5), (4, 6), (5, 7), (6, 8.1), (7, 9), (8, 9), (9, 9)]

# ---------- Douglas-Peucker


def test_zero_tolerance_keeps_everything():
    t = _traj(ZIGZAG)
    assert DouglasPeuckerFilter(0.0).key_indices(t) == list(range(len(ZIGZAG)))


def test_infinite_tolerance_keeps_endpoints_only():
    for n in range(2, 8):
        t = _traj(ZIGZAG[:n])
        assert DouglasPeuckerFilter(math.inf).key_indices(t) == [0, n - 1]


def test_short_runs_are_kept_whole():
    assert DouglasPeuckerFilter(10.0).key_indices(_traj([(0, 0), (5, 5)])) == [0, 1]
    assert DouglasPeuckerFilter(10.0).key_indices(_traj([(0, 0)])) == [0]
    assert DouglasPeuckerFilter(10.0).key_indices(_traj([])) == []


def test_collinear_points_collapse():
    t = _traj([(0, 0), (1, 1), (2, 2), (3, 3)])
    assert DouglasPeuckerFilter(1e-9).key_indices(t) == [0, 3]


def test_corner_is_retained():
    t = _traj([(0, 0), (1, 0), (2, 0), (2, 1), (2, 2)])
    assert DouglasPeuckerFilter(0.5).key_indices(t) == [0, 2, 4]


def test_ties_go_to_the_lowest_index():
    # both interior points are exactly 1.0 away from the chord; index 1 wins,
    # after which index 2 sits within tolerance of the (1, 3) chord
    t = _traj([(0, 0), (1, 1), (2, 1), (3, 0)])
    assert DouglasPeuckerFilter(0.99).key_indices(t) == [0, 1, 3]


def test_result_is_sorted_subset_with_endpoints():
    t = _traj(ZIGZAG)
    idx = DouglasPeuckerFilter(0.5).key_indices(t)
    assert idx == sorted(set(idx))
    assert idx[0] == 0 and idx[-1] == len(ZIGZAG) - 1
    assert 3 in idx


def test_simplify_preserves_identity_and_timestamps():
    t = _traj(ZIGZAG, tid="42")
    s = DouglasPeuckerFilter(0.5).simplify(t)
    assert s.id == "42" and s.distance is t.distance
    kept = DouglasPeuckerFilter(0.5).key_indices(t)
    assert [p.time for p in s] == [float(i) for i in kept]
    assert len(t) == len(ZIGZAG)  # source untouched


def test_negative_tolerance_rejected():
    with pytest.raises(ValueError):
        DouglasPeuckerFilter(-1.0)


# ---------- Trajectory


def test_trajectory_summaries():
    t = _traj([(0, 0), (3, 4), (3, 0)])
    assert t.length() == pytest.approx(9.0)
    assert t.duration() == 2.0
    assert t.is_time_ordered()
    assert t.bounding_box() == (0, 0, 3, 4)
    assert t[1].distance_to(t[2]) == pytest.approx(4.0)


def test_point_string_round_trip():
    p = TrajectoryPoint.parse("116.3 39.9 1200 12.5 90")
    assert p.to_string() == "116.3 39.9 1200 12.5 90"
    assert TrajectoryPoint.parse(p.to_string()) == p
    q = TrajectoryPoint.parse("0.5 -1.25 7")
    assert q.speed is None and q.to_string() == "0.5 -1.25 7"


def test_point_index_over_trajectories():
    a, b = _traj([(0, 0), (5, 5)], tid="a"), _traj([(1, 1), (9, 9)], tid="b")
    idx = trajectory_point_index([a, b])
    assert {o.payload for o in idx.query(0, 0, 2, 2)} == {("a", 0), ("b", 0)}

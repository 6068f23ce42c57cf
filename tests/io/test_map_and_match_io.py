# tests/io/test_map_and_match_io.py
import pytest

from mm_eval.domain.entities.match import MatchResult
from mm_eval.domain.entities.roadnetwork import NodeType, RoadNode, RoadWay
from mm_eval.domain.errors import ParseError, PathNotFound
from mm_eval.domain.graph import RoadNetworkGraph
from mm_eval.domain.mechanics.mechanics_distance import EuclideanDistance, GreatCircleDistance
from mm_eval.io.map_io import read_map, write_map
from mm_eval.io.match_io import read_match_results, write_match_results

MAP_TEXT = """\
1 116.30000 39.90000 nodeType:2
2 116.31000 39.90000
3 116.31000 39.91000 nodeType:4 ref:x

-
s1 1 1 2
s2 0 2 3 1 highway:residential
"""


def test_read_map(tmp_path):
    p = tmp_path / "0.txt"
    p.write_text(MAP_TEXT)
    g = read_map(p, GreatCircleDistance())
    assert g.node_count == 3 and g.way_count == 2
    assert g.node_type("1") is NodeType.SINGLE_NODE_INTERSECTION
    assert g.get_node("1").incoming == {"s2"} and g.get_node("1").outgoing == {"s1"}
    assert abs(g.way_length("s1") - 853.0) < 5.0  # 0.01 deg of lon at 39.9N
    assert g.get_way("s2").tags == {"highway": "residential"}


def test_map_write_read_round_trip(tmp_path):
    g = RoadNetworkGraph(EuclideanDistance())
    g.add_node(RoadNode.create("a", 0.0, 0.0, tags={"k": "v"}))
    g.add_node(RoadNode.create("b", 10.0, 0.0, node_type=NodeType.UNKNOWN))
    g.add_way(RoadWay.create("ab", ["a", "b"]))
    p = write_map(g, tmp_path / "maps" / "0.txt")
    back = read_map(p, EuclideanDistance())
    assert list(back.to_lines()) == list(g.to_lines())
    assert back.way_length("ab") == pytest.approx(10.0)


def test_map_errors(tmp_path):
    with pytest.raises(PathNotFound):
        read_map(tmp_path / "missing.txt", EuclideanDistance())
    p = tmp_path / "bad.txt"
    p.write_text("1 0 0\n2 zero 0\n")
    with pytest.raises(ParseError) as exc:
        read_map(p, EuclideanDistance())
    assert exc.value.line_no == 2 and exc.value.path == p


# ---------- Match results


def test_match_results_round_trip(tmp_path):
    results = [MatchResult.of("1", ["s1", "s2", "s1"]), MatchResult.of("2", [])]
    assert write_match_results(results, tmp_path) == 2
    (tmp_path / "junk.csv").write_text("s9\n")
    back = read_match_results(tmp_path)
    assert back == results


def test_match_result_errors(tmp_path):
    with pytest.raises(PathNotFound):
        read_match_results(tmp_path / "missing")
    (tmp_path / "route_1.txt").write_text("s1\ns2 s3\n")
    with pytest.raises(ParseError):
        read_match_results(tmp_path)


def test_duplicate_trajectory_ids_across_files(tmp_path):
    (tmp_path / "a_1.txt").write_text("s1\n")
    (tmp_path / "b_1.txt").write_text("s2\n")
    with pytest.raises(ParseError):
        read_match_results(tmp_path)

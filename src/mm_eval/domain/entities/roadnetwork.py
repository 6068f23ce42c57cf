# domain/entities/roadnetwork.py
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import IntEnum

from mm_eval.app.protocols import DistanceFunction
from mm_eval.domain.entities.geography import Point
from mm_eval.domain.errors import MalformedGraph, ParseError

NODE_TYPE_TAG = "nodeType"


class NodeType(IntEnum):
    UNKNOWN = -1
    NULL = -2  # no type recorded
    NON_INTERSECTION = 0
    INTERSECTION_SUB_NODE = 1
    SINGLE_NODE_INTERSECTION = 2
    INTERSECTION_MAIN_NODE = 3
    MINI_NODE = 4


@dataclass
class Primitive:
    """Identity and open-ended attributes shared by nodes and ways."""

    id: str
    tags: dict[str, str] = field(default_factory=dict)
    distance: DistanceFunction | None = None


class _PrimitiveAccess:
    base: Primitive

    @property
    def id(self) -> str:
        return self.base.id

    @property
    def tags(self) -> dict[str, str]:
        return self.base.tags

    @property
    def distance(self) -> DistanceFunction | None:
        return self.base.distance

    def add_tag(self, key: str, value) -> None:
        self.base.tags[key] = str(value)

    def get_tag(self, key: str, default: str | None = None) -> str | None:
        return self.base.tags.get(key, default)


# ---------------- text helpers ------------------------


def _fmt_tags(tags: Mapping[str, str]) -> str:
    return "".join(f" {k}:{v}" for k, v in tags.items())


def _parse_tags(tokens: list[str], *, line: str, path=None, line_no=None) -> dict[str, str]:
    tags: dict[str, str] = {}
    for tok in tokens:
        kv = tok.split(":")
        if len(kv) != 2 or not kv[0]:
            raise ParseError(f"unreadable attribute {tok!r}", path=path, line_no=line_no, line=line)
        tags[kv[0]] = kv[1]
    return tags


def _float(tok: str, *, line: str, path=None, line_no=None) -> float:
    try:
        return float(tok)
    except ValueError:
        raise ParseError(f"not a number: {tok!r}", path=path, line_no=line_no, line=line) from None


# ---------------- nodes ------------------------


@dataclass(eq=False)
class RoadNode(_PrimitiveAccess):
    """
    Intersection or shape point of the road network.
    incoming/outgoing hold way IDs; the graph keeps them consistent, the node never does.
    """

    base: Primitive
    lon: float
    lat: float
    node_type: NodeType = NodeType.NULL
    incoming: set[str] = field(default_factory=set)
    outgoing: set[str] = field(default_factory=set)

    @classmethod
    def create(
        cls,
        id: str,
        lon: float,
        lat: float,
        *,
        node_type: NodeType = NodeType.NULL,
        tags: Mapping[str, str] | None = None,
        distance: DistanceFunction | None = None,
    ) -> RoadNode:
        return cls(Primitive(id, dict(tags or {}), distance), lon, lat, NodeType(node_type))

    @property
    def x(self) -> float:
        return self.lon

    @property
    def y(self) -> float:
        return self.lat

    def to_point(self) -> Point:
        return Point(self.lon, self.lat)

    def set_location(self, lon: float, lat: float) -> None:
        """
        Raw move, graph-internal like the back-reference edits below. For a node held
        by a graph use RoadNetworkGraph.set_node_location, which also refreshes the
        connected way lengths and the spatial index.
        """
        self.lon, self.lat = lon, lat

    # degree
    @property
    def in_degree(self) -> int:
        return len(self.incoming)

    @property
    def out_degree(self) -> int:
        return len(self.outgoing)

    @property
    def degree(self) -> int:
        return self.in_degree + self.out_degree

    # raw back-reference edits; only RoadNetworkGraph should call these
    def add_incoming_way(self, way_id: str) -> None:
        self.incoming.add(way_id)

    def add_outgoing_way(self, way_id: str) -> None:
        self.outgoing.add(way_id)

    def remove_incoming_way(self, way_id: str) -> None:
        self.incoming.discard(way_id)

    def remove_outgoing_way(self, way_id: str) -> None:
        self.outgoing.discard(way_id)

    def clear_connected_ways(self) -> None:
        self.incoming.clear()
        self.outgoing.clear()

    def to_string(self) -> str:
        out = f"{self.id} {self.lon:.5f} {self.lat:.5f}"
        if self.node_type is not NodeType.NULL:
            out += f" {NODE_TYPE_TAG}:{int(self.node_type)}"
        return out + _fmt_tags(self.tags)

    __str__ = to_string

    @classmethod
    def parse(
        cls,
        s: str,
        distance: DistanceFunction | None = None,
        *,
        path=None,
        line_no: int | None = None,
    ) -> RoadNode:
        toks = s.split()
        if len(toks) < 3:
            raise ParseError("road node needs 'id lon lat'", path=path, line_no=line_no, line=s)
        ctx = dict(line=s, path=path, line_no=line_no)
        lon, lat = _float(toks[1], **ctx), _float(toks[2], **ctx)
        tags = _parse_tags(toks[3:], **ctx)
        node_type = NodeType.NULL
        if NODE_TYPE_TAG in tags:
            raw = tags.pop(NODE_TYPE_TAG)
            try:
                node_type = NodeType(int(raw))
            except ValueError:
                raise ParseError(f"bad node type {raw!r}", **ctx) from None
        return cls.create(toks[0], lon, lat, node_type=node_type, tags=tags, distance=distance)


# ---------------- ways ------------------------


@dataclass(eq=False)
class RoadWay(_PrimitiveAccess):
    """Road segment: an ordered list of node IDs. Owns no nodes."""

    base: Primitive
    node_ids: list[str]
    oneway: bool = True
    length: float = 0.0  # cached, refreshed by the graph

    def __post_init__(self):
        if len(self.node_ids) < 2:
            raise MalformedGraph(f"way {self.id!r} needs at least 2 vertices, got {len(self.node_ids)}")

    @classmethod
    def create(
        cls,
        id: str,
        node_ids,
        *,
        oneway: bool = True,
        tags: Mapping[str, str] | None = None,
        distance: DistanceFunction | None = None,
    ) -> RoadWay:
        return cls(Primitive(id, dict(tags or {}), distance), list(node_ids), oneway)

    @property
    def first_node_id(self) -> str:
        return self.node_ids[0]

    @property
    def last_node_id(self) -> str:
        return self.node_ids[-1]

    def compute_length(self, locate: Callable[[str], Point]) -> float:
        """Sum of vertex-to-vertex distances; `locate` maps a node ID to its position."""
        if self.distance is None:
            raise ValueError(f"way {self.id!r} has no distance function")
        pts = [locate(nid) for nid in self.node_ids]
        return sum(self.distance.distance(a, b) for a, b in zip(pts, pts[1:]))

    def to_string(self) -> str:
        return f"{self.id} {int(self.oneway)} {' '.join(self.node_ids)}" + _fmt_tags(self.tags)

    __str__ = to_string

    @classmethod
    def parse(
        cls,
        s: str,
        distance: DistanceFunction | None = None,
        *,
        path=None,
        line_no: int | None = None,
    ) -> RoadWay:
        ctx = dict(line=s, path=path, line_no=line_no)
        toks = s.split()
        if len(toks) < 4:
            raise ParseError("road way needs 'id oneway n1 n2 ...'", **ctx)
        if toks[1] not in ("0", "1"):
            raise ParseError(f"oneway flag must be 0 or 1, got {toks[1]!r}", **ctx)
        rest = toks[2:]
        split = next((i for i, t in enumerate(rest) if ":" in t), len(rest))
        node_ids, tag_toks = rest[:split], rest[split:]
        if len(node_ids) < 2:
            raise ParseError("road way needs at least 2 vertices", **ctx)
        tags = _parse_tags(tag_toks, **ctx)
        return cls.create(toks[0], node_ids, oneway=toks[1] == "1", tags=tags, distance=distance)

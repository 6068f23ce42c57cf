# mm_eval/domain/graph.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from mm_eval.app.protocols import DistanceFunction
from mm_eval.domain.entities.geography import BBox, Point
from mm_eval.domain.entities.roadnetwork import NodeType, RoadNode, RoadWay
from mm_eval.domain.entities.spatial import XYObject
from mm_eval.domain.errors import InvariantViolation, MalformedGraph, ParseError
from mm_eval.domain.mechanics.mechanics_spatial_index import SortedXYIndex

log = logging.getLogger(__name__)

SECTION_SEPARATOR = "-"


@dataclass
class RoadNetworkGraph:
    """
    Sole owner of every node and way. Nodes and ways reference each other by ID;
    all back-reference bookkeeping happens here.
    """

    distance: DistanceFunction
    _nodes: dict[str, RoadNode] = field(default_factory=dict, init=False, repr=False)
    _ways: dict[str, RoadWay] = field(default_factory=dict, init=False, repr=False)
    _index: SortedXYIndex | None = field(default=None, init=False, repr=False)

    # --------------- lookup -----------------------------

    def get_node(self, node_id: str) -> RoadNode | None:
        return self._nodes.get(node_id)

    def get_way(self, way_id: str) -> RoadWay | None:
        return self._ways.get(way_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def has_way(self, way_id: str) -> bool:
        return way_id in self._ways

    @property
    def nodes(self) -> Iterator[RoadNode]:
        return iter(self._nodes.values())

    @property
    def ways(self) -> Iterator[RoadWay]:
        return iter(self._ways.values())

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def way_count(self) -> int:
        return len(self._ways)

    def _require_node(self, node_id: str) -> RoadNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"unknown node {node_id!r}") from None

    def _require_way(self, way_id: str) -> RoadWay:
        try:
            return self._ways[way_id]
        except KeyError:
            raise KeyError(f"unknown way {way_id!r}") from None

    # --------------- degree / type --------------------------

    def in_degree(self, node_id: str) -> int:
        return self._require_node(node_id).in_degree

    def out_degree(self, node_id: str) -> int:
        return self._require_node(node_id).out_degree

    def degree(self, node_id: str) -> int:
        return self._require_node(node_id).degree

    def node_type(self, node_id: str) -> NodeType:
        return self._require_node(node_id).node_type

    def incoming_ways(self, node_id: str) -> list[RoadWay]:
        return [self._ways[w] for w in sorted(self._require_node(node_id).incoming)]

    def outgoing_ways(self, node_id: str) -> list[RoadWay]:
        return [self._ways[w] for w in sorted(self._require_node(node_id).outgoing)]

    # --------------- mutation --------------------------

    def add_node(self, node: RoadNode) -> RoadNode:
        if node.id in self._nodes:
            raise MalformedGraph(f"duplicate node id {node.id!r}")
        if node.incoming or node.outgoing:
            raise MalformedGraph(f"node {node.id!r} arrives with way references")
        if node.distance is None:
            node.base.distance = self.distance
        self._nodes[node.id] = node
        self._index = None
        return node

    def add_way(self, way: RoadWay) -> RoadWay:
        if way.id in self._ways:
            raise MalformedGraph(f"duplicate way id {way.id!r}")
        missing = [nid for nid in way.node_ids if nid not in self._nodes]
        if missing:
            raise MalformedGraph(f"way {way.id!r} references unknown node(s) {missing}")
        if way.distance is None:
            way.base.distance = self.distance
        way.length = way.compute_length(self._locate)
        self._ways[way.id] = way
        self._nodes[way.first_node_id].add_outgoing_way(way.id)
        self._nodes[way.last_node_id].add_incoming_way(way.id)
        return way

    def remove_way(self, way_id: str) -> RoadWay:
        way = self._require_way(way_id)
        first, last = self._nodes.get(way.first_node_id), self._nodes.get(way.last_node_id)
        if first is None or way_id not in first.outgoing:
            raise InvariantViolation(f"way {way_id!r} missing from outgoing set of {way.first_node_id!r}")
        if last is None or way_id not in last.incoming:
            raise InvariantViolation(f"way {way_id!r} missing from incoming set of {way.last_node_id!r}")
        first.remove_outgoing_way(way_id)
        last.remove_incoming_way(way_id)
        del self._ways[way_id]
        return way

    def remove_node(self, node_id: str) -> RoadNode:
        """Remove a node and every way that passes through it."""
        node = self._require_node(node_id)
        doomed = [w.id for w in self._ways.values() if node_id in w.node_ids]
        for wid in doomed:
            self.remove_way(wid)
        if node.incoming or node.outgoing:
            raise InvariantViolation(f"node {node_id!r} still referenced after way removal")
        del self._nodes[node_id]
        self._index = None
        return node

    def clear_connected_ways(self, node_id: str) -> list[RoadWay]:
        """Remove all incoming and outgoing ways of a node from the graph."""
        node = self._require_node(node_id)
        return [self.remove_way(w) for w in sorted(node.incoming | node.outgoing)]

    def remove_incoming_way(self, node_id: str, way_id: str) -> RoadWay:
        way = self._require_way(way_id)
        if way.last_node_id != node_id:
            raise InvariantViolation(f"way {way_id!r} does not end at {node_id!r}")
        return self.remove_way(way_id)

    def remove_outgoing_way(self, node_id: str, way_id: str) -> RoadWay:
        way = self._require_way(way_id)
        if way.first_node_id != node_id:
            raise InvariantViolation(f"way {way_id!r} does not start at {node_id!r}")
        return self.remove_way(way_id)

    def set_node_location(self, node_id: str, lon: float, lat: float) -> None:
        self._require_node(node_id).set_location(lon, lat)
        for way in self._ways.values():
            if node_id in way.node_ids:
                way.length = way.compute_length(self._locate)
        self._index = None

    def check_consistency(self) -> None:
        for node in self._nodes.values():
            for wid in node.outgoing:
                way = self._ways.get(wid)
                if way is None or way.first_node_id != node.id:
                    raise InvariantViolation(f"node {node.id!r} lists bad outgoing way {wid!r}")
            for wid in node.incoming:
                way = self._ways.get(wid)
                if way is None or way.last_node_id != node.id:
                    raise InvariantViolation(f"node {node.id!r} lists bad incoming way {wid!r}")
        for way in self._ways.values():
            for nid in way.node_ids:
                if nid not in self._nodes:
                    raise InvariantViolation(f"way {way.id!r} references missing node {nid!r}")
            if way.id not in self._nodes[way.first_node_id].outgoing:
                raise InvariantViolation(f"way {way.id!r} not registered on {way.first_node_id!r}")
            if way.id not in self._nodes[way.last_node_id].incoming:
                raise InvariantViolation(f"way {way.id!r} not registered on {way.last_node_id!r}")

    # --------------- geometry --------------------------

    def _locate(self, node_id: str) -> Point:
        return self._nodes[node_id].to_point()

    def way_length(self, way_id: str) -> float:
        return self._require_way(way_id).length

    def total_length(self) -> float:
        return sum(w.length for w in self._ways.values())

    def bounding_box(self) -> BBox | None:
        if not self._nodes:
            return None
        xs = [n.lon for n in self._nodes.values()]
        ys = [n.lat for n in self._nodes.values()]
        return min(xs), min(ys), max(xs), max(ys)

    def node_index(self) -> SortedXYIndex:
        if self._index is None:
            self._index = SortedXYIndex(XYObject(n.lon, n.lat, n) for n in self._nodes.values())
        return self._index

    def nodes_in_range(self, xmin: float, ymin: float, xmax: float, ymax: float) -> list[RoadNode]:
        return [e.payload for e in self.node_index().query(xmin, ymin, xmax, ymax)]

    def nearest_node(self, x: float, y: float) -> RoadNode | None:
        hits = self.node_index().nearest(x, y, 1, distance=self.distance)
        return hits[0].payload if hits else None

    # --------------- text format --------------------------

    def to_lines(self) -> Iterator[str]:
        for node in self._nodes.values():
            yield node.to_string()
        yield SECTION_SEPARATOR
        for way in self._ways.values():
            yield way.to_string()

    @classmethod
    def parse(
        cls, lines: Iterable[str], distance: DistanceFunction, *, path=None
    ) -> RoadNetworkGraph:
        g = cls(distance)
        in_ways = False
        for i, raw in enumerate(lines, start=1):
            line = raw.strip()
            if not line:
                continue
            if line == SECTION_SEPARATOR:
                if in_ways:
                    raise ParseError("second section separator", path=path, line_no=i, line=line)
                in_ways = True
                continue
            try:
                if in_ways:
                    g.add_way(RoadWay.parse(line, distance, path=path, line_no=i))
                else:
                    g.add_node(RoadNode.parse(line, distance, path=path, line_no=i))
            except MalformedGraph as exc:
                raise ParseError(str(exc), path=path, line_no=i, line=line) from exc
        log.debug(
            "graph parsed",
            extra={"extra": {"path": str(path), "nodes": g.node_count, "ways": g.way_count}},
        )
        return g

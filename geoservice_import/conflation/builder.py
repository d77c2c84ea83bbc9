"""Synthesis of graph entities from source coordinate structures.

Every ``build_*`` method validates its whole input before allocating a
single identifier, then returns a ``BuildResult``: the root entity for
the feature plus every entity created for it, children before parents,
which is the order they must be added to the graph.  The builder never
touches the graph itself.

Shapes:
- Point → ``GraphNode``.
- LineString → ``GraphWay`` over fresh nodes.
- Polygon with one ring → closed ``GraphWay`` (``area=yes`` unless tagged).
- Polygon with holes → ``MultiPolygon`` relation, first ring ``outer``,
  the rest ``inner``.
- MultiLineString → ``route`` relation of ways, empty roles.
- MultiPolygon → ``MultiPolygon`` relation of per-polygon entities, empty roles.

Vertices are never shared between features or snapped to existing nodes.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from geoservice_import.core.constants import (
    AREA_TAG,
    INNER_ROLE,
    MULTIPOLYGON_TYPE,
    OUTER_ROLE,
    ROUTE_TYPE,
    TYPE_TAG,
)
from geoservice_import.core.exceptions import ValidationError
from geoservice_import.models.entities import (
    NODE_PREFIX,
    RELATION_PREFIX,
    WAY_PREFIX,
    GraphNode,
    GraphRelation,
    GraphWay,
    RelationMember,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from geoservice_import.graph.base import TargetGraph
    from geoservice_import.models.entities import Entity

logger = logging.getLogger("geoservice_import.conflation.builder")

Coord = tuple[float, float]

MIN_LINE_VERTICES = 2
MIN_RING_VERTICES = 3


class DegenerateGeometry(ValidationError):
    """Raised when coordinates are too few to build the requested entity."""

    default_stage = "build"
    default_code = "DEGENERATE_GEOMETRY"


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Entities synthesised for one feature.

    Attributes:
        entity: The single root entity representing the feature.
        created: Every new entity, children first, ``entity`` last.
    """

    entity: Entity
    created: tuple[Entity, ...]


class EntityIdAllocator:
    """Allocates ``n-1``, ``w-1``, ``r-1``... one counter per entity kind.

    Identifiers are only unique within the allocator; builders that add to
    a shared graph use ``GraphIdAllocator``.
    """

    def __init__(self) -> None:
        self._counters: dict[str, Iterator[int]] = {}

    def next_id(self, prefix: str) -> str:
        counter = self._counters.setdefault(prefix, itertools.count(1))
        return f"{prefix}-{next(counter)}"


class GraphIdAllocator(EntityIdAllocator):
    """Takes identifiers from the target graph, unique across sessions."""

    def __init__(self, graph: TargetGraph) -> None:
        super().__init__()
        self._graph = graph

    def next_id(self, prefix: str) -> str:
        return self._graph.allocate_id(prefix)


class EntityGraphBuilder:
    """Builds nodes, ways and relations from ``(lon, lat)`` coordinates."""

    def __init__(self, allocator: EntityIdAllocator | None = None) -> None:
        self._ids = allocator or EntityIdAllocator()

    # ------------------------------------------------------------------
    # Nodes and ways
    # ------------------------------------------------------------------

    def build_nodes(self, points: Sequence[Coord]) -> list[GraphNode]:
        """Build one tagless, visible node per point, in order."""
        return [
            GraphNode(id=self._ids.next_id(NODE_PREFIX), location=(lat, lon))
            for lon, lat in points
        ]

    def build_point(self, coord: Coord, tags: dict[str, str]) -> BuildResult:
        lon, lat = coord
        node = GraphNode(id=self._ids.next_id(NODE_PREFIX), location=(lat, lon), tags=dict(tags))
        return BuildResult(entity=node, created=(node,))

    def build_way(self, coords: Sequence[Coord], tags: dict[str, str]) -> BuildResult:
        """Build a way over fresh nodes for *coords*.

        Raises:
            DegenerateGeometry: If there are fewer than 2 coordinates.
        """
        validate_line(coords)
        return self._way(coords, tags)

    def build_ring(self, ring: Sequence[Coord], tags: dict[str, str]) -> BuildResult:
        """Build a closed way whose last node identifier repeats the first.

        Raises:
            DegenerateGeometry: If the ring has fewer than 3 distinct vertices.
        """
        return self._ring(normalize_ring(ring), tags)

    # ------------------------------------------------------------------
    # Polygons
    # ------------------------------------------------------------------

    def build_polygon(self, rings: Sequence[Sequence[Coord]], tags: dict[str, str]) -> BuildResult:
        """Build a closed way for one ring, or an outer/inner relation for several.

        Raises:
            DegenerateGeometry: If there are no rings or any ring is degenerate.
        """
        return self._polygon(normalize_rings(rings), tags)

    def build_multi_polygon(
        self,
        polygons: Sequence[Sequence[Sequence[Coord]]],
        tags: dict[str, str],
    ) -> BuildResult:
        """Build every polygon and group them in a ``MultiPolygon`` relation.

        Raises:
            DegenerateGeometry: If there are no polygons or any polygon is degenerate.
        """
        if not polygons:
            msg = "MultiPolygon has no polygons"
            raise DegenerateGeometry(msg)
        normalized = [normalize_rings(rings) for rings in polygons]

        created: list[Entity] = []
        members: list[RelationMember] = []
        for rings in normalized:
            part = self._polygon(rings, tags)
            created.extend(part.created)
            members.append(RelationMember(id=part.entity.id))
        return self._relation(members, {TYPE_TAG: MULTIPOLYGON_TYPE}, created)

    # ------------------------------------------------------------------
    # Multi-lines
    # ------------------------------------------------------------------

    def build_multi_line(
        self,
        parts: Sequence[Sequence[Coord]],
        tags: dict[str, str],
    ) -> BuildResult:
        """Build a way per part and group them in a ``route`` relation.

        Raises:
            DegenerateGeometry: If there are no parts or any part is degenerate.
        """
        if not parts:
            msg = "MultiLineString has no parts"
            raise DegenerateGeometry(msg)
        for part in parts:
            validate_line(part)

        created: list[Entity] = []
        members: list[RelationMember] = []
        for part in parts:
            line = self._way(part, tags)
            created.extend(line.created)
            members.append(RelationMember(id=line.entity.id))
        return self._relation(members, {TYPE_TAG: ROUTE_TYPE}, created)

    # ------------------------------------------------------------------
    # Internal builders (input already validated)
    # ------------------------------------------------------------------

    def _way(self, coords: Sequence[Coord], tags: dict[str, str]) -> BuildResult:
        nodes = self.build_nodes(coords)
        way = GraphWay(
            id=self._ids.next_id(WAY_PREFIX),
            node_ids=tuple(n.id for n in nodes),
            tags=dict(tags),
        )
        return BuildResult(entity=way, created=(*nodes, way))

    def _ring(self, open_ring: Sequence[Coord], tags: dict[str, str]) -> BuildResult:
        nodes = self.build_nodes(open_ring)
        node_ids = [n.id for n in nodes]
        way = GraphWay(
            id=self._ids.next_id(WAY_PREFIX),
            node_ids=(*node_ids, node_ids[0]),
            tags=dict(tags),
        )
        return BuildResult(entity=way, created=(*nodes, way))

    def _polygon(self, open_rings: list[list[Coord]], tags: dict[str, str]) -> BuildResult:
        area_tags = dict(tags)
        area_tags.setdefault(AREA_TAG, "yes")

        if len(open_rings) == 1:
            return self._ring(open_rings[0], area_tags)

        created: list[Entity] = []
        members: list[RelationMember] = []
        for index, ring in enumerate(open_rings):
            ring_way = self._ring(ring, area_tags)
            created.extend(ring_way.created)
            role = OUTER_ROLE if index == 0 else INNER_ROLE
            members.append(RelationMember(id=ring_way.entity.id, role=role))
        return self._relation(members, {TYPE_TAG: MULTIPOLYGON_TYPE}, created)

    def _relation(
        self,
        members: list[RelationMember],
        tags: dict[str, str],
        created: list[Entity],
    ) -> BuildResult:
        relation = GraphRelation(
            id=self._ids.next_id(RELATION_PREFIX),
            members=tuple(members),
            tags=tags,
        )
        return BuildResult(entity=relation, created=(*created, relation))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_line(coords: Sequence[Coord]) -> None:
    """Raise ``DegenerateGeometry`` if *coords* cannot form a way."""
    if len(coords) < MIN_LINE_VERTICES:
        msg = f"Line has {len(coords)} coordinate(s), need at least {MIN_LINE_VERTICES}"
        raise DegenerateGeometry(msg)


def normalize_ring(ring: Sequence[Coord]) -> list[Coord]:
    """Return *ring* without its closing vertex, auto-closing unclosed rings.

    Raises:
        DegenerateGeometry: If the ring has fewer than 3 distinct vertices.
    """
    coords = list(ring)
    if len(coords) > 1 and coords[0] == coords[-1]:
        coords = coords[:-1]
    elif coords:
        logger.warning("Auto-closing unclosed ring with %d vertices", len(coords))

    if len(set(coords)) < MIN_RING_VERTICES:
        msg = f"Ring has {len(set(coords))} distinct vertices, need at least {MIN_RING_VERTICES}"
        raise DegenerateGeometry(msg)
    return coords


def normalize_rings(rings: Sequence[Sequence[Coord]]) -> list[list[Coord]]:
    """Normalise every ring of a polygon.

    Raises:
        DegenerateGeometry: If there are no rings or any ring is degenerate.
    """
    if not rings:
        msg = "Polygon has no rings"
        raise DegenerateGeometry(msg)
    return [normalize_ring(ring) for ring in rings]

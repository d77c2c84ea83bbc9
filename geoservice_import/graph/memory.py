"""In-memory ``TargetGraph`` implementation.

Holds entities in dicts keyed by identifier and records every operation
the core issues, in order.  Serves as the reference graph for hosts
without their own editor model and as the graph used in tests.

Candidate kinds:
- ``roads``: ways tagged ``highway``.
- ``buildings``: closed ways tagged ``building``.

An optional bounding box restricts candidates to ways with at least one
node inside it, the way a viewport restricts what is visible.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from geoservice_import.core.constants import BUILDINGS, ROADS
from geoservice_import.graph.base import GraphError, TargetGraph
from geoservice_import.models.entities import GraphNode, GraphRelation, GraphWay

if TYPE_CHECKING:
    from geoservice_import.models.entities import Entity

logger = logging.getLogger("geoservice_import.graph.memory")

_KIND_TAGS = {ROADS: "highway", BUILDINGS: "building"}


class InMemoryGraph(TargetGraph):
    """Dict-backed graph.

    Attributes:
        operations: ``("add", id)`` and ``("change_tags", id)`` in issue order.
    """

    def __init__(
        self,
        *,
        visible_bbox: tuple[float, float, float, float] | None = None,
    ) -> None:
        self._entities: dict[str, Entity] = {}
        self.visible_bbox = visible_bbox
        self.operations: list[tuple[str, str]] = []
        self._id_counters: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Loading existing data
    # ------------------------------------------------------------------

    def load(self, *entities: Entity) -> None:
        """Insert pre-existing entities without recording operations."""
        for entity in entities:
            self._entities[entity.id] = entity

    def add_way_from_locations(
        self,
        way_id: str,
        locations: list[tuple[float, float]],
        tags: dict[str, str],
        *,
        closed: bool = False,
    ) -> GraphWay:
        """Load an existing way and its nodes from ``(lat, lon)`` locations.

        Node ids are derived from the way id (``w10`` → ``n10001``...).
        With ``closed=True`` the first node is repeated at the end.
        """
        base = int(way_id[1:]) * 1000
        node_ids = []
        for offset, location in enumerate(locations, start=1):
            node = GraphNode(id=f"n{base + offset}", location=location, approved_for_edit=True)
            self.load(node)
            node_ids.append(node.id)
        if closed:
            node_ids.append(node_ids[0])
        way = GraphWay(id=way_id, node_ids=tuple(node_ids), tags=dict(tags), approved_for_edit=True)
        self.load(way)
        return way

    # ------------------------------------------------------------------
    # TargetGraph
    # ------------------------------------------------------------------

    def add_entity(self, entity: Entity) -> str:
        if entity.id in self._entities:
            msg = f"Entity {entity.id} already in graph"
            raise GraphError(msg)
        self._entities[entity.id] = entity
        self.operations.append(("add", entity.id))
        return entity.id

    def allocate_id(self, prefix: str) -> str:
        counter = self._id_counters.get(prefix, 0)
        while True:
            counter += 1
            entity_id = f"{prefix}-{counter}"
            if entity_id not in self._entities:
                break
        self._id_counters[prefix] = counter
        return entity_id

    def change_tags(self, entity_id: str, tags: dict[str, str]) -> None:
        entity = self.entity(entity_id)
        self._entities[entity_id] = replace(entity, tags=dict(tags), approved_for_edit=False)
        self.operations.append(("change_tags", entity_id))

    def tags(self, entity_id: str) -> dict[str, str]:
        return dict(self.entity(entity_id).tags)

    def way_node_locations(self, way_id: str) -> list[tuple[float, float]]:
        way = self.entity(way_id)
        if not isinstance(way, GraphWay):
            msg = f"Entity {way_id} is not a way"
            raise GraphError(msg)
        locations = []
        for node_id in way.node_ids:
            node = self.entity(node_id)
            if not isinstance(node, GraphNode):
                msg = f"Way {way_id} references non-node {node_id}"
                raise GraphError(msg)
            locations.append(node.location)
        return locations

    def visible_candidate_ways(self, kind: str) -> list[str]:
        key = _KIND_TAGS.get(kind)
        if key is None:
            logger.debug("No candidates for unknown kind %s", kind)
            return []
        candidates = []
        for entity in self._entities.values():
            if not isinstance(entity, GraphWay) or key not in entity.tags:
                continue
            if kind == BUILDINGS and not entity.is_closed:
                continue
            if not self._is_visible(entity):
                continue
            candidates.append(entity.id)
        return candidates

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def entity(self, entity_id: str) -> Entity:
        """Return the entity with *entity_id*.

        Raises:
            GraphError: If there is no such entity.
        """
        try:
            return self._entities[entity_id]
        except KeyError:
            msg = f"No entity {entity_id} in graph"
            raise GraphError(msg) from None

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def relations(self) -> list[GraphRelation]:
        return [e for e in self._entities.values() if isinstance(e, GraphRelation)]

    def _is_visible(self, way: GraphWay) -> bool:
        if self.visible_bbox is None:
            return True
        min_lon, min_lat, max_lon, max_lat = self.visible_bbox
        for lat, lon in self.way_node_locations(way.id):
            if min_lon <= lon <= max_lon and min_lat <= lat <= max_lat:
                return True
        return False

"""TargetGraph abstract base class.

Defines the contract of the external node/way/relation graph that the
import core merges into.  The core never reads or writes the graph
except through this interface:

    1. ``add_entity(entity)``: commit a newly built entity.
    2. ``change_tags(entity_id, tags)``: replace an entity's tag set.
    3. ``tags(entity_id)``: read an entity's current tags.
    4. ``way_node_locations(way_id)``: ordered node locations of a way.
    5. ``visible_candidate_ways(kind)``: ways currently relevant for matching.
    6. ``allocate_id(prefix)``: reserve an identifier for a new entity.

Hosts serialise calls into one session; implementations need no locking
on behalf of the core.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from geoservice_import.core.exceptions import PermanentError

if TYPE_CHECKING:
    from geoservice_import.models.entities import Entity


class GraphError(PermanentError):
    """Raised when the graph cannot resolve an entity the core asked for."""

    default_stage = "graph"
    default_code = "GRAPH_ENTITY_MISSING"


class TargetGraph(abc.ABC):
    """Abstract base class for the graph the importer writes into.

    Example usage::

        graph = InMemoryGraph()
        session = ImportSession(graph)
        session.submit(collection, ImportConfig())
    """

    @abc.abstractmethod
    def add_entity(self, entity: Entity) -> str:
        """Commit a new entity and return its committed identifier.

        Idempotence is not guaranteed: adding the same entity twice is
        the caller's mistake.
        """

    @abc.abstractmethod
    def change_tags(self, entity_id: str, tags: dict[str, str]) -> None:
        """Replace the tag set of an existing entity.

        Raises:
            GraphError: If the entity does not exist.
        """

    @abc.abstractmethod
    def tags(self, entity_id: str) -> dict[str, str]:
        """Return a copy of an entity's current tags.

        Raises:
            GraphError: If the entity does not exist.
        """

    @abc.abstractmethod
    def way_node_locations(self, way_id: str) -> list[tuple[float, float]]:
        """Return the ``(lat, lon)`` locations of a way's nodes, in order.

        Raises:
            GraphError: If the way or one of its nodes does not exist.
        """

    @abc.abstractmethod
    def visible_candidate_ways(self, kind: str) -> list[str]:
        """Return identifiers of the ways of *kind* currently relevant for matching.

        Args:
            kind: ``"roads"`` for line conflation or ``"buildings"`` for
                point-in-polygon conflation.
        """

    @abc.abstractmethod
    def allocate_id(self, prefix: str) -> str:
        """Reserve a fresh identifier (``n-1``, ``w-4``...) for a new entity.

        Identifiers are unique for the lifetime of the graph, so entities
        built by consecutive sessions never collide.
        """

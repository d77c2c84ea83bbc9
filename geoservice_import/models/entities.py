"""Graph entity models: nodes, ways and relations.

The result of synthesising one source feature is always exactly one
``Entity``.  Entities are frozen once built; ownership passes to the
target graph through its add-entity operation.

Locations are ``(lat, lon)``, the order the target graph uses; source
coordinates are ``(lon, lat)`` and are swapped when a node is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from geoservice_import.core.constants import TYPE_TAG

NODE_PREFIX = "n"
WAY_PREFIX = "w"
RELATION_PREFIX = "r"


@dataclass(frozen=True, slots=True)
class GraphNode:
    """A node at a single location.

    Attributes:
        id: Entity identifier (``n-1`` for new nodes).
        location: ``(lat, lon)`` in WGS 84 degrees.
        tags: Tag set.
        visible: Whether the node is visible in the graph.
        approved_for_edit: New imported entities start unapproved.
    """

    id: str
    location: tuple[float, float]
    tags: dict[str, str] = field(default_factory=dict)
    visible: bool = True
    approved_for_edit: bool = False


@dataclass(frozen=True, slots=True)
class GraphWay:
    """An ordered sequence of node identifiers.

    A ring is a closed way: its first and last node identifiers are equal.
    """

    id: str
    node_ids: tuple[str, ...]
    tags: dict[str, str] = field(default_factory=dict)
    visible: bool = True
    approved_for_edit: bool = False

    def __post_init__(self) -> None:
        if len(self.node_ids) < 2:
            msg = f"Way {self.id} needs at least 2 nodes, got {len(self.node_ids)}"
            raise ValueError(msg)

    @property
    def is_closed(self) -> bool:
        return self.node_ids[0] == self.node_ids[-1]


@dataclass(frozen=True, slots=True)
class RelationMember:
    """A member reference inside a relation; ``role`` may be empty."""

    id: str
    role: str = ""


@dataclass(frozen=True, slots=True)
class GraphRelation:
    """A grouping of member entities with roles."""

    id: str
    members: tuple[RelationMember, ...] = ()
    tags: dict[str, str] = field(default_factory=dict)
    visible: bool = True
    approved_for_edit: bool = False

    @property
    def relation_type(self) -> str:
        return self.tags.get(TYPE_TAG, "")

    @property
    def roles(self) -> list[str]:
        return [m.role for m in self.members]


Entity = GraphNode | GraphWay | GraphRelation


def entity_kind(entity: Entity) -> str:
    """Return ``"node"``, ``"way"`` or ``"relation"`` for *entity*."""
    match entity:
        case GraphNode():
            return "node"
        case GraphWay():
            return "way"
        case GraphRelation():
            return "relation"
    msg = f"Not a graph entity: {type(entity).__name__}"
    raise TypeError(msg)


def is_new_id(entity_id: str) -> bool:
    """Whether *entity_id* was allocated locally (``w-3``) rather than by the graph."""
    return entity_id[1:].startswith("-")

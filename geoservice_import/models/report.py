"""Session result models.

- ``SessionStats``: per-session counters (``TypedDict``, plain-dict friendly).
- ``SessionResult``: snapshot returned by ``ImportSession.session_result()``.
- ``ImportReport``: pydantic record of a session for display or audit,
  produced by ``SessionResult.to_report()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypedDict

from pydantic import BaseModel, Field

from geoservice_import.models.entities import (
    Entity,
    GraphNode,
    GraphRelation,
    GraphWay,
    entity_kind,
)

SCHEMA_VERSION = "geoservice-import-report-v1"


class SessionStats(TypedDict):
    """Counters accumulated over the life of a session."""

    batches: int
    features: int
    created: int
    merged: int
    duplicates: int
    skipped_unsupported: int
    skipped_degenerate: int
    failed: int


def empty_stats() -> SessionStats:
    return SessionStats(
        batches=0,
        features=0,
        created=0,
        merged=0,
        duplicates=0,
        skipped_unsupported=0,
        skipped_degenerate=0,
        failed=0,
    )


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Snapshot of a session's accumulated state.

    Attributes:
        created_entities: Root entities created per feature, in creation order.
        known_source_ids: Source identifiers seen so far.
        merged_entity_ids: Existing entities that received merged tags, in merge order.
        stats: Session counters.
        errors: Structured payloads of per-feature errors.
    """

    created_entities: tuple[Entity, ...] = ()
    known_source_ids: frozenset[object] = frozenset()
    merged_entity_ids: tuple[str, ...] = ()
    stats: SessionStats = field(default_factory=empty_stats)
    errors: tuple[dict[str, object], ...] = ()

    def to_report(self, *, generated_at: datetime | None = None) -> ImportReport:
        """Build the serialisable ``ImportReport`` for this snapshot."""
        return ImportReport(
            generated_at=(generated_at or datetime.now(UTC)).isoformat(),
            known_source_ids=sorted(str(sid) for sid in self.known_source_ids),
            created=[EntitySummary.from_entity(e) for e in self.created_entities],
            merged_entity_ids=list(self.merged_entity_ids),
            stats=dict(self.stats),
            errors=[dict(e) for e in self.errors],
        )


class EntitySummary(BaseModel):
    """Display summary of one created entity."""

    id: str
    kind: str
    tags: dict[str, str] = Field(default_factory=dict)
    location: list[float] | None = None
    node_count: int = 0
    members: list[dict[str, str]] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: Entity) -> EntitySummary:
        extra: dict[str, Any] = {}
        if isinstance(entity, GraphNode):
            extra["location"] = list(entity.location)
        elif isinstance(entity, GraphWay):
            extra["node_count"] = len(entity.node_ids)
        elif isinstance(entity, GraphRelation):
            extra["members"] = [{"id": m.id, "role": m.role} for m in entity.members]
        return cls(id=entity.id, kind=entity_kind(entity), tags=dict(entity.tags), **extra)


class ImportReport(BaseModel):
    """Serialisable record of an import session.

    Attributes:
        schema_version: Report schema identifier.
        generated_at: ISO 8601 timestamp of the snapshot.
        known_source_ids: Source identifiers seen, as strings, sorted.
        created: Summaries of the root entities created.
        merged_entity_ids: Existing entities that received merged tags.
        stats: Session counters.
        errors: Per-feature error payloads.
    """

    schema_version: str = SCHEMA_VERSION
    generated_at: str = ""
    known_source_ids: list[str] = Field(default_factory=list)
    created: list[EntitySummary] = Field(default_factory=list)
    merged_entity_ids: list[str] = Field(default_factory=list)
    stats: dict[str, int] = Field(default_factory=dict)
    errors: list[dict[str, Any]] = Field(default_factory=list)

"""Import session: deduplication, dispatch, conflation and entity creation.

One ``ImportSession`` owns the state of an import into one target graph:
the source identifiers already seen, the active field map and preset
fields, the entities created so far, and the tag snapshots taken before
existing entities were first modified.

A batch is processed synchronously, feature by feature, in input order.
For every feature not seen before the session either

- merges the feature's tags into existing graph entities it coincides
  with (point inside a building, line overlapping roads), or
- builds new entities and adds them to the graph.

Per-feature failures are logged, counted and recorded; they never stop
the batch.  A submission arriving while a batch is running is rejected.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

from geoservice_import.conflation.builder import (
    BuildResult,
    DegenerateGeometry,
    EntityGraphBuilder,
    GraphIdAllocator,
    validate_line,
)
from geoservice_import.conflation.matcher import GeometryConflationMatcher
from geoservice_import.conflation.tag_mapper import merge_tags, remap
from geoservice_import.core.config import ImportConfig
from geoservice_import.core.exceptions import ConflationError, ValidationError
from geoservice_import.models.feature import GeometryKind, UnsupportedGeometryKind
from geoservice_import.models.report import SessionResult, SessionStats, empty_stats

if TYPE_CHECKING:
    from collections.abc import Iterable

    from geoservice_import.graph.base import TargetGraph
    from geoservice_import.models.entities import Entity
    from geoservice_import.models.feature import FeatureCollection, SourceFeature
    from geoservice_import.models.preset import Preset

logger = logging.getLogger("geoservice_import.conflation.session")


class DuplicateSourceFeature(ValidationError):
    """Raised internally when a feature's source identifier was already imported."""

    default_stage = "session"
    default_code = "DUPLICATE_SOURCE_FEATURE"


class SessionState(enum.Enum):
    """Lifecycle state of a session."""

    IDLE = "idle"
    PROCESSING = "processing"


class ImportSession:
    """Imports feature collections into a target graph.

    Args:
        graph: The graph to merge into.
        known_source_ids: Identifiers imported by earlier sessions, if persisted.
        builder: Entity builder; by default one that takes identifiers from
            *graph*, so sessions continuing on the same graph never reuse them.
    """

    def __init__(
        self,
        graph: TargetGraph,
        *,
        known_source_ids: Iterable[object] = (),
        builder: EntityGraphBuilder | None = None,
    ) -> None:
        self._graph = graph
        self._builder = builder or EntityGraphBuilder(GraphIdAllocator(graph))
        self._matcher = GeometryConflationMatcher(graph)
        self._config = ImportConfig()
        self._state = SessionState.IDLE

        self.known_source_ids: set[object] = set(known_source_ids)
        self.field_map: dict[str, str] = {}
        self.active_preset_fields: frozenset[str] = frozenset()
        self.created_entities: list[Entity] = []

        self._merged_entity_ids: list[str] = []
        self._original_tags: dict[str, dict[str, str]] = {}
        self._errors: list[dict[str, object]] = []
        self._stats: SessionStats = empty_stats()

    @property
    def state(self) -> SessionState:
        return self._state

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(
        self,
        collection: FeatureCollection,
        config: ImportConfig,
        preset: Preset | None = None,
    ) -> list[Entity] | None:
        """Process a feature collection to completion.

        Args:
            collection: Parsed features, processed in order.
            config: Configuration snapshot for this batch.
            preset: Active target preset, if any.

        Returns:
            Root entities created by this batch, or ``None`` if the
            submission was rejected because a batch is already running.
        """
        if self._state is SessionState.PROCESSING:
            logger.warning("Rejected submission | reason=batch in progress")
            return None

        self._state = SessionState.PROCESSING
        try:
            self._begin_batch(config, preset)
            logger.info(
                "Batch started | features=%d | truncated=%s | preset=%s",
                len(collection),
                collection.truncated,
                preset.id if preset else None,
            )
            created_before = len(self.created_entities)
            merged_before = self._stats["merged"]
            duplicates_before = self._stats["duplicates"]

            for feature in collection:
                self._process(feature)

            created = self.created_entities[created_before:]
            logger.info(
                "Batch complete | features=%d | created=%d | merged=%d | duplicates=%d",
                len(collection),
                len(created),
                self._stats["merged"] - merged_before,
                self._stats["duplicates"] - duplicates_before,
            )
            return created
        finally:
            self._state = SessionState.IDLE

    def session_result(self) -> SessionResult:
        """Snapshot of everything the session has done so far."""
        return SessionResult(
            created_entities=tuple(self.created_entities),
            known_source_ids=frozenset(self.known_source_ids),
            merged_entity_ids=tuple(self._merged_entity_ids),
            stats=SessionStats(**self._stats),
            errors=tuple(self._errors),
        )

    def original_tags(self, entity_id: str) -> dict[str, str] | None:
        """Tags *entity_id* had before this session first merged into it."""
        snapshot = self._original_tags.get(entity_id)
        return dict(snapshot) if snapshot is not None else None

    # ------------------------------------------------------------------
    # Batch processing
    # ------------------------------------------------------------------

    def _begin_batch(self, config: ImportConfig, preset: Preset | None) -> None:
        self._config = config
        self.field_map = dict(config.field_map)
        self.active_preset_fields = preset.suggested_keys if preset else frozenset()
        self._matcher.buffer_m = config.buffer_m
        self._matcher.threshold = config.match_threshold
        self._matcher.reset_cache()
        self._stats["batches"] += 1

    def _process(self, feature: SourceFeature) -> None:
        self._stats["features"] += 1
        try:
            self._claim(feature)
            result = self._dispatch(feature)
        except DuplicateSourceFeature:
            self._stats["duplicates"] += 1
            logger.debug("Skipping known feature %s", feature.source_id)
            return
        except UnsupportedGeometryKind as exc:
            self._stats["skipped_unsupported"] += 1
            self._record(exc, feature)
            return
        except DegenerateGeometry as exc:
            self._stats["skipped_degenerate"] += 1
            self._record(exc, feature)
            return
        except ConflationError as exc:
            self._stats["failed"] += 1
            self._record(exc, feature)
            return
        except (ValueError, TypeError) as exc:
            self._stats["failed"] += 1
            self._record(
                ConflationError(str(exc), stage="session", code="FEATURE_FAILED"),
                feature,
            )
            return

        if result is not None:
            self.created_entities.append(result.entity)
            self._stats["created"] += 1

    def _claim(self, feature: SourceFeature) -> None:
        """Record the feature's identifier, or raise if it was seen before."""
        if feature.source_id is None:
            logger.debug("Feature without identifier; it cannot be deduplicated")
            return
        if feature.source_id in self.known_source_ids:
            msg = f"Feature {feature.source_id} already imported"
            raise DuplicateSourceFeature(msg, source_id=feature.source_id)
        self.known_source_ids.add(feature.source_id)

    def _dispatch(self, feature: SourceFeature) -> BuildResult | None:
        kind = feature.kind
        tags = remap(
            feature.properties,
            self.field_map,
            len(self.active_preset_fields),
            id_field=self._config.id_field,
        )

        if kind is GeometryKind.POINT:
            return self._import_point(feature, tags)
        if kind is GeometryKind.LINE_STRING:
            return self._import_line(feature, tags)
        if kind is GeometryKind.MULTI_LINE_STRING:
            return self._import_multi_line(feature, tags)
        if kind is GeometryKind.POLYGON:
            return self._commit(self._builder.build_polygon(feature.parts(), tags))
        return self._commit(self._builder.build_multi_polygon(feature.polygons(), tags))

    # ------------------------------------------------------------------
    # Per-kind import
    # ------------------------------------------------------------------

    def _import_point(self, feature: SourceFeature, tags: dict[str, str]) -> BuildResult | None:
        coord = feature.point()
        if self._config.point_in_polygon_enabled:
            building = self._matcher.containing_polygon(coord)
            if building is not None:
                self._merge_into(building, tags)
                return None
        return self._commit(self._builder.build_point(coord, tags))

    def _import_line(self, feature: SourceFeature, tags: dict[str, str]) -> BuildResult | None:
        coords = feature.line()
        validate_line(coords)
        if self._config.merge_lines_enabled:
            matches = self._matcher.matching_lines(coords)
            for way_id in matches:
                self._merge_into(way_id, tags)
            if matches:
                return None
        return self._commit(self._builder.build_way(coords, tags))

    def _import_multi_line(
        self, feature: SourceFeature, tags: dict[str, str]
    ) -> BuildResult | None:
        parts = feature.parts()
        if not self._config.merge_lines_enabled:
            return self._commit(self._builder.build_multi_line(parts, tags))

        # Merging never adds geometry: parts without a matching road are dropped.
        for part in parts:
            validate_line(part)
        for index, part in enumerate(parts):
            matches = self._matcher.matching_lines(part)
            for way_id in matches:
                self._merge_into(way_id, tags)
            if not matches:
                logger.info(
                    "Dropped unmatched line part | feature=%s | part=%d",
                    feature.source_id,
                    index,
                )
        return None

    # ------------------------------------------------------------------
    # Graph operations
    # ------------------------------------------------------------------

    def _commit(self, result: BuildResult) -> BuildResult:
        for entity in result.created:
            self._graph.add_entity(entity)
        return result

    def _merge_into(self, entity_id: str, tags: dict[str, str]) -> None:
        current = self._graph.tags(entity_id)
        if entity_id not in self._original_tags:
            self._original_tags[entity_id] = dict(current)
        self._graph.change_tags(entity_id, merge_tags(current, tags))
        if entity_id not in self._merged_entity_ids:
            self._merged_entity_ids.append(entity_id)
        self._stats["merged"] += 1
        logger.info("Merged import tags | entity=%s", entity_id)

    def _record(self, exc: ConflationError, feature: SourceFeature) -> None:
        if exc.source_id is None:
            exc.source_id = feature.source_id
        logger.warning(
            "Skipped feature | source_id=%s | code=%s | %s",
            feature.source_id,
            exc.code,
            exc.message,
        )
        self._errors.append(exc.to_error_dict())

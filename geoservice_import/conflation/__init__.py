"""Conflation core.

- matcher: line overlap scoring and point-in-polygon tests
- tag_mapper: source property to target tag remapping
- builder: node/way/relation synthesis from coordinates
- session: per-batch orchestration, deduplication and merge-vs-create
"""

from geoservice_import.conflation.builder import (
    BuildResult,
    DegenerateGeometry,
    EntityGraphBuilder,
)
from geoservice_import.conflation.matcher import (
    GeometryConflationMatcher,
    is_match,
    match_score,
    point_in_polygon,
)
from geoservice_import.conflation.session import (
    DuplicateSourceFeature,
    ImportSession,
    SessionState,
)
from geoservice_import.conflation.tag_mapper import merge_tags, remap

__all__ = [
    "BuildResult",
    "DegenerateGeometry",
    "DuplicateSourceFeature",
    "EntityGraphBuilder",
    "GeometryConflationMatcher",
    "ImportSession",
    "SessionState",
    "is_match",
    "match_score",
    "merge_tags",
    "point_in_polygon",
    "remap",
]

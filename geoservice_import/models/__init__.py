"""Data models.

- SourceFeature / FeatureCollection: incoming features from a feature service
- GraphNode / GraphWay / GraphRelation: entities of the target graph
- Preset: target tag schema
- SessionResult / ImportReport: session snapshots and reports
"""

from geoservice_import.models.entities import (
    Entity,
    GraphNode,
    GraphRelation,
    GraphWay,
    RelationMember,
)
from geoservice_import.models.feature import (
    FeatureCollection,
    GeometryKind,
    SourceFeature,
    UnsupportedGeometryKind,
)
from geoservice_import.models.preset import Preset, PresetField
from geoservice_import.models.report import ImportReport, SessionResult, SessionStats

__all__ = [
    "Entity",
    "FeatureCollection",
    "GeometryKind",
    "GraphNode",
    "GraphRelation",
    "GraphWay",
    "ImportReport",
    "Preset",
    "PresetField",
    "RelationMember",
    "SessionResult",
    "SessionStats",
    "SourceFeature",
    "UnsupportedGeometryKind",
]

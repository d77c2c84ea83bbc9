"""Tests for source feature and collection models."""

from __future__ import annotations

import logging

import pytest

from geoservice_import.models.feature import (
    FeatureCollection,
    GeometryKind,
    SourceFeature,
    UnsupportedGeometryKind,
)
from geoservice_import.utils.helpers import FeatureParseError


def _geojson(geometry: object, properties: object) -> dict[str, object]:
    return {"type": "Feature", "geometry": geometry, "properties": properties}


class TestSourceFeatureFromGeojson:
    """Parsing a GeoJSON feature."""

    def test_identifier_from_id_field(self) -> None:
        feature = SourceFeature.from_geojson(
            _geojson({"type": "Point", "coordinates": [1, 2]}, {"FID": 9, "a": "b"}),
            id_field="FID",
        )
        assert feature.source_id == 9
        assert feature.properties == {"FID": 9, "a": "b"}
        assert feature.kind is GeometryKind.POINT

    def test_missing_identifier_is_none(self) -> None:
        feature = SourceFeature.from_geojson(
            _geojson({"type": "Point", "coordinates": [1, 2]}, {"a": "b"})
        )
        assert feature.source_id is None

    def test_null_geometry_is_unsupported(self) -> None:
        feature = SourceFeature.from_geojson(_geojson(None, {"OBJECTID": 1}))
        with pytest.raises(UnsupportedGeometryKind) as exc_info:
            _ = feature.kind
        assert exc_info.value.source_id == 1

    def test_non_object_properties_rejected(self) -> None:
        with pytest.raises(FeatureParseError, match="properties"):
            SourceFeature.from_geojson(_geojson(None, ["a"]))

    def test_non_object_feature_rejected(self) -> None:
        with pytest.raises(FeatureParseError):
            SourceFeature.from_geojson("Feature")  # type: ignore[arg-type]

    def test_round_trip_shape(self) -> None:
        data = _geojson({"type": "LineString", "coordinates": [[0, 0], [1, 1]]}, {"OBJECTID": 1})
        assert SourceFeature.from_geojson(data).to_geojson() == data


class TestCoordinateAccessors:
    """Lazily normalised coordinates."""

    def test_point_drops_altitude(self) -> None:
        feature = SourceFeature(source_id=1, geometry_type="Point", coordinates=[1, 2, 30])
        assert feature.point() == (1.0, 2.0)

    def test_line(self) -> None:
        feature = SourceFeature(
            source_id=1, geometry_type="LineString", coordinates=[[0, 0], [1, 1]]
        )
        assert feature.line() == [(0.0, 0.0), (1.0, 1.0)]

    def test_parts(self) -> None:
        feature = SourceFeature(
            source_id=1,
            geometry_type="MultiLineString",
            coordinates=[[[0, 0], [1, 1]], [[2, 2], [3, 3]]],
        )
        assert feature.parts() == [[(0.0, 0.0), (1.0, 1.0)], [(2.0, 2.0), (3.0, 3.0)]]

    def test_polygons(self) -> None:
        ring = [[0, 0], [0, 1], [1, 1], [0, 0]]
        feature = SourceFeature(source_id=1, geometry_type="MultiPolygon", coordinates=[[ring]])
        assert feature.polygons() == [[[(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (0.0, 0.0)]]]

    def test_malformed_coordinates_carry_source_id(self) -> None:
        feature = SourceFeature(source_id=5, geometry_type="LineString", coordinates=[[0]])
        with pytest.raises(FeatureParseError) as exc_info:
            feature.line()
        assert exc_info.value.source_id == 5

    def test_missing_coordinates(self) -> None:
        feature = SourceFeature(source_id=5, geometry_type="Polygon", coordinates=None)
        with pytest.raises(FeatureParseError):
            feature.parts()


class TestFeatureCollection:
    """Parsing a GeoJSON feature collection."""

    def test_preserves_order(self) -> None:
        collection = FeatureCollection.from_geojson(
            {
                "type": "FeatureCollection",
                "features": [
                    _geojson({"type": "Point", "coordinates": [0, 0]}, {"OBJECTID": 2}),
                    _geojson({"type": "Point", "coordinates": [0, 0]}, {"OBJECTID": 1}),
                ],
            }
        )
        assert [f.source_id for f in collection] == [2, 1]
        assert len(collection) == 2
        assert collection.truncated is False

    def test_exceeded_transfer_limit_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="geoservice_import.models.feature"):
            collection = FeatureCollection.from_geojson(
                {
                    "features": [
                        _geojson({"type": "Point", "coordinates": [0, 0]}, {"OBJECTID": 1})
                    ],
                    "exceededTransferLimit": True,
                }
            )
        assert collection.truncated is True
        assert "Service returned first 1 results (maximum)" in caplog.text

    def test_missing_features_is_empty(self) -> None:
        assert len(FeatureCollection.from_geojson({"type": "FeatureCollection"})) == 0

    def test_features_not_a_list(self) -> None:
        with pytest.raises(FeatureParseError):
            FeatureCollection.from_geojson({"features": {"a": 1}})

"""Tests for the ArcGIS feature-service adapter.

Uses ``httpx.MockTransport`` so no network access is needed.
"""

from __future__ import annotations

import json
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from geoservice_import.providers.arcgis import (
    ArcGISFeatureSource,
    build_query_url,
    envelope_json,
)
from geoservice_import.providers.base import FeatureQuery, FetchFailure

LAYER_URL = "https://gis.example.com/arcgis/rest/services/Parcels/FeatureServer/0/query"
BBOX = (-75.01, 39.99, -74.98, 40.01)


def _params(url: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(url).query)


def _source(handler: httpx.MockTransport) -> ArcGISFeatureSource:
    return ArcGISFeatureSource(client=httpx.Client(transport=handler))


# ---------------------------------------------------------------------------
# URL completion
# ---------------------------------------------------------------------------


class TestBuildQueryUrl:
    """Query parameters added to the layer URL."""

    def test_adds_output_and_format(self) -> None:
        params = _params(build_query_url(FeatureQuery(url=f"{LAYER_URL}?where=1%3D1")))
        assert params["outSR"] == ["4326"]
        assert params["f"] == ["json"]
        assert params["where"] == ["1=1"]
        assert "geometry" not in params

    def test_keeps_existing_parameters(self) -> None:
        params = _params(build_query_url(FeatureQuery(url=f"{LAYER_URL}?outSR=3857&f=pjson")))
        assert params["outSR"] == ["3857"]
        assert params["f"] == ["pjson"]

    def test_bbox_adds_envelope_query(self) -> None:
        params = _params(build_query_url(FeatureQuery(url=LAYER_URL, bbox=BBOX)))
        assert params["geometryType"] == ["esriGeometryEnvelope"]
        assert params["spatialRel"] == ["esriSpatialRelIntersects"]
        assert params["inSR"] == ["4326"]
        assert json.loads(params["geometry"][0])["xmin"] == -75.01

    def test_download_max_ignores_bbox(self) -> None:
        params = _params(build_query_url(FeatureQuery(url=LAYER_URL, bbox=BBOX, download_max=True)))
        assert "geometry" not in params

    def test_existing_spatial_rel_wins(self) -> None:
        url = f"{LAYER_URL}?spatialRel=esriSpatialRelWithin"
        params = _params(build_query_url(FeatureQuery(url=url, bbox=BBOX)))
        assert params["spatialRel"] == ["esriSpatialRelWithin"]
        assert "geometry" not in params


class TestEnvelopeJson:
    """Envelope serialisation."""

    def test_compact_and_rounded(self) -> None:
        assert envelope_json((-75.1234567, 40.0, -75.0, 40.1)) == (
            '{"xmin":-75.123457,"ymin":40.0,"xmax":-75.0,"ymax":40.1,'
            '"spatialReference":{"wkid":4326}}'
        )


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


class TestFetch:
    """End-to-end fetch against a mocked service."""

    def test_fetch_parses_response(self, esri_polygons_json: Path) -> None:
        payload = json.loads(esri_polygons_json.read_text())
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=payload)

        collection = _source(httpx.MockTransport(handler)).fetch(
            FeatureQuery(url=LAYER_URL, bbox=BBOX)
        )

        assert len(collection) == 3
        assert collection.truncated is True
        assert seen[0].url.params["f"] == "json"
        assert seen[0].url.params["outSR"] == "4326"

    def test_http_error_status(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="busy"))
        with pytest.raises(FetchFailure) as exc_info:
            _source(transport).fetch(FeatureQuery(url=LAYER_URL))
        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable is True

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchFailure, match="did not load"):
            _source(httpx.MockTransport(handler)).fetch(FeatureQuery(url=LAYER_URL))

    def test_service_error_payload(self) -> None:
        body = {"error": {"code": 400, "message": "Invalid query parameters"}}
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        with pytest.raises(FetchFailure, match="Invalid query parameters"):
            _source(transport).fetch(FeatureQuery(url=LAYER_URL))

    def test_non_json_response(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html/>"))
        with pytest.raises(FetchFailure, match="not JSON"):
            _source(transport).fetch(FeatureQuery(url=LAYER_URL))

    def test_non_object_response(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[1, 2]))
        with pytest.raises(FetchFailure, match="expected an object"):
            _source(transport).fetch(FeatureQuery(url=LAYER_URL))

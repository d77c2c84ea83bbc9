"""ArcGIS feature-service adapter.

Completes a layer query URL, fetches it with ``httpx`` and converts the
EsriJSON response into a ``FeatureCollection``.

URL completion:
- ``outSR=4326`` unless the URL already sets ``outSR``.
- ``f=json`` unless the URL already sets ``f``.
- With a bounding box (and unless ``download_max`` is set or the URL
  carries its own ``spatialRel``), an envelope intersection query.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from geoservice_import.core.constants import DEFAULT_ID_FIELD
from geoservice_import.providers.base import FeatureSource, FetchFailure
from geoservice_import.providers.esri_json import esri_to_feature_collection

if TYPE_CHECKING:
    from geoservice_import.models.feature import FeatureCollection
    from geoservice_import.providers.base import FeatureQuery

logger = logging.getLogger("geoservice_import.providers.arcgis")

WGS84_WKID = 4326
DEFAULT_TIMEOUT_SECONDS = 30.0
# Envelope coordinates are rounded to this many decimal places
BBOX_PRECISION = 6


class ArcGISFeatureSource(FeatureSource):
    """Fetches features from an ArcGIS REST ``query`` endpoint.

    Args:
        id_field: Attribute holding the record identifier.
        timeout: Request timeout in seconds.
        client: Shared ``httpx.Client``; a short-lived one is opened per
            fetch when omitted.
    """

    def __init__(
        self,
        *,
        id_field: str = DEFAULT_ID_FIELD,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        self.id_field = id_field
        self._timeout = timeout
        self._client = client

    def fetch(self, query: FeatureQuery) -> FeatureCollection:
        url = build_query_url(query)
        logger.info("Fetching features | url=%s", url)

        if self._client is not None:
            payload = self._get_json(self._client, url)
        else:
            with httpx.Client(timeout=self._timeout, follow_redirects=True) as client:
                payload = self._get_json(client, url)

        collection = esri_to_feature_collection(payload, id_field=self.id_field)
        logger.info(
            "Fetched features | count=%d | truncated=%s",
            len(collection),
            collection.truncated,
        )
        return collection

    def _get_json(self, client: httpx.Client, url: str) -> dict[str, object]:
        try:
            response = client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            msg = f"Feature service returned HTTP {status}"
            raise FetchFailure(msg, url=url, status_code=status) from exc
        except httpx.HTTPError as exc:
            msg = f"Feature service did not load: {exc}"
            raise FetchFailure(msg, url=url) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            msg = "Feature service response is not JSON"
            raise FetchFailure(msg, url=url, status_code=response.status_code) from exc

        if not isinstance(payload, dict):
            msg = f"Feature service response is a {type(payload).__name__}, expected an object"
            raise FetchFailure(msg, url=url, status_code=response.status_code)

        error = payload.get("error")
        if error:
            detail = error.get("message", error) if isinstance(error, dict) else error
            msg = f"Feature service reported an error: {detail}"
            raise FetchFailure(msg, url=url, status_code=response.status_code)

        return payload


def build_query_url(query: FeatureQuery) -> str:
    """Return *query*'s URL with output, format and spatial parameters completed."""
    parts = urlsplit(query.url)
    params = parse_qsl(parts.query, keep_blank_values=True)
    keys = {key for key, _ in params}

    if "outSR" not in keys:
        params.append(("outSR", str(WGS84_WKID)))
    if "f" not in keys:
        params.append(("f", "json"))

    if query.bbox is not None and not query.download_max and "spatialRel" not in keys:
        params.extend(
            [
                ("geometry", envelope_json(query.bbox)),
                ("geometryType", "esriGeometryEnvelope"),
                ("spatialRel", "esriSpatialRelIntersects"),
                ("inSR", str(WGS84_WKID)),
            ]
        )

    return urlunsplit(parts._replace(query=urlencode(params)))


def envelope_json(bbox: tuple[float, float, float, float]) -> str:
    """Serialise a ``(min_lon, min_lat, max_lon, max_lat)`` box as an Esri envelope."""
    min_lon, min_lat, max_lon, max_lat = bbox
    return json.dumps(
        {
            "xmin": round(min_lon, BBOX_PRECISION),
            "ymin": round(min_lat, BBOX_PRECISION),
            "xmax": round(max_lon, BBOX_PRECISION),
            "ymax": round(max_lat, BBOX_PRECISION),
            "spatialReference": {"wkid": WGS84_WKID},
        },
        separators=(",", ":"),
    )

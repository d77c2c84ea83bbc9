"""EsriJSON query responses as feature collections.

ArcGIS feature services answer ``f=json`` queries with EsriJSON:
``features[].attributes`` plus a ``geometry`` shaped by type.  Geometry
conversion (including grouping Esri's unordered rings into polygons by
winding order) is delegated to ``arcgis2geojson``; this module wraps the
result in a ``FeatureCollection`` and carries the transfer-limit flag.

A geometry the converter cannot handle is passed on with its raw
coordinates under the GeoJSON type its keys imply (``rings`` →
``Polygon``, ``paths`` → ``MultiLineString``...).  The feature then
fails on its own when the session reads its coordinates, and the rest of
the response still imports.
"""

from __future__ import annotations

import logging
from typing import Any

from arcgis2geojson import arcgis2geojson

from geoservice_import.core.constants import DEFAULT_ID_FIELD
from geoservice_import.models.feature import FeatureCollection
from geoservice_import.utils.helpers import FeatureParseError

logger = logging.getLogger("geoservice_import.providers.esri_json")

# Esri geometry key → GeoJSON type used when passing raw coordinates on
_RAW_GEOMETRY_TYPES = {
    "points": "MultiPoint",
    "paths": "MultiLineString",
    "rings": "Polygon",
}
# Keys that describe a geometry without being one
_GEOMETRY_METADATA_KEYS = frozenset({"spatialReference", "hasZ", "hasM"})


def esri_to_feature_collection(
    payload: dict[str, Any],
    *,
    id_field: str = DEFAULT_ID_FIELD,
) -> FeatureCollection:
    """Convert an EsriJSON query response to a ``FeatureCollection``.

    Raises:
        FeatureParseError: If the response or a feature is not an object.
    """
    if not isinstance(payload, dict):
        msg = f"EsriJSON response must be an object, got {type(payload).__name__}"
        raise FeatureParseError(msg)
    raw_features = payload.get("features") or []
    if not isinstance(raw_features, list):
        msg = f"features must be a list, got {type(raw_features).__name__}"
        raise FeatureParseError(msg)

    geojson = {
        "type": "FeatureCollection",
        "features": [esri_feature_to_geojson(f) for f in raw_features],
        "exceededTransferLimit": bool(payload.get("exceededTransferLimit", False)),
    }
    return FeatureCollection.from_geojson(geojson, id_field=id_field)


def esri_feature_to_geojson(feature: dict[str, Any]) -> dict[str, Any]:
    """Convert one EsriJSON feature to a GeoJSON ``Feature`` dict.

    Attributes are copied as-is, ``null`` values included; the identifier
    is read from them later.
    """
    if not isinstance(feature, dict):
        msg = f"Feature must be an object, got {type(feature).__name__}"
        raise FeatureParseError(msg)
    attributes = feature.get("attributes") or {}
    if not isinstance(attributes, dict):
        msg = f"attributes must be an object, got {type(attributes).__name__}"
        raise FeatureParseError(msg)
    return {
        "type": "Feature",
        "geometry": esri_geometry_to_geojson(feature.get("geometry")),
        "properties": dict(attributes),
    }


def esri_geometry_to_geojson(geometry: object) -> dict[str, Any] | None:
    """Convert an EsriJSON geometry to a GeoJSON geometry dict.

    Empty geometries become ``None``.  Geometries ``arcgis2geojson``
    rejects or does not recognise keep their raw coordinates.
    """
    if not geometry:
        return None
    if not isinstance(geometry, dict):
        return {"type": type(geometry).__name__, "coordinates": None}

    try:
        converted = arcgis2geojson(geometry)
    except (TypeError, ValueError, KeyError, IndexError) as exc:
        logger.warning("EsriJSON geometry not converted | keys=%s | %s", sorted(geometry), exc)
        converted = None

    if isinstance(converted, dict) and converted.get("type"):
        return converted
    return raw_geometry(geometry)


def raw_geometry(geometry: dict[str, Any]) -> dict[str, Any] | None:
    """GeoJSON-shaped view of an Esri geometry's unconverted coordinates."""
    if "x" in geometry or "y" in geometry:
        return {"type": "Point", "coordinates": [geometry.get("x"), geometry.get("y")]}
    for key, geometry_type in _RAW_GEOMETRY_TYPES.items():
        if key in geometry:
            return {"type": geometry_type, "coordinates": geometry[key]}

    keys = sorted(set(geometry) - _GEOMETRY_METADATA_KEYS)
    if not keys:
        return None
    # Unrecognised shape (e.g. curveRings); reported as an unsupported kind
    return {"type": "+".join(keys), "coordinates": None}

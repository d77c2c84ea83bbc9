"""Data model for source features received from a feature service.

A ``SourceFeature`` is one GeoJSON-shaped record: an identifier taken
from the service's identifier property, a geometry kind, the raw
coordinate structure, and the property set.  Coordinates are kept as
received and normalised on access, so a malformed geometry fails only
the feature that carries it.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from geoservice_import.core.constants import DEFAULT_ID_FIELD
from geoservice_import.core.exceptions import ValidationError
from geoservice_import.utils.helpers import (
    FeatureParseError,
    coord_to_tuple,
    coords_to_tuples,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger("geoservice_import.models.feature")

Coord = tuple[float, float]


class UnsupportedGeometryKind(ValidationError):
    """Raised when a feature's geometry is not one of the supported shapes."""

    default_stage = "dispatch"
    default_code = "UNSUPPORTED_GEOMETRY_KIND"


class GeometryKind(enum.Enum):
    """Geometry kinds the importer can turn into graph entities."""

    POINT = "Point"
    LINE_STRING = "LineString"
    MULTI_LINE_STRING = "MultiLineString"
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"


@dataclass(frozen=True, slots=True)
class SourceFeature:
    """A single feature from a source feature collection.

    Attributes:
        source_id: Value of the identifier property, or ``None`` if absent.
        geometry_type: GeoJSON geometry type as received (may be unsupported).
        coordinates: Raw GeoJSON coordinate structure for ``geometry_type``.
        properties: Source property set, identifier included.
    """

    source_id: object
    geometry_type: str
    coordinates: Any = None
    properties: dict[str, object] = field(default_factory=dict)

    @classmethod
    def from_geojson(
        cls, data: dict[str, Any], *, id_field: str = DEFAULT_ID_FIELD
    ) -> SourceFeature:
        """Build a feature from a GeoJSON ``Feature`` dict.

        Raises:
            FeatureParseError: If the geometry or properties are not
                shaped like a GeoJSON feature.
        """
        if not isinstance(data, dict):
            msg = f"Feature must be an object, got {type(data).__name__}"
            raise FeatureParseError(msg)

        properties = data.get("properties") or {}
        if not isinstance(properties, dict):
            msg = f"properties must be an object, got {type(properties).__name__}"
            raise FeatureParseError(msg)

        geometry = data.get("geometry") or {}
        if not isinstance(geometry, dict):
            msg = f"geometry must be an object, got {type(geometry).__name__}"
            raise FeatureParseError(msg, source_id=properties.get(id_field))

        return cls(
            source_id=properties.get(id_field),
            geometry_type=str(geometry.get("type", "")),
            coordinates=geometry.get("coordinates"),
            properties=dict(properties),
        )

    def to_geojson(self) -> dict[str, object]:
        """Serialise back to a GeoJSON ``Feature`` dict."""
        return {
            "type": "Feature",
            "geometry": {"type": self.geometry_type, "coordinates": self.coordinates},
            "properties": dict(self.properties),
        }

    @property
    def kind(self) -> GeometryKind:
        """The supported geometry kind of this feature.

        Raises:
            UnsupportedGeometryKind: If the geometry type is not supported.
        """
        try:
            return GeometryKind(self.geometry_type)
        except ValueError:
            msg = f"Did not recognize geometry type {self.geometry_type!r}"
            raise UnsupportedGeometryKind(msg, source_id=self.source_id) from None

    # ------------------------------------------------------------------
    # Normalised coordinate accessors
    # ------------------------------------------------------------------

    def point(self) -> Coord:
        """Coordinates of a ``Point`` as ``(lon, lat)``."""
        return self._parse(coord_to_tuple, self.coordinates)

    def line(self) -> list[Coord]:
        """Coordinates of a ``LineString``."""
        return self._parse(coords_to_tuples, self.coordinates)

    def parts(self) -> list[list[Coord]]:
        """Parts of a ``MultiLineString`` or rings of a ``Polygon``."""
        return self._parse(_nested, self.coordinates)

    def polygons(self) -> list[list[list[Coord]]]:
        """Polygons (each a ring list) of a ``MultiPolygon``."""

        def parse(raw: object) -> list[list[list[Coord]]]:
            return [_nested(poly) for poly in _as_list(raw)]

        return self._parse(parse, self.coordinates)

    def _parse(self, parser: Callable[[object], Any], raw: object) -> Any:
        try:
            return parser(raw)
        except FeatureParseError as exc:
            exc.source_id = self.source_id
            raise


@dataclass(frozen=True, slots=True)
class FeatureCollection:
    """A parsed feature collection, in input order.

    Attributes:
        features: Features in the order the service returned them.
        truncated: The service stopped at its maximum record count.
    """

    features: tuple[SourceFeature, ...] = ()
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[SourceFeature]:
        return iter(self.features)

    @classmethod
    def from_geojson(
        cls, data: dict[str, Any], *, id_field: str = DEFAULT_ID_FIELD
    ) -> FeatureCollection:
        """Build a collection from a GeoJSON ``FeatureCollection`` dict.

        Raises:
            FeatureParseError: If the payload or any feature is not an object.
        """
        if not isinstance(data, dict):
            msg = f"FeatureCollection must be an object, got {type(data).__name__}"
            raise FeatureParseError(msg)
        raw_features = data.get("features") or []
        if not isinstance(raw_features, list):
            msg = f"features must be a list, got {type(raw_features).__name__}"
            raise FeatureParseError(msg)
        features = tuple(SourceFeature.from_geojson(f, id_field=id_field) for f in raw_features)
        truncated = bool(data.get("exceededTransferLimit", False))
        if truncated:
            logger.warning(
                "Service returned first %d results (maximum)",
                len(features),
            )
        return cls(features=features, truncated=truncated)


def _as_list(raw: object) -> list[Any]:
    if not isinstance(raw, list | tuple):
        msg = f"Expected a list, got {type(raw).__name__}"
        raise FeatureParseError(msg)
    return list(raw)


def _nested(raw: object) -> list[list[Coord]]:
    return [coords_to_tuples(part) for part in _as_list(raw)]

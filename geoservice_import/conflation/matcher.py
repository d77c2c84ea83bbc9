"""Geometric conflation: line overlap scoring and point-in-polygon tests.

Line matching buffers both lines by a fixed radius and compares the
area of the buffers' intersection to the area of each buffer.  The score
is the larger of the two ratios, so a short import line lying on a long
road (or a long import line covering a short road fragment) still scores
high.  A match requires the score to be strictly greater than the
threshold.

Buffers are computed in a local UTM projection and projected areas are
in square metres; buffer arithmetic never happens in degrees.

Candidate ways come from the target graph.  Their comparison geometry is
derived from node locations on first use and cached until
``reset_cache()``, which the session calls at the start of every batch.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from geoservice_import.core.constants import (
    BUFFER_RADIUS_M,
    BUILDINGS,
    MATCH_THRESHOLD,
    ROADS,
)
from geoservice_import.graph.base import GraphError
from geoservice_import.models.entities import is_new_id

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pyproj import Transformer
    from shapely.geometry.base import BaseGeometry

    from geoservice_import.graph.base import TargetGraph

logger = logging.getLogger("geoservice_import.conflation.matcher")

Coord = tuple[float, float]

# Minimum distinct vertices for a polygon ring
MIN_RING_VERTICES = 3


# ---------------------------------------------------------------------------
# Pure geometry
# ---------------------------------------------------------------------------


def match_score(
    line_a: Sequence[Coord],
    line_b: Sequence[Coord],
    *,
    buffer_m: float = BUFFER_RADIUS_M,
) -> float:
    """Score how much two lines overlap, in ``[0, 1]``.

    Args:
        line_a: First line as ``(lon, lat)`` coordinates.
        line_b: Second line as ``(lon, lat)`` coordinates.
        buffer_m: Buffer radius in metres applied to both lines.

    Returns:
        ``max(area(I) / area(A), area(I) / area(B))`` where ``A`` and
        ``B`` are the buffered lines and ``I`` their intersection;
        ``0.0`` when the buffers do not intersect.
    """
    from shapely.geometry import LineString
    from shapely.ops import transform

    if len(line_a) < 2 or len(line_b) < 2:
        return 0.0

    to_utm = _transformer(_get_utm_crs(*_midpoint(line_a)))
    poly_a = transform(to_utm.transform, LineString(line_a)).buffer(buffer_m)
    poly_b = transform(to_utm.transform, LineString(line_b)).buffer(buffer_m)

    intersection = poly_a.intersection(poly_b)
    if intersection.is_empty:
        return 0.0

    overlap = polygon_area(intersection)
    area_a = polygon_area(poly_a)
    area_b = polygon_area(poly_b)
    if overlap == 0 or area_a == 0 or area_b == 0:
        return 0.0

    return min(1.0, max(overlap / area_a, overlap / area_b))


def polygon_area(geometry: BaseGeometry) -> float:
    """Planar area of a polygonal geometry, summed over every part.

    Line and point parts of a mixed intersection result contribute nothing.
    """
    if geometry.is_empty:
        return 0.0
    if geometry.geom_type == "Polygon":
        return float(geometry.area)
    if hasattr(geometry, "geoms"):
        return sum(polygon_area(part) for part in geometry.geoms)
    return 0.0


def is_match(score: float, threshold: float = MATCH_THRESHOLD) -> bool:
    """Whether *score* declares a match (strictly above *threshold*)."""
    return score > threshold


def point_in_polygon(point: Coord, ring: Sequence[Coord]) -> bool:
    """Whether *point* lies inside the polygon bounded by *ring*.

    Both are ``(lon, lat)``.  Points on the boundary are outside.  Rings
    with fewer than 3 distinct vertices contain nothing.
    """
    from shapely.geometry import Point, Polygon

    if len(set(ring)) < MIN_RING_VERTICES:
        return False
    return bool(Polygon(ring).contains(Point(point)))


# ---------------------------------------------------------------------------
# Candidate matching against the graph
# ---------------------------------------------------------------------------


class GeometryConflationMatcher:
    """Scores import geometry against candidate ways of a target graph.

    Args:
        graph: Graph supplying candidates and way node locations.
        buffer_m: Buffer radius in metres for line scoring.
        threshold: Score that must be exceeded for a line match.
    """

    def __init__(
        self,
        graph: TargetGraph,
        *,
        buffer_m: float = BUFFER_RADIUS_M,
        threshold: float = MATCH_THRESHOLD,
    ) -> None:
        self._graph = graph
        self.buffer_m = buffer_m
        self.threshold = threshold
        self._geometry_cache: dict[str, list[Coord] | None] = {}

    def reset_cache(self) -> None:
        """Forget cached comparison geometry; the graph may have changed."""
        self._geometry_cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._geometry_cache)

    def way_geometry(self, way_id: str) -> list[Coord] | None:
        """Return a way's ``(lon, lat)`` coordinates, or ``None`` if unresolvable."""
        if way_id in self._geometry_cache:
            logger.debug("Geometry cache hit | way=%s", way_id)
            return self._geometry_cache[way_id]
        try:
            coords: list[Coord] | None = [
                (lon, lat) for lat, lon in self._graph.way_node_locations(way_id)
            ]
        except GraphError as exc:
            logger.warning("Cannot build comparison geometry for %s: %s", way_id, exc)
            coords = None
        self._geometry_cache[way_id] = coords
        return coords

    def score(self, line: Sequence[Coord], way_id: str) -> float:
        """Score *line* against an existing way; ``0.0`` if it cannot be resolved."""
        coords = self.way_geometry(way_id)
        if not coords or len(coords) < 2:
            return 0.0
        return match_score(line, coords, buffer_m=self.buffer_m)

    def matching_lines(self, line: Sequence[Coord]) -> list[str]:
        """Return every visible road whose score against *line* exceeds the threshold.

        Newly created ways are never candidates.
        """
        matches = []
        for way_id in self._graph.visible_candidate_ways(ROADS):
            if is_new_id(way_id):
                continue
            value = self.score(line, way_id)
            logger.debug("Line score | way=%s | score=%.3f", way_id, value)
            if is_match(value, self.threshold):
                logger.info("Line match found | way=%s | score=%.3f", way_id, value)
                matches.append(way_id)
        return matches

    def containing_polygon(self, point: Coord) -> str | None:
        """Return the first visible building that contains *point*, if any."""
        for way_id in self._graph.visible_candidate_ways(BUILDINGS):
            if is_new_id(way_id):
                continue
            ring = self.way_geometry(way_id)
            if ring and point_in_polygon(point, ring):
                logger.debug("Point inside building | way=%s", way_id)
                return way_id
        return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _midpoint(coords: Sequence[Coord]) -> Coord:
    lons = [c[0] for c in coords]
    lats = [c[1] for c in coords]
    return ((min(lons) + max(lons)) / 2, (min(lats) + max(lats)) / 2)


@lru_cache(maxsize=32)
def _transformer(utm_crs: str) -> Transformer:
    from pyproj import Transformer

    return Transformer.from_crs("EPSG:4326", utm_crs, always_xy=True)


def _get_utm_crs(lon: float, lat: float) -> str:
    """Determine the UTM CRS for a given WGS 84 coordinate.

    Returns an EPSG code like ``"EPSG:32610"`` (UTM zone 10N) or
    ``"EPSG:32710"`` (UTM zone 10S).
    """
    zone_number = int((lon + 180) / 6) + 1
    zone_number = max(1, min(60, zone_number))

    if lat >= 0:
        return f"EPSG:{32600 + zone_number}"
    return f"EPSG:{32700 + zone_number}"

"""Tests for geometric conflation.

Covers:
- Buffered-overlap scoring of line pairs in metric space
- Strict threshold comparison
- Point-in-polygon containment (boundary counts as outside)
- Candidate matching against a graph: new ways skipped, cache lifecycle
"""

from __future__ import annotations

import pytest

from geoservice_import.conflation.builder import EntityGraphBuilder
from geoservice_import.conflation.matcher import (
    GeometryConflationMatcher,
    _get_utm_crs,
    is_match,
    match_score,
    point_in_polygon,
)
from geoservice_import.graph.memory import InMemoryGraph
from tests.conftest import CROSS_STREET, MAIN_STREET, TOWN_HALL

# ---------------------------------------------------------------------------
# match_score
# ---------------------------------------------------------------------------


class TestMatchScore:
    """Buffered overlap score of two lines."""

    def test_identical_lines_score_one(self) -> None:
        assert match_score(MAIN_STREET, MAIN_STREET) == pytest.approx(1.0, abs=1e-3)

    def test_parallel_lines_far_apart_score_zero(self) -> None:
        """Lines ~55 m apart do not touch with 5 m buffers."""
        offset = [(lon, lat + 0.0005) for lon, lat in MAIN_STREET]
        assert match_score(MAIN_STREET, offset) == 0.0

    def test_short_line_on_long_road_scores_high(self) -> None:
        """The larger ratio wins, so a fragment lying on a road matches it."""
        fragment = MAIN_STREET[:2]
        score = match_score(fragment, MAIN_STREET)
        assert score > 0.95
        assert match_score(MAIN_STREET, fragment) == pytest.approx(score, abs=1e-6)

    def test_crossing_lines_score_low(self) -> None:
        score = match_score(MAIN_STREET, CROSS_STREET)
        assert 0.0 < score < 0.1

    def test_score_is_bounded(self) -> None:
        nudged = [(lon, lat + 0.00001) for lon, lat in MAIN_STREET]
        score = match_score(MAIN_STREET, nudged)
        assert 0.0 <= score <= 1.0

    def test_small_offset_still_matches(self) -> None:
        """~1 m lateral offset keeps most of the buffers overlapping."""
        nudged = [(lon, lat + 0.00001) for lon, lat in MAIN_STREET]
        assert is_match(match_score(MAIN_STREET, nudged))

    def test_single_point_line_scores_zero(self) -> None:
        assert match_score(MAIN_STREET[:1], MAIN_STREET) == 0.0

    def test_larger_buffer_increases_overlap(self) -> None:
        offset = [(lon, lat + 0.0001) for lon, lat in MAIN_STREET]
        assert match_score(MAIN_STREET, offset, buffer_m=5.0) == 0.0
        assert match_score(MAIN_STREET, offset, buffer_m=20.0) > 0.0


class TestIsMatch:
    """Threshold comparison is strict."""

    def test_equal_to_threshold_is_not_a_match(self) -> None:
        assert is_match(0.75) is False

    def test_just_above_threshold_matches(self) -> None:
        assert is_match(0.751) is True

    def test_just_below_threshold_does_not_match(self) -> None:
        assert is_match(0.749) is False

    def test_custom_threshold(self) -> None:
        assert is_match(0.5, threshold=0.4) is True


class TestThresholdGeometry:
    """Collinear lines of equal length straddling the 0.75 threshold.

    Both lines are about 102 m long; sliding the import line along the
    road shortens their overlap.  With 5 m buffers the shared area is the
    overlap rectangle plus one full cap, so a 30% slide scores about 0.72
    and a 20% slide about 0.81.
    """

    ROAD = [(-75.0, 40.0), (-74.9988, 40.0)]

    def test_thirty_percent_slide_scores_just_below(self) -> None:
        line = [(-74.99964, 40.0), (-74.99844, 40.0)]
        score = match_score(self.ROAD, line)
        assert 0.70 < score < 0.75
        assert is_match(score) is False

    def test_twenty_percent_slide_scores_just_above(self) -> None:
        line = [(-74.99976, 40.0), (-74.99856, 40.0)]
        score = match_score(self.ROAD, line)
        assert 0.75 < score < 0.83
        assert is_match(score) is True


# ---------------------------------------------------------------------------
# point_in_polygon
# ---------------------------------------------------------------------------


class TestPointInPolygon:
    """Containment of a point in a ring."""

    def test_point_inside(self) -> None:
        assert point_in_polygon((-75.0, 40.0015), TOWN_HALL) is True

    def test_point_outside(self) -> None:
        assert point_in_polygon((-74.995, 40.0), TOWN_HALL) is False

    def test_point_on_boundary_is_outside(self) -> None:
        assert point_in_polygon((-75.0010, 40.0015), TOWN_HALL) is False

    def test_closed_ring_accepted(self) -> None:
        closed = [*TOWN_HALL, TOWN_HALL[0]]
        assert point_in_polygon((-75.0, 40.0015), closed) is True

    def test_degenerate_ring_contains_nothing(self) -> None:
        ring = [(-75.0, 40.0), (-74.99, 40.0), (-75.0, 40.0)]
        assert point_in_polygon((-74.995, 40.0), ring) is False


# ---------------------------------------------------------------------------
# UTM zone
# ---------------------------------------------------------------------------


class TestUtmZone:
    """UTM CRS selection for metric buffering."""

    def test_northern_hemisphere(self) -> None:
        assert _get_utm_crs(-75.0, 40.0) == "EPSG:32618"

    def test_southern_hemisphere(self) -> None:
        assert _get_utm_crs(151.2, -33.9) == "EPSG:32756"

    def test_antimeridian_clamped(self) -> None:
        assert _get_utm_crs(180.0, 10.0) == "EPSG:32660"


# ---------------------------------------------------------------------------
# GeometryConflationMatcher
# ---------------------------------------------------------------------------


class TestGeometryConflationMatcher:
    """Candidate matching against graph ways."""

    def test_matching_lines_finds_overlapping_road(self, graph: InMemoryGraph) -> None:
        matcher = GeometryConflationMatcher(graph)
        assert matcher.matching_lines(MAIN_STREET[:2]) == ["w100"]

    def test_matching_lines_finds_nothing_far_away(self, graph: InMemoryGraph) -> None:
        matcher = GeometryConflationMatcher(graph)
        far = [(lon, lat + 0.01) for lon, lat in MAIN_STREET]
        assert matcher.matching_lines(far) == []

    def test_new_ways_are_never_candidates(self, graph: InMemoryGraph) -> None:
        built = EntityGraphBuilder().build_way(MAIN_STREET, {"highway": "residential"})
        for entity in built.created:
            graph.add_entity(entity)
        matcher = GeometryConflationMatcher(graph)
        assert matcher.matching_lines(MAIN_STREET) == ["w100"]

    def test_containing_polygon(self, graph: InMemoryGraph) -> None:
        matcher = GeometryConflationMatcher(graph)
        assert matcher.containing_polygon((-75.0, 40.0015)) == "w200"

    def test_containing_polygon_none(self, graph: InMemoryGraph) -> None:
        matcher = GeometryConflationMatcher(graph)
        assert matcher.containing_polygon((-74.99, 40.005)) is None

    def test_geometry_cached_until_reset(self, graph: InMemoryGraph) -> None:
        matcher = GeometryConflationMatcher(graph)
        matcher.matching_lines(MAIN_STREET)
        assert matcher.cache_size == 2
        matcher.reset_cache()
        assert matcher.cache_size == 0

    def test_way_geometry_is_lon_lat(self, graph: InMemoryGraph) -> None:
        matcher = GeometryConflationMatcher(graph)
        assert matcher.way_geometry("w100") == MAIN_STREET

    def test_unresolvable_way_is_cached_as_none(self, graph: InMemoryGraph) -> None:
        matcher = GeometryConflationMatcher(graph)
        assert matcher.way_geometry("w999") is None
        assert matcher.score(MAIN_STREET, "w999") == 0.0
        assert matcher.cache_size == 1

    def test_threshold_is_configurable(self, graph: InMemoryGraph) -> None:
        matcher = GeometryConflationMatcher(graph, threshold=0.01)
        assert matcher.matching_lines(CROSS_STREET) == ["w100", "w101"]

"""Shared pytest fixtures for the GeoService import test suite."""

from pathlib import Path

import pytest

from geoservice_import.conflation.session import ImportSession
from geoservice_import.graph.memory import InMemoryGraph

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory."""
    return DATA_DIR


@pytest.fixture()
def esri_polygons_json(data_dir: Path) -> Path:
    """Path to an EsriJSON query response with parcels, one with a courtyard."""
    return data_dir / "esri_parcels.json"


# ---------------------------------------------------------------------------
# Existing graph geometry, (lon, lat)
# ---------------------------------------------------------------------------

# East-west residential street, ~850 m long at 40N
MAIN_STREET = [(-75.0000, 40.0000), (-74.9950, 40.0000), (-74.9900, 40.0000)]

# North-south street crossing Main Street at its middle vertex
CROSS_STREET = [(-74.9950, 39.9980), (-74.9950, 40.0020)]

# Building footprint ~170 m x 110 m north of Main Street
TOWN_HALL = [
    (-75.0010, 40.0010),
    (-75.0010, 40.0020),
    (-74.9990, 40.0020),
    (-74.9990, 40.0010),
]


def _locations(coords: list[tuple[float, float]]) -> list[tuple[float, float]]:
    return [(lat, lon) for lon, lat in coords]


@pytest.fixture()
def graph() -> InMemoryGraph:
    """Graph with two roads (``w100``, ``w101``) and one building (``w200``)."""
    g = InMemoryGraph()
    g.add_way_from_locations(
        "w100", _locations(MAIN_STREET), {"highway": "residential", "name": "Main Street"}
    )
    g.add_way_from_locations("w101", _locations(CROSS_STREET), {"highway": "service"})
    g.add_way_from_locations("w200", _locations(TOWN_HALL), {"building": "yes"}, closed=True)
    return g


@pytest.fixture()
def session(graph: InMemoryGraph) -> ImportSession:
    """Fresh session importing into ``graph``."""
    return ImportSession(graph)

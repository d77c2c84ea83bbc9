"""Shared import constants."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Source schema
# ---------------------------------------------------------------------------

DEFAULT_ID_FIELD: str = "OBJECTID"
"""Source property holding the feature-service record identifier."""

LITERAL_PREFIX: str = "add_"
"""Field-map keys with this prefix add a constant tag (``add_amenity: cafe``)."""

# ---------------------------------------------------------------------------
# Conflation
# ---------------------------------------------------------------------------

BUFFER_RADIUS_M: float = 5.0
"""Radius in metres used to buffer lines before overlap scoring."""

MATCH_THRESHOLD: float = 0.75
"""Overlap score that must be strictly exceeded for a line match."""

ROADS: str = "roads"
"""Candidate kind for line conflation."""

BUILDINGS: str = "buildings"
"""Candidate kind for point-in-polygon conflation."""

# ---------------------------------------------------------------------------
# Target tag schema
# ---------------------------------------------------------------------------

AREA_TAG: str = "area"
TYPE_TAG: str = "type"
MULTIPOLYGON_TYPE: str = "MultiPolygon"
ROUTE_TYPE: str = "route"

OUTER_ROLE: str = "outer"
INNER_ROLE: str = "inner"

"""Shared normalisation helpers for source properties and coordinates."""

from __future__ import annotations

from geoservice_import.core.exceptions import ContractError


class FeatureParseError(ContractError):
    """Raised when source data does not match the expected feature schema."""

    default_stage = "parse"
    default_code = "FEATURE_PARSE_FAILED"


def tag_value(value: object) -> str | None:
    """Convert a source property value to a tag string.

    ``None`` and blank strings have no tag representation and yield
    ``None``.  Integral floats drop their fractional part so that a
    numeric ``12.0`` from a feature service becomes ``"12"``.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def properties_to_tags(properties: dict[str, object], *, id_field: str) -> dict[str, str]:
    """Convert source properties to tags, dropping the identifier field and empty values."""
    tags: dict[str, str] = {}
    for key, value in properties.items():
        if key == id_field:
            continue
        text = tag_value(value)
        if text is not None:
            tags[key] = text
    return tags


def coords_to_tuples(raw_coords: object) -> list[tuple[float, float]]:
    """Convert GeoJSON-style coordinate arrays to (lon, lat) tuples.

    Drops altitude (third element) if present.

    Raises:
        FeatureParseError: If the input is not a sequence or any
            coordinate element is malformed.
    """
    if not isinstance(raw_coords, list | tuple):
        msg = f"Expected a coordinate list, got {type(raw_coords).__name__}"
        raise FeatureParseError(msg)
    coords: list[tuple[float, float]] = []
    for idx, c in enumerate(raw_coords):
        coords.append(coord_to_tuple(c, idx))
    return coords


def coord_to_tuple(raw: object, idx: int = 0) -> tuple[float, float]:
    """Convert a single ``[lon, lat(, alt)]`` position to a (lon, lat) tuple."""
    if not isinstance(raw, list | tuple):
        msg = f"Malformed coordinate at index {idx}: expected list/tuple, got {type(raw).__name__}"
        raise FeatureParseError(msg)
    if len(raw) < 2:
        msg = f"Malformed coordinate at index {idx}: expected at least 2 elements, got {len(raw)}"
        raise FeatureParseError(msg)
    try:
        return (float(raw[0]), float(raw[1]))
    except (TypeError, ValueError) as exc:
        msg = (
            f"Malformed coordinate at index {idx}: cannot convert to float "
            f"(lon={raw[0]!r}, lat={raw[1]!r})"
        )
        raise FeatureParseError(msg) from exc

"""Remapping of source feature properties onto target tags.

A field map pairs configuration keys with targets:

- ``{"STREET_NAME": "name"}`` copies the ``STREET_NAME`` property to the
  ``name`` tag when the property has a value.
- ``{"add_amenity": "cafe"}`` sets ``amenity=cafe`` on every feature.

The mode depends on how many mappings are configured compared to the
number of keys the active preset suggests: more mappings than suggested
keys *replaces* the property set with the mapped tags; otherwise the
mapped tags are *merged* over the original properties.

The identifier property is the deduplication key and never becomes a tag.
"""

from __future__ import annotations

from geoservice_import.core.constants import DEFAULT_ID_FIELD, LITERAL_PREFIX
from geoservice_import.utils.helpers import properties_to_tags, tag_value


def remap(
    properties: dict[str, object],
    field_map: dict[str, str],
    preset_field_count: int = 0,
    *,
    id_field: str = DEFAULT_ID_FIELD,
) -> dict[str, str]:
    """Map a feature's properties to a tag set.

    Args:
        properties: Source properties, identifier included.
        field_map: Configuration key to target (see module docstring).
        preset_field_count: Number of keys the active preset suggests.
        id_field: Identifier property, stripped from the result.

    Returns:
        The tag set.  In replace mode, if no mapping produced a value,
        the original properties are kept.
    """
    tags = properties_to_tags(properties, id_field=id_field)

    mapped = mapped_tags(properties, field_map)
    if not mapped:
        return tags

    if is_replacing(field_map, preset_field_count):
        return mapped

    tags.update(mapped)
    return tags


def mapped_tags(properties: dict[str, object], field_map: dict[str, str]) -> dict[str, str]:
    """Tags produced by *field_map* alone, in configuration order."""
    mapped: dict[str, str] = {}
    for key, target in field_map.items():
        if key.startswith(LITERAL_PREFIX):
            tag = key[len(LITERAL_PREFIX) :]
            value = tag_value(target)
        else:
            tag = target
            value = tag_value(properties.get(key))
        if tag and value is not None:
            mapped[tag] = value
    return mapped


def is_replacing(field_map: dict[str, str], preset_field_count: int) -> bool:
    """Whether *field_map* replaces rather than merges into the properties."""
    return len(field_map) > preset_field_count


def merge_tags(current: dict[str, str], incoming: dict[str, str]) -> dict[str, str]:
    """Overlay *incoming* tags onto a copy of an entity's *current* tags."""
    merged = dict(current)
    merged.update(incoming)
    return merged

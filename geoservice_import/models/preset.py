"""Target-schema preset model.

A preset is the tag schema the user picked for the import (``address``,
``highway/cycleway``...).  The importer uses it for two things: the
number of tag keys it suggests, which selects the field-mapping mode,
and the merge toggles it switches on by default.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ADDRESS_PRESET_ID = "address"
CYCLE_PRESET_MARKER = "cycle"


@dataclass(frozen=True, slots=True)
class PresetField:
    """One field of a preset and the tag keys it suggests."""

    suggested_keys: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Preset:
    """A target tag schema.

    Attributes:
        id: Preset identifier, e.g. ``"address"`` or ``"highway/cycleway"``.
        fields: Fields of the preset, in display order.
        tags: Tags that identify the preset.
    """

    id: str
    fields: tuple[PresetField, ...] = ()
    tags: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Preset:
        """Build a preset from ``{"id", "fields": [{"keys": [...]}], "tags"}``.

        Fields may spell their key list ``keys`` or ``suggested_keys``;
        a field with a single ``key`` counts as suggesting that key.
        """
        fields: list[PresetField] = []
        for raw in data.get("fields", []) or []:
            keys = raw.get("suggested_keys") or raw.get("keys")
            if keys is None and raw.get("key"):
                keys = [raw["key"]]
            fields.append(PresetField(suggested_keys=tuple(str(k) for k in keys or ())))
        return cls(
            id=str(data.get("id", "")),
            fields=tuple(fields),
            tags={str(k): str(v) for k, v in (data.get("tags") or {}).items()},
        )

    @property
    def suggested_keys(self) -> frozenset[str]:
        """Distinct tag keys suggested across every field."""
        return frozenset(key for f in self.fields for key in f.suggested_keys)

    @property
    def field_count(self) -> int:
        """Number of distinct suggested keys; the field-mapping mode threshold."""
        return len(self.suggested_keys)

    @property
    def suggests_point_in_polygon(self) -> bool:
        return self.id == ADDRESS_PRESET_ID

    @property
    def suggests_merge_lines(self) -> bool:
        return CYCLE_PRESET_MARKER in self.id

"""Import configuration loaded from environment variables.

A configuration value is an immutable snapshot: the session receives one
per batch and never reads toggles from anywhere else.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out of
    its valid range, so bad configuration is caught before a batch starts.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from geoservice_import.core.constants import (
    BUFFER_RADIUS_M,
    DEFAULT_ID_FIELD,
    MATCH_THRESHOLD,
)
from geoservice_import.core.exceptions import ValidationError

if TYPE_CHECKING:
    from geoservice_import.models.preset import Preset

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


class ConfigValidationError(ValidationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class ImportConfig:
    """Immutable per-batch import configuration.

    Attributes:
        point_in_polygon_enabled: Merge points into the building that contains them.
        merge_lines_enabled: Merge lines into overlapping existing roads.
        field_map: Source property name (or ``add_<tag>`` literal key) to target tag.
        id_field: Source property holding the record identifier.
        buffer_m: Line buffer radius in metres for overlap scoring.
        match_threshold: Score that must be strictly exceeded for a line match.
    """

    point_in_polygon_enabled: bool = False
    merge_lines_enabled: bool = False
    field_map: dict[str, str] = field(default_factory=dict)
    id_field: str = DEFAULT_ID_FIELD
    buffer_m: float = BUFFER_RADIUS_M
    match_threshold: float = MATCH_THRESHOLD

    def __post_init__(self) -> None:
        _validate(self)

    @classmethod
    def from_env(cls) -> ImportConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or malformed.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``GEOSERVICE_BUFFER_M=abc``).
        """
        return cls(
            point_in_polygon_enabled=_env_flag("GEOSERVICE_POINT_IN_POLYGON"),
            merge_lines_enabled=_env_flag("GEOSERVICE_MERGE_LINES"),
            field_map=_env_field_map("GEOSERVICE_FIELD_MAP"),
            id_field=os.getenv("GEOSERVICE_ID_FIELD", DEFAULT_ID_FIELD),
            buffer_m=float(os.getenv("GEOSERVICE_BUFFER_M", str(BUFFER_RADIUS_M))),
            match_threshold=float(
                os.getenv("GEOSERVICE_MATCH_THRESHOLD", str(MATCH_THRESHOLD))
            ),
        )

    def with_preset_defaults(self, preset: Preset | None) -> ImportConfig:
        """Return a copy with the preset's default merge toggles switched on."""
        if preset is None:
            return self
        return replace(
            self,
            point_in_polygon_enabled=(
                self.point_in_polygon_enabled or preset.suggests_point_in_polygon
            ),
            merge_lines_enabled=self.merge_lines_enabled or preset.suggests_merge_lines,
        )


def _env_flag(key: str) -> bool:
    raw = os.getenv(key, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigValidationError(key, raw, "must be a boolean (true/false, yes/no, 1/0)")


def _env_field_map(key: str) -> dict[str, str]:
    raw = os.getenv(key, "")
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigValidationError(key, raw, f"must be a JSON object ({exc.msg})") from exc
    if not isinstance(parsed, dict):
        raise ConfigValidationError(key, raw, "must be a JSON object")
    return parsed


def _validate(config: ImportConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.buffer_m <= 0:
        raise ConfigValidationError(
            "GEOSERVICE_BUFFER_M",
            config.buffer_m,
            "must be > 0 (metres)",
        )

    if not 0.0 <= config.match_threshold < 1.0:
        raise ConfigValidationError(
            "GEOSERVICE_MATCH_THRESHOLD",
            config.match_threshold,
            "must be in [0, 1)",
        )

    if not config.id_field:
        raise ConfigValidationError(
            "GEOSERVICE_ID_FIELD",
            config.id_field,
            "must not be empty",
        )

    for source_key, target in config.field_map.items():
        if not isinstance(source_key, str) or not isinstance(target, str):
            raise ConfigValidationError(
                "GEOSERVICE_FIELD_MAP",
                {source_key: target},
                "keys and values must be strings",
            )

"""Fetch-and-import pipeline.

Coordinates one import round: fingerprint the request, fetch the
feature collection, submit it to the session.

- A request whose fingerprint (query plus field map) equals the last
  completed one is skipped: same bounds, same parameters, same data.
- A failed fetch aborts only this round.  The session and the remembered
  fingerprint are left untouched, so the same request can be retried.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from geoservice_import.providers.base import FetchFailure
from geoservice_import.utils.helpers import FeatureParseError

if TYPE_CHECKING:
    from geoservice_import.conflation.session import ImportSession
    from geoservice_import.core.config import ImportConfig
    from geoservice_import.models.preset import Preset
    from geoservice_import.models.report import SessionResult
    from geoservice_import.providers.base import FeatureQuery, FeatureSource

logger = logging.getLogger("geoservice_import.orchestrators.import_pipeline")


class GeoServiceImporter:
    """Runs fetch → submit rounds for one session.

    Args:
        source: Feature service adapter.
        session: Session receiving the features.
        apply_preset_defaults: Switch on the merge toggles the preset suggests.
    """

    def __init__(
        self,
        source: FeatureSource,
        session: ImportSession,
        *,
        apply_preset_defaults: bool = True,
    ) -> None:
        self._source = source
        self._session = session
        self._apply_preset_defaults = apply_preset_defaults
        self.last_fingerprint: str | None = None

    def run(
        self,
        query: FeatureQuery,
        config: ImportConfig,
        preset: Preset | None = None,
    ) -> SessionResult | None:
        """Fetch *query* and import it.

        Returns:
            The session result after the batch, or ``None`` if the request
            was unchanged, the fetch failed, or the session was busy.
        """
        fingerprint = request_fingerprint(query, config.field_map)
        if fingerprint == self.last_fingerprint:
            logger.info("Skipping unchanged request | url=%s", query.url)
            return None

        try:
            collection = self._source.fetch(query)
        except (FetchFailure, FeatureParseError) as exc:
            logger.warning(
                "Fetch failed | url=%s | code=%s | %s",
                query.url,
                exc.code,
                exc.message,
            )
            return None

        if self._apply_preset_defaults:
            config = config.with_preset_defaults(preset)

        created = self._session.submit(collection, config, preset)
        if created is None:
            return None

        self.last_fingerprint = fingerprint
        return self._session.session_result()


def request_fingerprint(query: FeatureQuery, field_map: dict[str, str]) -> str:
    """Stable fingerprint of a request: the query and the field map."""
    return json.dumps(
        {
            "url": query.url,
            "bbox": list(query.bbox) if query.bbox is not None else None,
            "download_max": query.download_max,
            "field_map": field_map,
        },
        sort_keys=True,
    )

"""FeatureSource abstract base class.

Defines the contract for fetching a feature collection from a remote
feature service.  The import pipeline interacts exclusively with this
interface; the session only ever sees the resolved, parsed collection.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import TYPE_CHECKING

from geoservice_import.core.exceptions import TransientError

if TYPE_CHECKING:
    from geoservice_import.models.feature import FeatureCollection


@dataclass(frozen=True, slots=True)
class FeatureQuery:
    """What to fetch from a feature service.

    Attributes:
        url: Layer query URL, possibly carrying its own query parameters.
        bbox: ``(min_lon, min_lat, max_lon, max_lat)`` to restrict the query to.
        download_max: Ignore ``bbox`` and fetch everything the service returns.
    """

    url: str
    bbox: tuple[float, float, float, float] | None = None
    download_max: bool = False


class FeatureSource(abc.ABC):
    """Abstract base class for feature-service adapters."""

    @abc.abstractmethod
    def fetch(self, query: FeatureQuery) -> FeatureCollection:
        """Fetch and parse the features matching *query*.

        Raises:
            FetchFailure: On transport errors or service-reported errors.
            FeatureParseError: If the response is not a feature collection.
        """


class FetchFailure(TransientError):
    """Raised when the feature service cannot be reached or reports an error.

    Attributes:
        url: The URL that was requested.
        status_code: HTTP status code, if a response was received.
    """

    default_stage = "fetch"
    default_code = "FETCH_FAILED"

    def __init__(self, message: str, *, url: str = "", status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)

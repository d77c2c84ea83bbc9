"""Errors raised while importing source features into a graph.

The session processes a batch feature by feature; a feature that cannot
be imported raises one of these, is recorded, and the batch moves on.
Every error names the feature it concerns (``source_id``), where in the
import it happened (``stage``) and a stable ``code``.

Categories, one base class each:

- ``ValidationError`` (``rejected``): the feature or setting was read but
  cannot be imported as given: already imported, unsupported geometry
  kind, too few vertices, out-of-range configuration.
- ``ContractError`` (``malformed``): the service payload does not have
  the shape of a feature or geometry.
- ``TransientError`` (``unavailable``): the feature service could not be
  reached or answered with an error; the same request may succeed later.
- ``PermanentError`` (``unresolved``): the target graph cannot resolve an
  entity the import referred to.

``to_error_dict()`` is the payload stored in ``SessionResult.errors``.
"""

from __future__ import annotations


class ConflationError(Exception):
    """Base class for import errors.

    Attributes:
        message: Human-readable description.
        stage: Import step that failed (``"parse"``, ``"build"``, ``"fetch"``...).
        code: Stable machine-readable code (``"DEGENERATE_GEOMETRY"``...).
        retryable: Whether repeating the request can succeed.
        source_id: Identifier of the source feature, if known.
    """

    default_stage: str = ""
    default_code: str = ""
    default_category: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        source_id: object = None,
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.source_id = source_id
        super().__init__(message)

    @property
    def category(self) -> str:
        if self.default_category:
            return self.default_category
        return "unavailable" if self.retryable else "unresolved"

    def to_error_dict(self) -> dict[str, object]:
        """Per-feature error record with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "source_id": self.source_id,
        }


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class ValidationError(ConflationError):
    """A feature or setting that cannot be imported as given."""

    default_category = "rejected"

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(ConflationError):
    """A service payload that is not shaped like features."""

    default_category = "malformed"

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(ConflationError):
    """The feature service is unreachable or failing for now."""

    default_category = "unavailable"

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(ConflationError):
    """The target graph cannot resolve what the import refers to."""

    default_category = "unresolved"

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]

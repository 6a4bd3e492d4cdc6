"""Application exceptions."""


class SearchServiceError(Exception):
    """Base exception for the POS Search Service."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidQueryError(SearchServiceError):
    """Request rejected: bad enum, negative pagination or unusable input."""


class NotFoundError(SearchServiceError):
    """Referenced event or resource does not exist (or has expired)."""


class StoreUnavailableError(SearchServiceError):
    """Catalog, suggestion or event store could not be reached."""


class BackgroundRecordingFailure(SearchServiceError):
    """A suggestion/analytics write failed after the search was answered.

    Only ever logged by the background recorder, never raised to callers.
    """

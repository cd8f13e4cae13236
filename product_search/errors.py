"""Error taxonomy shared by the gateway and the HTTP layer."""
from __future__ import annotations


class SearchServiceError(Exception):
    """Base error carrying the HTTP status it is rendered with."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ValidationError(SearchServiceError):
    """Missing or malformed request parameters or body."""

    status_code = 400


class UpstreamError(SearchServiceError):
    """The Elasticsearch call failed or answered with an error status."""


class MalformedResult(SearchServiceError):
    """The Elasticsearch response did not have the expected shape."""


class ConfigurationError(SearchServiceError):
    """Startup cannot proceed (credentials, CA certificate, seed data)."""

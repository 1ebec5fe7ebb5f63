"""
Exception classes surfaced by the proxy.

Every failure the service reports is one of these. Each carries the HTTP
status the API layer answers with and optional structured details that
let a client decide whether a retry makes sense.
"""
from typing import Any, Optional


class FileSearchError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict:
        error = {"message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "error": error}


class ValidationError(FileSearchError):
    """Malformed input, rejected before any network call."""

    status_code = 400


class NotFoundError(FileSearchError):
    """Referenced store, document or operation does not exist."""

    status_code = 404


class UpstreamError(FileSearchError):
    """The remote API rejected the call or failed."""

    status_code = 500


class QuotaExceededError(UpstreamError):
    """Rate limit or quota reached; the user can wait or switch model."""

    status_code = 429


class OperationTimeoutError(FileSearchError):
    """A long-running operation did not finish within the polling ceiling."""

    status_code = 408


class ConfigurationError(FileSearchError):
    """Required configuration (the API key) is missing."""

    status_code = 500

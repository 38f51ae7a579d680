"""
Error Taxonomy

Typed errors raised by the core services and translated to the
``{"error": {"code", "message"}}`` response shape by the API layer.
"""
from typing import Optional


class PublicMapError(Exception):
    """Base class for errors that map onto an API error code."""

    code = "INTERNAL"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(PublicMapError):
    """Missing or malformed required input. Never retried."""

    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request"


class NotFound(PublicMapError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class UpstreamFailure(PublicMapError):
    """External provider unreachable, timed out or erroring. Safe to retry."""

    code = "UPSTREAM"
    status_code = 502
    default_message = "Geocoding provider failed"


class ConfigError(PublicMapError):
    """Required credential or configuration is absent (operator-actionable)."""

    code = "CONFIG"
    status_code = 500
    default_message = "Service is not configured"


class TransactionFailure(PublicMapError):
    """
    A multi-statement write failed and was rolled back.

    Callers must assume no partial effect occurred.
    """

    code = "INTERNAL"
    status_code = 500
    default_message = "Internal server error"

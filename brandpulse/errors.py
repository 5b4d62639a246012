"""
Error taxonomy shared by services and the HTTP layer.

Every error carries the HTTP status it maps to and a message that is safe to
show the caller. Extra context (usage, limits) travels in ``context``.
"""

from typing import Any, Dict, Optional


class BrandPulseError(Exception):
    """Base exception for BrandPulse operations"""
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None, **context: Any):
        super().__init__(message)
        self.message = message
        self.details = details
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        body.update(self.context)
        return body


class Unauthenticated(BrandPulseError):
    status_code = 401


class ValidationError(BrandPulseError):
    status_code = 400


class AccessDenied(BrandPulseError):
    status_code = 403


class NotFound(BrandPulseError):
    status_code = 404


class QuotaExceeded(BrandPulseError):
    """Monthly generation quota would be exceeded."""
    status_code = 429


class SchedulingLimitReached(QuotaExceeded):
    """Tier cap on pending scheduled posts reached."""


class AccountInactive(ValidationError):
    pass


class TokenExpired(BrandPulseError):
    status_code = 401


class UpstreamError(BrandPulseError):
    """Failure in an external collaborator (LLM, platform API)."""
    status_code = 502


class UpstreamFetchError(UpstreamError):
    pass


class ClassifierUnavailable(UpstreamError):
    status_code = 503


class InvalidClassifierOutput(UpstreamError):
    pass


class GenerationParseError(UpstreamError):
    pass

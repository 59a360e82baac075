"""
Error taxonomy shared by the pipelines, services and API layer.

Every error carries the HTTP status it maps to; the handlers registered in
``main.py`` turn them into the ``{"success": false, "error": ...}`` envelope.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for all classified application errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Malformed request input."""
    status_code = 400


class ExportNotReadyError(ValidationError):
    """Export requested before the PRD was finalized."""
    pass


class NotFoundError(AppError):
    """Missing session, PRD or diagram."""
    status_code = 404


class AuthenticationError(AppError):
    """Invalid admin credentials or token."""
    status_code = 401


class UpstreamError(AppError):
    """LLM provider call failed or returned a non-success status."""

    def __init__(self, message: str, provider_status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message, details={"provider_status": provider_status, "body": body})
        self.provider_status = provider_status
        self.body = body


class MalformedResponse(AppError):
    """Model output could not be decoded as a JSON object."""
    pass


class IncompleteDocument(AppError):
    """Model output decoded but is missing required PRD fields."""
    pass


class RenderError(AppError):
    """PDF/DOCX renderer failure."""
    pass


class ConfigurationError(AppError):
    """Required configuration (e.g. the provider API key) is missing."""
    pass

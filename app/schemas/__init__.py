"""Schemas package."""

from .base import BaseResponse
from .prd import PRDGenerateRequest, PRDEditRequest, SessionRequest
from .diagram import DiagramGenerateRequest, DiagramEditRequest
from .admin import AdminLoginRequest, PageViewRequest

__all__ = [
    "BaseResponse",
    # PRD schemas
    "PRDGenerateRequest",
    "PRDEditRequest",
    "SessionRequest",
    # Diagram schemas
    "DiagramGenerateRequest",
    "DiagramEditRequest",
    # Admin schemas
    "AdminLoginRequest",
    "PageViewRequest",
]

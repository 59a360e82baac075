"""
Pydantic schemas for the admin and tracking endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field

from app.schemas.prd import CamelRequest


class AdminLoginRequest(BaseModel):
    """Request schema for admin login."""
    password: str = Field(..., min_length=1)


class PageViewRequest(CamelRequest):
    """Request schema for tracking a page view."""
    anonymous_id: str = Field(..., min_length=1, max_length=100)
    session_id: Optional[str] = None
    path: Optional[str] = Field(None, max_length=500)

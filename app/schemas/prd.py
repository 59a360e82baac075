"""
Pydantic schemas for PRD and session API requests.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelRequest(BaseModel):
    """Request bodies use camelCase keys on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class PRDGenerateRequest(CamelRequest):
    """Request schema for generating a PRD from an idea."""
    idea: str = Field(..., min_length=10, max_length=5000)

    @field_validator("idea")
    def strip_idea(cls, v):
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Idea must be at least 10 characters long")
        return v


class PRDEditRequest(CamelRequest):
    """Request schema for a natural-language PRD edit."""
    session_id: str = Field(..., min_length=1)
    instruction: str = Field(..., min_length=1, max_length=5000)
    target_field: Optional[str] = Field(None, max_length=100)


class SessionRequest(CamelRequest):
    """Request schema for operations addressed to a session."""
    session_id: str = Field(..., min_length=1)

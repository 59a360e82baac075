"""
Session and Message data models for the AI PRD Studio.
"""

from datetime import datetime
from typing import Any, Dict
from pydantic import BaseModel, Field, field_validator


class SessionStep:
    """UI step a session has reached."""
    DRAFT = 1
    DIAGRAMS = 2
    FINAL = 3


class Session(BaseModel):
    """One end-to-end interaction producing a PRD."""
    id: str = Field(alias="_id")
    title: str = Field(..., max_length=255)
    current_step: int = Field(default=SessionStep.DRAFT, ge=1, le=3)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "currentStep": self.current_step,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class Message(BaseModel):
    """Append-only conversation entry."""
    id: str = Field(alias="_id")
    session_id: str = Field(...)
    role: str = Field(...)  # user, assistant
    content: str = Field(...)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True

    @field_validator("role")
    def validate_role(cls, v):
        """Validate message role."""
        allowed_roles = ["user", "assistant"]
        if v not in allowed_roles:
            raise ValueError(f"Message role must be one of: {allowed_roles}")
        return v

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "role": self.role,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
        }

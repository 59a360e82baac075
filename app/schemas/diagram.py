"""
Pydantic schemas for diagram API requests.
"""

from typing import Literal, Optional
from pydantic import Field

from app.schemas.prd import CamelRequest

DiagramType = Literal["architecture", "journey", "features", "dataflow"]


class DiagramGenerateRequest(CamelRequest):
    """Generate all diagrams, or only ``diagramType`` when given."""
    session_id: str = Field(..., min_length=1)
    diagram_type: Optional[DiagramType] = None


class DiagramEditRequest(CamelRequest):
    """Request schema for editing one diagram."""
    session_id: str = Field(..., min_length=1)
    diagram_type: DiagramType
    instruction: str = Field(..., min_length=1, max_length=5000)

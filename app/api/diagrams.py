"""
Diagram API endpoints.
"""

import logging
from fastapi import APIRouter, Depends

from app.dependencies import get_diagram_service
from app.schemas.base import BaseResponse
from app.schemas.diagram import DiagramEditRequest, DiagramGenerateRequest
from app.services.diagram_service import DiagramService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/diagrams", tags=["diagrams"])


@router.post("/generate", response_model=dict, summary="Generate Mermaid diagrams for a PRD")
async def generate_diagrams(
    request: DiagramGenerateRequest,
    diagram_service: DiagramService = Depends(get_diagram_service)
):
    """Generate all four diagrams, or only the requested ``diagramType``."""
    data = await diagram_service.generate(request.session_id, request.diagram_type)
    return BaseResponse.success(data=data, message=data["message"])


@router.post("/edit", response_model=dict, summary="Edit one diagram with an instruction")
async def edit_diagram(
    request: DiagramEditRequest,
    diagram_service: DiagramService = Depends(get_diagram_service)
):
    data = await diagram_service.edit(request.session_id, request.diagram_type, request.instruction)
    return BaseResponse.success(data=data, message=data["message"])

"""
PRD API endpoints: generate, edit, finalize and export.
"""

import logging
from typing import Literal
from urllib.parse import quote
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response, StreamingResponse

from app.dependencies import get_prd_service
from app.schemas.base import BaseResponse
from app.schemas.prd import PRDEditRequest, PRDGenerateRequest, SessionRequest
from app.services.prd_service import PRDService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prd", tags=["prd"])


@router.post("/generate", response_model=dict, summary="Generate a PRD from an idea")
async def generate_prd(
    request: PRDGenerateRequest,
    prd_service: PRDService = Depends(get_prd_service)
):
    """Create a session and a structured PRD for the idea."""
    data = await prd_service.generate(request.idea)
    return BaseResponse.success(data=data, message="PRD generated")


@router.post("/edit", response_model=dict, summary="Edit a PRD with a natural-language instruction")
async def edit_prd(
    request: PRDEditRequest,
    prd_service: PRDService = Depends(get_prd_service)
):
    data = await prd_service.edit(request.session_id, request.instruction, request.target_field)
    return BaseResponse.success(data=data, message=data["message"])


@router.post("/finalize", response_model=dict, summary="Merge PRD and diagrams into the final document")
async def finalize_prd(
    request: SessionRequest,
    prd_service: PRDService = Depends(get_prd_service)
):
    data = await prd_service.finalize(request.session_id)
    return BaseResponse.success(data=data, message=data["message"])


@router.post("/finalize/stream", summary="Stream the final document as server-sent events")
async def finalize_prd_stream(
    request: SessionRequest,
    prd_service: PRDService = Depends(get_prd_service)
):
    """
    Events: ``chunk`` with partial content, then ``done`` with the full
    Markdown once it is stored, or ``error``.
    """
    events = await prd_service.finalize_stream(request.session_id)
    return StreamingResponse(events, media_type="text/event-stream")


@router.get("/export", summary="Download the finalized PRD")
async def export_prd(
    session_id: str = Query(..., alias="sessionId", min_length=1),
    export_format: Literal["md", "pdf", "docx"] = Query("md", alias="format"),
    prd_service: PRDService = Depends(get_prd_service)
):
    content, media_type, filename = await prd_service.export(session_id, export_format)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )

"""
Session API endpoints.
"""

import logging
from fastapi import APIRouter, Depends

from app.dependencies import get_session_service
from app.schemas.base import BaseResponse
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=dict, summary="List sessions")
async def list_sessions(session_service: SessionService = Depends(get_session_service)):
    """List sessions, most recent first, each with a PRD summary."""
    sessions = await session_service.list_sessions()
    return BaseResponse.success(data=sessions)


@router.get("/{session_id}", response_model=dict, summary="Get a session with its PRD and messages")
async def get_session(session_id: str, session_service: SessionService = Depends(get_session_service)):
    detail = await session_service.get_session_detail(session_id)
    return BaseResponse.success(data=detail)


@router.delete("/{session_id}", response_model=dict, summary="Delete a session")
async def delete_session(session_id: str, session_service: SessionService = Depends(get_session_service)):
    """Delete the session together with its messages and PRD."""
    data = await session_service.delete_session(session_id)
    return BaseResponse.success(data=data, message="Session deleted")

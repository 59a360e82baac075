"""
Admin API endpoints: login and usage statistics.
"""

import logging
from typing import Any, Dict
from fastapi import APIRouter, Depends, Query

from app.core.exceptions import AuthenticationError
from app.dependencies import get_analytics_service
from app.middleware.auth import get_current_admin
from app.schemas.admin import AdminLoginRequest
from app.schemas.base import BaseResponse
from app.services.analytics_service import AnalyticsService
from app.services.security import security_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=dict, summary="Admin login")
async def login(login_data: AdminLoginRequest):
    """Exchange the admin password for a bearer token."""
    if not security_service.verify_admin_password(login_data.password):
        logger.warning("Failed admin login attempt")
        raise AuthenticationError("Invalid password")

    token = security_service.create_admin_token()
    logger.info("Admin logged in")
    return BaseResponse.success(
        data={"token": token, "tokenType": "bearer", "expiresIn": security_service.get_token_expiry_seconds()},
        message="Login successful",
    )


@router.get("/stats", response_model=dict, summary="Today's statistics")
async def get_stats(
    _admin: Dict[str, Any] = Depends(get_current_admin),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    stats = await analytics_service.get_today_stats()
    return BaseResponse.success(data=stats)


@router.get("/stats/history", response_model=dict, summary="Daily statistics history")
async def get_stats_history(
    days: int = Query(7, ge=1, le=90, description="Number of days, including today"),
    _admin: Dict[str, Any] = Depends(get_current_admin),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    history = await analytics_service.get_history(days)
    return BaseResponse.success(data=history)

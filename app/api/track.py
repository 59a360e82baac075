"""
Anonymous usage tracking endpoint.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_analytics_service
from app.schemas.admin import PageViewRequest
from app.schemas.base import BaseResponse
from app.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/track", tags=["analytics"])


@router.post("/page-view", response_model=dict, summary="Track a page view")
async def track_page_view(
    request: PageViewRequest,
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    """Always succeeds for a valid body; storage failures are only logged."""
    tracked = await analytics_service.track_page_view(request.anonymous_id, request.session_id, request.path)
    return BaseResponse.success(data={"tracked": tracked})

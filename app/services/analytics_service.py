"""
Page-view and PRD-generation tracking plus the admin statistics read side.

Tracking never fails a user request: errors are logged and swallowed here.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from app.models.analytics import AnalyticsEvent, DailyStats
from app.repositories.base import AnalyticsRepository

logger = logging.getLogger(__name__)


def utc_day(moment: Optional[datetime] = None) -> str:
    return (moment or datetime.utcnow()).strftime("%Y-%m-%d")


class AnalyticsService:
    """Service layer for analytics."""

    def __init__(self, repository: AnalyticsRepository):
        self.repository = repository

    async def track_page_view(
        self,
        anonymous_id: str,
        session_id: Optional[str] = None,
        path: Optional[str] = None,
    ) -> bool:
        try:
            await self.repository.record_event(AnalyticsEvent(
                event_type="page_view",
                anonymous_id=anonymous_id,
                session_id=session_id,
                metadata={"path": path} if path else {},
            ))
            await self.repository.increment_daily(utc_day(), {"total_visits": 1}, visitor=anonymous_id)
            return True
        except Exception as e:
            logger.error(f"Failed to track page view: {e}")
            return False

    async def track_prd_generation(
        self,
        success: bool,
        duration_ms: int,
        session_id: Optional[str] = None,
        title: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        counters = {"prd_total": 1, "prd_success": 1 if success else 0}
        if not success:
            counters["error_count"] = 1
        metadata: Dict[str, Any] = {"title": title} if success else {"error": error}
        try:
            await self.repository.record_event(AnalyticsEvent(
                event_type="prd_generated" if success else "prd_failed",
                session_id=session_id,
                duration_ms=duration_ms,
                metadata=metadata,
            ))
            await self.repository.increment_daily(utc_day(), counters)
        except Exception as e:
            logger.error(f"Failed to track PRD generation: {e}")

    async def get_today_stats(self) -> Dict[str, Any]:
        today = utc_day()
        stats = await self.repository.get_daily(today) or DailyStats(date=today)
        return stats.to_response()

    async def get_history(self, days: int) -> List[Dict[str, Any]]:
        """One entry per day for the last ``days`` days, zero-filled, oldest first."""
        now = datetime.utcnow()
        dates = [utc_day(now - timedelta(days=offset)) for offset in range(days - 1, -1, -1)]
        stored = {row.date: row for row in await self.repository.list_daily(dates[0])}
        return [(stored.get(date) or DailyStats(date=date)).to_response() for date in dates]

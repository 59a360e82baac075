"""
Analytics models for page views and PRD generation outcomes.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class AnalyticsEvent(BaseModel):
    """Single tracked event."""
    event_type: str = Field(..., description="page_view, prd_generated or prd_failed")
    anonymous_id: Optional[str] = None
    session_id: Optional[str] = None
    duration_ms: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class DailyStats(BaseModel):
    """Per-day counters. The success rate is derived on read, never stored."""
    date: str = Field(..., description="UTC day, YYYY-MM-DD")
    total_visits: int = 0
    visitors: List[str] = Field(default_factory=list)
    prd_total: int = 0
    prd_success: int = 0
    error_count: int = 0

    @property
    def unique_users(self) -> int:
        return len(self.visitors)

    @property
    def success_rate(self) -> float:
        if self.prd_total <= 0:
            return 0.0
        return round(self.prd_success / self.prd_total * 100, 2)

    def to_response(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "uniqueUsers": self.unique_users,
            "totalVisits": self.total_visits,
            "prdGenerated": self.prd_total,
            "prdSuccess": self.prd_success,
            "successRate": self.success_rate,
            "errorCount": self.error_count,
        }

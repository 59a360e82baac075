"""
MongoDB implementation of the analytics storage.
"""

import logging
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.database import get_database
from app.models.analytics import AnalyticsEvent, DailyStats
from app.repositories.base import AnalyticsRepository

logger = logging.getLogger(__name__)


class MongoAnalyticsRepository(AnalyticsRepository):
    """Events in ``analytics_events``, per-day counters in ``daily_stats``."""

    def __init__(self, db: AsyncIOMotorDatabase = None):
        self.db = db

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self.db is None:
            self.db = get_database()
        return self.db

    async def record_event(self, event: AnalyticsEvent) -> None:
        try:
            await self.database.analytics_events.insert_one(event.model_dump())
        except Exception as e:
            logger.error(f"Error recording {event.event_type} event: {e}")
            raise

    async def increment_daily(self, date: str, counters: Dict[str, int], visitor: Optional[str] = None) -> None:
        update = {"$inc": counters}
        if visitor:
            update["$addToSet"] = {"visitors": visitor}
        try:
            await self.database.daily_stats.update_one({"date": date}, update, upsert=True)
        except Exception as e:
            logger.error(f"Error updating daily stats for {date}: {e}")
            raise

    async def get_daily(self, date: str) -> Optional[DailyStats]:
        try:
            doc = await self.database.daily_stats.find_one({"date": date}, {"_id": 0})
            return DailyStats(**doc) if doc else None
        except Exception as e:
            logger.error(f"Error reading daily stats for {date}: {e}")
            raise

    async def list_daily(self, since: str) -> List[DailyStats]:
        try:
            cursor = self.database.daily_stats.find({"date": {"$gte": since}}, {"_id": 0}).sort("date", 1)
            return [DailyStats(**doc) async for doc in cursor]
        except Exception as e:
            logger.error(f"Error listing daily stats since {since}: {e}")
            raise

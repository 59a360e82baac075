"""
Database connection and configuration for MongoDB.
"""

import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from typing import Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: Optional[AsyncIOMotorClient] = None
    database: Optional[AsyncIOMotorDatabase] = None


db = Database()


async def connect_to_mongo():
    """Create database connection."""
    try:
        logger.info("Connecting to MongoDB...")
        db.client = AsyncIOMotorClient(settings.MONGODB_URL)
        db.database = db.client[settings.DATABASE_NAME]
        await db.client.admin.command('ping')
        logger.info("Successfully connected to MongoDB")

        await create_indexes()

    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        raise


async def close_mongo_connection():
    """Close database connection."""
    try:
        if db.client:
            logger.info("Closing MongoDB connection...")
            db.client.close()
            logger.info("MongoDB connection closed")
    except Exception as e:
        logger.error(f"Error closing MongoDB connection: {e}")


async def create_indexes():
    """Create database indexes."""
    try:
        if db.database is None:
            return

        # Sessions are listed by recent activity
        await db.database.sessions.create_index([("updated_at", -1)])

        # Messages are read per session in creation order
        await db.database.messages.create_index([("session_id", 1), ("created_at", 1)])

        # One PRD per session
        await db.database.prds.create_index("session_id", unique=True)

        await db.database.analytics_events.create_index([("event_type", 1), ("created_at", -1)])

        # One counter row per UTC day
        await db.database.daily_stats.create_index("date", unique=True)

        logger.info("Database indexes created successfully")

    except Exception as e:
        logger.error(f"Error creating database indexes: {e}")
        raise


def get_database() -> AsyncIOMotorDatabase:
    """Get database instance."""
    if db.database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() first.")
    return db.database

"""
MongoDB implementation of the session, message and PRD storage.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.db.database import get_database
from app.models.prd import PRDDocument, PRDRecord
from app.models.session import Message, Session
from app.repositories.base import SessionRepository

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(ObjectId())


class MongoSessionRepository(SessionRepository):
    """Sessions, messages and PRDs in three collections keyed by session id."""

    def __init__(self, db: AsyncIOMotorDatabase = None):
        self.db = db

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self.db is None:
            self.db = get_database()
        return self.db

    @property
    def sessions(self):
        return self.database.sessions

    @property
    def messages(self):
        return self.database.messages

    @property
    def prds(self):
        return self.database.prds

    async def create_session(self, title: str) -> Session:
        try:
            session = Session(_id=_new_id(), title=title)
            await self.sessions.insert_one(session.model_dump(by_alias=True))
            logger.info(f"Created session {session.id}")
            return session
        except Exception as e:
            logger.error(f"Error creating session: {e}")
            raise

    async def get_session(self, session_id: str) -> Optional[Session]:
        try:
            doc = await self.sessions.find_one({"_id": session_id})
            return Session(**doc) if doc else None
        except Exception as e:
            logger.error(f"Error getting session {session_id}: {e}")
            raise

    async def list_sessions(self) -> List[Session]:
        try:
            cursor = self.sessions.find({}).sort("updated_at", -1)
            return [Session(**doc) async for doc in cursor]
        except Exception as e:
            logger.error(f"Error listing sessions: {e}")
            raise

    async def update_session(self, session_id: str, updates: Dict[str, Any]) -> bool:
        try:
            updates = {**updates, "updated_at": datetime.utcnow()}
            result = await self.sessions.update_one({"_id": session_id}, {"$set": updates})
            return result.matched_count > 0
        except Exception as e:
            logger.error(f"Error updating session {session_id}: {e}")
            raise

    async def delete_session(self, session_id: str) -> bool:
        try:
            await self.messages.delete_many({"session_id": session_id})
            await self.prds.delete_many({"session_id": session_id})
            result = await self.sessions.delete_one({"_id": session_id})
            success = result.deleted_count > 0
            if success:
                logger.info(f"Deleted session {session_id} with its messages and PRD")
            return success
        except Exception as e:
            logger.error(f"Error deleting session {session_id}: {e}")
            raise

    async def add_message(self, session_id: str, role: str, content: str) -> Message:
        try:
            message = Message(_id=_new_id(), session_id=session_id, role=role, content=content)
            await self.messages.insert_one(message.model_dump(by_alias=True))
            return message
        except Exception as e:
            logger.error(f"Error adding message to session {session_id}: {e}")
            raise

    async def list_messages(self, session_id: str) -> List[Message]:
        try:
            cursor = self.messages.find({"session_id": session_id}).sort([("created_at", 1), ("_id", 1)])
            return [Message(**doc) async for doc in cursor]
        except Exception as e:
            logger.error(f"Error listing messages for session {session_id}: {e}")
            raise

    async def create_prd(self, session_id: str, document: PRDDocument) -> PRDRecord:
        try:
            record = PRDRecord(_id=_new_id(), session_id=session_id, **PRDRecord.serialize_document(document))
            await self.prds.insert_one(record.model_dump(by_alias=True))
            logger.info(f"Created PRD {record.id} for session {session_id}")
            return record
        except Exception as e:
            logger.error(f"Error creating PRD for session {session_id}: {e}")
            raise

    async def get_prd_by_session(self, session_id: str) -> Optional[PRDRecord]:
        try:
            doc = await self.prds.find_one({"session_id": session_id})
            return PRDRecord(**doc) if doc else None
        except Exception as e:
            logger.error(f"Error getting PRD for session {session_id}: {e}")
            raise

    async def list_prds(self, session_ids: List[str]) -> Dict[str, PRDRecord]:
        try:
            cursor = self.prds.find({"session_id": {"$in": session_ids}})
            return {doc["session_id"]: PRDRecord(**doc) async for doc in cursor}
        except Exception as e:
            logger.error(f"Error listing PRDs: {e}")
            raise

    async def update_prd(self, session_id: str, updates: Dict[str, Any]) -> Optional[PRDRecord]:
        try:
            updates = {**updates, "updated_at": datetime.utcnow()}
            doc = await self.prds.find_one_and_update(
                {"session_id": session_id},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
            if doc:
                logger.info(f"Updated PRD for session {session_id}: {', '.join(sorted(updates))}")
            return PRDRecord(**doc) if doc else None
        except Exception as e:
            logger.error(f"Error updating PRD for session {session_id}: {e}")
            raise

"""
Session service: session listing/detail/deletion and cached PRD access
shared by the PRD and diagram services.
"""

import logging
from typing import Any, Dict, List, Optional

from app.core.config import Settings, settings
from app.core.exceptions import NotFoundError
from app.models.prd import PRDRecord
from app.models.session import Session
from app.repositories.base import CacheRepository, SessionRepository

logger = logging.getLogger(__name__)


class SessionService:
    """Service layer for sessions and their stored PRD."""

    def __init__(
        self,
        repository: SessionRepository,
        cache: CacheRepository,
        config: Optional[Settings] = None,
    ):
        self.repository = repository
        self.cache = cache
        self.config = config or settings

    async def require_session(self, session_id: str) -> Session:
        session = await self.repository.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found", details={"sessionId": session_id})
        return session

    async def get_prd(self, session_id: str) -> Optional[PRDRecord]:
        """PRD row for a session, read through the cache."""
        key = self.cache.prd_cache_key(session_id)
        cached = await self.cache.get(key)
        if isinstance(cached, dict):
            try:
                return PRDRecord.model_validate(cached)
            except ValueError:
                logger.warning(f"Discarding malformed cached PRD for session {session_id}")
                await self.cache.delete(key)

        record = await self.repository.get_prd_by_session(session_id)
        if record is not None:
            await self.cache.set(key, record.model_dump(by_alias=True, mode="json"), ttl=self.config.PRD_CACHE_TTL)
        return record

    async def require_prd(self, session_id: str, hint: str = "") -> PRDRecord:
        record = await self.get_prd(session_id)
        if record is None:
            message = f"PRD not found{hint}"
            raise NotFoundError(message, details={"sessionId": session_id})
        return record

    async def save_prd(self, session_id: str, updates: Dict[str, Any]) -> PRDRecord:
        record = await self.repository.update_prd(session_id, updates)
        await self.cache.delete(self.cache.prd_cache_key(session_id))
        if record is None:
            raise NotFoundError("PRD not found", details={"sessionId": session_id})
        return record

    async def list_sessions(self) -> List[Dict[str, Any]]:
        sessions = await self.repository.list_sessions()
        prds = await self.repository.list_prds([s.id for s in sessions]) if sessions else {}
        items = []
        for session in sessions:
            item = session.to_response()
            prd = prds.get(session.id)
            item["prd"] = {
                "id": prd.id,
                "title": prd.title,
                "description": prd.description,
                "isFinal": prd.is_final,
            } if prd else None
            items.append(item)
        return items

    async def get_session_detail(self, session_id: str) -> Dict[str, Any]:
        session = await self.require_session(session_id)
        prd = await self.get_prd(session_id)
        messages = await self.repository.list_messages(session_id)
        detail = session.to_response()
        detail["prd"] = prd.to_response() if prd else None
        detail["messages"] = [m.to_response() for m in messages]
        return detail

    async def delete_session(self, session_id: str) -> Dict[str, Any]:
        await self.require_session(session_id)
        await self.repository.delete_session(session_id)
        await self.cache.delete(self.cache.prd_cache_key(session_id))
        logger.info(f"Session {session_id} deleted")
        return {"sessionId": session_id, "deleted": True}

"""
Base repository interfaces.

Services depend on these abstractions only; the MongoDB and Redis
implementations live next to them and tests supply in-memory ones.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from app.models.analytics import AnalyticsEvent, DailyStats
from app.models.prd import PRDDocument, PRDRecord
from app.models.session import Message, Session


class SessionRepository(ABC):
    """Storage for sessions, their messages and their (single) PRD."""

    @abstractmethod
    async def create_session(self, title: str) -> Session:
        pass

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[Session]:
        pass

    @abstractmethod
    async def list_sessions(self) -> List[Session]:
        """All sessions, most recently updated first."""
        pass

    @abstractmethod
    async def update_session(self, session_id: str, updates: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        """Delete a session together with its messages and PRD."""
        pass

    @abstractmethod
    async def add_message(self, session_id: str, role: str, content: str) -> Message:
        pass

    @abstractmethod
    async def list_messages(self, session_id: str) -> List[Message]:
        """Messages of a session in creation order."""
        pass

    @abstractmethod
    async def create_prd(self, session_id: str, document: PRDDocument) -> PRDRecord:
        pass

    @abstractmethod
    async def get_prd_by_session(self, session_id: str) -> Optional[PRDRecord]:
        pass

    @abstractmethod
    async def list_prds(self, session_ids: List[str]) -> Dict[str, PRDRecord]:
        """PRDs for the given sessions, keyed by session id."""
        pass

    @abstractmethod
    async def update_prd(self, session_id: str, updates: Dict[str, Any]) -> Optional[PRDRecord]:
        """Apply column updates and return the stored row afterwards."""
        pass


class AnalyticsRepository(ABC):
    """Storage for tracked events and per-day counters."""

    @abstractmethod
    async def record_event(self, event: AnalyticsEvent) -> None:
        pass

    @abstractmethod
    async def increment_daily(self, date: str, counters: Dict[str, int], visitor: Optional[str] = None) -> None:
        """Atomically add ``counters`` to the day's row, creating it if needed."""
        pass

    @abstractmethod
    async def get_daily(self, date: str) -> Optional[DailyStats]:
        pass

    @abstractmethod
    async def list_daily(self, since: str) -> List[DailyStats]:
        """Rows with ``date >= since``, oldest first."""
        pass


class CacheRepository(ABC):
    """Abstract interface for caching operations."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete value from cache."""
        pass

    def generate_cache_key(self, prefix: str, *args) -> str:
        """Generate a cache key from prefix and arguments."""
        key_parts = [prefix] + [str(arg) for arg in args]
        return ":".join(key_parts)

    def prd_cache_key(self, session_id: str) -> str:
        return self.generate_cache_key("prd", session_id)

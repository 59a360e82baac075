import json
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

from app.core.config import settings
from app.models.analytics import AnalyticsEvent, DailyStats
from app.models.prd import PRDDocument, PRDRecord
from app.models.session import Message, Session
from app.repositories.base import AnalyticsRepository, CacheRepository, SessionRepository
from app.services.ai_service import AIStreamChunk, ResponseMode
from app.services.analytics_service import AnalyticsService
from app.services.diagram_service import DiagramService
from app.services.diagram_validator import ValidationResult
from app.services.export_service import ExportService
from app.services.prd_service import PRDService
from app.services.session_service import SessionService


MEETING_PRD: Dict[str, Any] = {
    "title": "MeetMind",
    "description": "An AI assistant that turns meeting recordings into summaries and action items",
    "background": "Teams spend hours re-reading notes after meetings.",
    "targetUsers": {"primary": ["Project managers"], "secondary": ["Remote engineers"]},
    "painPoints": ["Notes are incomplete", "Action items get lost"],
    "coreValue": ["Automatic summaries", "Tracked action items"],
    "features": [
        {
            "id": "feature_1",
            "name": "Recording upload",
            "description": "Upload audio or video of a meeting",
            "priority": "high",
            "effort": 2,
            "value": 5,
            "acceptanceCriteria": ["Accepts mp3 and mp4", "Shows upload progress"],
        },
        {
            "id": "feature_2",
            "name": "Summary generation",
            "description": "Summarize the transcript into key points",
            "priority": "high",
            "effort": 4,
            "value": 5,
            "acceptanceCriteria": ["Summary is ready within 2 minutes"],
        },
        {
            "id": "feature_3",
            "name": "Action items",
            "description": "Extract owners and due dates",
            "priority": "medium",
            "effort": 3,
            "value": 4,
            "acceptanceCriteria": ["Each item has an owner"],
        },
    ],
    "successMetrics": ["70% of meetings summarized"],
    "techFeasibility": {
        "overall": "medium",
        "challenges": ["Speaker diarization"],
        "recommendations": ["Use a hosted speech-to-text API"],
    },
    "competitors": [
        {"name": "Otter", "features": ["Transcription"], "differences": "We focus on action items"}
    ],
}

class FakeLLM:
    """Scripted LLM client; each entry is returned (or raised) in order."""

    def __init__(self, responses: Optional[List[Any]] = None, stream_chunks: Optional[List[str]] = None):
        self.responses = list(responses or [])
        self.stream_chunks = list(stream_chunks or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> "FakeLLM":
        self.responses.extend(responses)
        return self

    async def chat(self, system_prompt, user_prompt, history=None, mode=ResponseMode.TEXT):
        self.calls.append({"system": system_prompt, "user": user_prompt, "mode": mode})
        if not self.responses:
            raise AssertionError("FakeLLM ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def chat_stream(self, system_prompt, user_prompt, history=None):
        self.calls.append({"system": system_prompt, "user": user_prompt, "mode": "stream"})
        for piece in self.stream_chunks:
            if isinstance(piece, Exception):
                raise piece
            yield AIStreamChunk(content=piece, provider="fake", model="fake")
        yield AIStreamChunk(content="", is_complete=True, provider="fake", model="fake")


class FakeValidator:
    """Returns scripted results in order, then ``default``."""

    def __init__(self, results: Optional[List[bool]] = None, default: bool = True):
        self.results = list(results or [])
        self.default = default
        self.calls: List[str] = []

    async def validate(self, source: str) -> ValidationResult:
        self.calls.append(source)
        valid = self.results.pop(0) if self.results else self.default
        return ValidationResult(valid=valid, error=None if valid else "Parse error on line 2")


class InMemorySessionRepository(SessionRepository):

    def __init__(self):
        self.sessions: Dict[str, Session] = {}
        self.messages: List[Message] = []
        self.prds: Dict[str, PRDRecord] = {}
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter}"

    async def create_session(self, title: str) -> Session:
        session = Session(_id=self._next_id("session-"), title=title)
        self.sessions[session.id] = session
        return session.model_copy(deep=True)

    async def get_session(self, session_id: str) -> Optional[Session]:
        session = self.sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def list_sessions(self) -> List[Session]:
        ordered = sorted(self.sessions.values(), key=lambda s: s.updated_at, reverse=True)
        return [s.model_copy(deep=True) for s in ordered]

    async def update_session(self, session_id: str, updates: Dict[str, Any]) -> bool:
        session = self.sessions.get(session_id)
        if session is None:
            return False
        for key, value in updates.items():
            setattr(session, key, value)
        session.updated_at = datetime.utcnow()
        return True

    async def delete_session(self, session_id: str) -> bool:
        self.messages = [m for m in self.messages if m.session_id != session_id]
        self.prds.pop(session_id, None)
        return self.sessions.pop(session_id, None) is not None

    async def add_message(self, session_id: str, role: str, content: str) -> Message:
        message = Message(_id=self._next_id("message-"), session_id=session_id, role=role, content=content)
        self.messages.append(message)
        return message

    async def list_messages(self, session_id: str) -> List[Message]:
        return [m for m in self.messages if m.session_id == session_id]

    async def create_prd(self, session_id: str, document: PRDDocument) -> PRDRecord:
        record = PRDRecord(_id=self._next_id("prd-"), session_id=session_id, **PRDRecord.serialize_document(document))
        self.prds[session_id] = record
        return record.model_copy(deep=True)

    async def get_prd_by_session(self, session_id: str) -> Optional[PRDRecord]:
        record = self.prds.get(session_id)
        return record.model_copy(deep=True) if record else None

    async def list_prds(self, session_ids: List[str]) -> Dict[str, PRDRecord]:
        return {sid: self.prds[sid].model_copy(deep=True) for sid in session_ids if sid in self.prds}

    async def update_prd(self, session_id: str, updates: Dict[str, Any]) -> Optional[PRDRecord]:
        record = self.prds.get(session_id)
        if record is None:
            return None
        for key, value in updates.items():
            setattr(record, key, value)
        record.updated_at = datetime.utcnow()
        return record.model_copy(deep=True)


class InMemoryAnalyticsRepository(AnalyticsRepository):

    def __init__(self):
        self.events: List[AnalyticsEvent] = []
        self.daily: Dict[str, DailyStats] = {}
        self.fail = False

    async def record_event(self, event: AnalyticsEvent) -> None:
        if self.fail:
            raise RuntimeError("analytics store unavailable")
        self.events.append(event)

    async def increment_daily(self, date: str, counters: Dict[str, int], visitor: Optional[str] = None) -> None:
        if self.fail:
            raise RuntimeError("analytics store unavailable")
        row = self.daily.setdefault(date, DailyStats(date=date))
        for key, amount in counters.items():
            setattr(row, key, getattr(row, key) + amount)
        if visitor and visitor not in row.visitors:
            row.visitors.append(visitor)

    async def get_daily(self, date: str) -> Optional[DailyStats]:
        return self.daily.get(date)

    async def list_daily(self, since: str) -> List[DailyStats]:
        return sorted((row for row in self.daily.values() if row.date >= since), key=lambda r: r.date)


class InMemoryCache(CacheRepository):

    def __init__(self):
        self.store: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        value = self.store.get(key)
        return json.loads(value) if value is not None else None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        self.store[key] = json.dumps(value, default=str)
        return True

    async def delete(self, key: str) -> bool:
        return self.store.pop(key, None) is not None


@pytest.fixture
def meeting_prd() -> Dict[str, Any]:
    return json.loads(json.dumps(MEETING_PRD))


@pytest.fixture
def meeting_document(meeting_prd) -> PRDDocument:
    return PRDDocument.model_validate(meeting_prd)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_validator() -> FakeValidator:
    return FakeValidator()


@pytest.fixture
def session_repo() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def analytics_repo() -> InMemoryAnalyticsRepository:
    return InMemoryAnalyticsRepository()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def test_settings():
    return settings.model_copy(update={
        "DIAGRAM_MAX_RETRIES": 1,
        "IDEA_MIN_LENGTH": 10,
        "SESSION_TITLE_MAX_LENGTH": 50,
    })


@pytest.fixture
def session_service(session_repo, cache, test_settings) -> SessionService:
    return SessionService(session_repo, cache, test_settings)


@pytest.fixture
def analytics_service(analytics_repo) -> AnalyticsService:
    return AnalyticsService(analytics_repo)


@pytest.fixture
def exporter() -> ExportService:
    return ExportService()


@pytest.fixture
def prd_service(fake_llm, session_service, analytics_service, exporter, test_settings) -> PRDService:
    return PRDService(fake_llm, session_service, analytics_service, exporter, test_settings)


@pytest.fixture
def diagram_service(fake_llm, fake_validator, session_service, test_settings) -> DiagramService:
    return DiagramService(fake_llm, fake_validator, session_service, test_settings)


@pytest_asyncio.fixture
async def stored_session(session_repo, meeting_document):
    """A session with a generated (not yet finalized) PRD."""
    session = await session_repo.create_session(meeting_document.title)
    await session_repo.create_prd(session.id, meeting_document)
    return session

"""
PRD service layer: generation, editing, finalization and export.
"""

import json
import logging
import time
from typing import Any, AsyncIterator, Dict, Optional, Tuple

from app.agent.finalize import count_diagrams, finalize_prd, stream_finalize
from app.agent.prd import edit_prd, generate_prd
from app.core.config import Settings, settings
from app.core.exceptions import AppError, ExportNotReadyError, IncompleteDocument, ValidationError
from app.models.prd import DiagramKind, PRDDocument, PRDRecord
from app.models.session import SessionStep
from app.services.ai_service import LLMClient
from app.services.analytics_service import AnalyticsService
from app.services.export_service import ExportService
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)


def _sse(event: str, data: Dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


class PRDService:
    """Service layer for PRD operations."""

    def __init__(
        self,
        llm: LLMClient,
        sessions: SessionService,
        analytics: AnalyticsService,
        exporter: ExportService,
        config: Optional[Settings] = None,
    ):
        self.llm = llm
        self.sessions = sessions
        self.analytics = analytics
        self.exporter = exporter
        self.config = config or settings

    @property
    def repository(self):
        return self.sessions.repository

    async def generate(self, idea: str) -> Dict[str, Any]:
        """Generate a PRD from an idea and store it in a new session.

        The model is called before anything is written, so a failed
        generation leaves no session behind.
        """
        idea = (idea or "").strip()
        if len(idea) < self.config.IDEA_MIN_LENGTH:
            raise ValidationError(
                f"Idea must be at least {self.config.IDEA_MIN_LENGTH} characters long",
                details={"field": "idea"},
            )

        start = time.time()
        try:
            document = await generate_prd(self.llm, idea)
        except Exception as e:
            await self.analytics.track_prd_generation(
                False, int((time.time() - start) * 1000), error=getattr(e, "message", str(e))
            )
            raise

        session = await self.repository.create_session(idea[: self.config.SESSION_TITLE_MAX_LENGTH])
        await self.repository.add_message(session.id, "user", idea)
        record = await self.repository.create_prd(session.id, document)
        await self.repository.add_message(
            session.id,
            "assistant",
            f"Generated the PRD \"{document.title}\" with {len(document.features)} features.",
        )
        await self.repository.update_session(
            session.id, {"title": document.title[:255], "current_step": SessionStep.DRAFT}
        )

        await self.analytics.track_prd_generation(
            True, int((time.time() - start) * 1000), session_id=session.id, title=document.title
        )
        logger.info(f"[prd] session {session.id} created with PRD {record.id}")
        return {"sessionId": session.id, "prdId": record.id, "prd": record.to_response()}

    async def edit(self, session_id: str, instruction: str, target_field: Optional[str] = None) -> Dict[str, Any]:
        session = await self.sessions.require_session(session_id)
        record = await self.sessions.require_prd(session_id)
        current = record.to_document()

        document = await edit_prd(self.llm, current, instruction, target_field)

        updates = PRDRecord.serialize_document(document)
        if record.is_final:
            # the deliverable no longer matches the edited content
            updates.update({"is_final": False, "final_content": None})
        updated = await self.sessions.save_prd(session_id, updates)

        await self.repository.add_message(session_id, "user", instruction)
        await self.repository.add_message(session_id, "assistant", "The PRD has been updated.")
        session_updates: Dict[str, Any] = {}
        if document.title != current.title or session.title != document.title:
            session_updates["title"] = document.title[:255]
        if record.is_final:
            has_diagrams = any(record.get_diagrams().values())
            session_updates["current_step"] = SessionStep.DIAGRAMS if has_diagrams else SessionStep.DRAFT
        await self.repository.update_session(session_id, session_updates)

        return {"prd": updated.to_response(), "message": "PRD updated"}

    async def _load_for_finalize(self, session_id: str) -> Tuple[PRDDocument, Dict[DiagramKind, Optional[str]]]:
        await self.sessions.require_session(session_id)
        record = await self.sessions.require_prd(session_id)
        if not record.title or not record.description:
            raise IncompleteDocument("PRD is missing its title or description")
        return record.to_document(), record.get_diagrams()

    async def _store_final(self, session_id: str, markdown: str, diagrams: Dict[DiagramKind, Optional[str]]) -> None:
        await self.sessions.save_prd(session_id, {"is_final": True, "final_content": markdown})
        await self.repository.update_session(session_id, {"current_step": SessionStep.FINAL})
        await self.repository.add_message(
            session_id,
            "assistant",
            f"Generated the complete PRD document with {count_diagrams(diagrams)} diagram(s) embedded.",
        )

    async def finalize(self, session_id: str) -> Dict[str, Any]:
        document, diagrams = await self._load_for_finalize(session_id)
        markdown = await finalize_prd(self.llm, document, diagrams)
        await self._store_final(session_id, markdown, diagrams)
        return {"markdown": markdown, "message": "Final PRD generated"}

    async def finalize_stream(self, session_id: str) -> AsyncIterator[str]:
        """Check preconditions, then return the SSE event stream.

        Lookup errors surface before any byte is sent; model errors during
        the stream become an ``error`` event and nothing is stored.
        """
        document, diagrams = await self._load_for_finalize(session_id)

        async def event_stream():
            parts = []
            try:
                async for chunk in stream_finalize(self.llm, document, diagrams):
                    if chunk.is_complete:
                        markdown = "".join(parts)
                        await self._store_final(session_id, markdown, diagrams)
                        yield _sse("done", {"markdown": markdown, "message": "Final PRD generated"})
                        break
                    parts.append(chunk.content)
                    yield _sse("chunk", {"content": chunk.content})
            except Exception as e:
                message = e.message if isinstance(e, AppError) else "Failed to generate the final PRD"
                logger.error(f"[prd] streaming finalization failed for {session_id}: {e}", exc_info=not isinstance(e, AppError))
                yield _sse("error", {"error": message})

        return event_stream()

    async def export(self, session_id: str, fmt: str) -> Tuple[bytes, str, str]:
        await self.sessions.require_session(session_id)
        record = await self.sessions.require_prd(session_id)
        if not record.is_final or not record.final_content:
            raise ExportNotReadyError("PRD has not been finalized yet; finalize it before exporting")
        return self.exporter.render(record.final_content, fmt, record.title)

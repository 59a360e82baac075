"""
Diagram service layer: generation of the four Mermaid diagrams and diagram edits.
"""

import json
import logging
from typing import Any, Dict, Iterable, Optional

from app.agent.diagrams import DiagramResult, edit_diagram, generate_all_diagrams
from app.agent.prompts import DIAGRAM_NAMES
from app.core.config import Settings, settings
from app.core.exceptions import NotFoundError, ValidationError
from app.models.prd import DIAGRAM_FIELDS, DiagramKind, PRDRecord
from app.models.session import SessionStep
from app.services.ai_service import LLMClient
from app.services.diagram_validator import MermaidValidator
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)


def parse_diagram_kind(value: str) -> DiagramKind:
    try:
        return DiagramKind(value)
    except ValueError:
        raise ValidationError(
            f"Unknown diagram type: {value}",
            details={"allowed": [kind.value for kind in DiagramKind]},
        )


def _status_entry(result: DiagramResult) -> Dict[str, Any]:
    return {"status": result.status.value, "attempts": result.attempts, "error": result.error}


def _step_after_change(record: PRDRecord) -> Dict[str, Any]:
    """A finalized session drops back to the diagrams step once a diagram changes."""
    return {"current_step": SessionStep.DIAGRAMS} if record.is_final else {}


class DiagramService:
    """Service layer for diagram operations."""

    def __init__(
        self,
        llm: LLMClient,
        validator: MermaidValidator,
        sessions: SessionService,
        config: Optional[Settings] = None,
    ):
        self.llm = llm
        self.validator = validator
        self.sessions = sessions
        self.config = config or settings

    def _diagram_updates(self, record: PRDRecord, results: Iterable[DiagramResult]) -> Dict[str, Any]:
        """Column updates for the results, merged into the stored status map."""
        status = record.get_diagram_status()
        updates: Dict[str, Any] = {}
        for result in results:
            updates[DIAGRAM_FIELDS[result.kind]] = result.code
            status[result.kind.value] = _status_entry(result)
        updates["diagram_status"] = json.dumps(status)
        if record.is_final:
            # the final document embeds the previous diagrams
            updates.update({"is_final": False, "final_content": None})
        return updates

    async def generate(self, session_id: str, diagram_type: Optional[str] = None) -> Dict[str, Any]:
        """Generate all four diagrams, or only ``diagram_type``.

        Nothing is stored unless every requested kind was resolved.
        """
        kinds = [parse_diagram_kind(diagram_type)] if diagram_type else list(DiagramKind)
        await self.sessions.require_session(session_id)
        record = await self.sessions.require_prd(session_id, hint=", generate the PRD first")

        results = await generate_all_diagrams(
            self.llm, self.validator, record.to_document(), self.config.DIAGRAM_MAX_RETRIES, kinds
        )

        updated = await self.sessions.save_prd(session_id, self._diagram_updates(record, results.values()))
        repository = self.sessions.repository
        valid_count = sum(1 for r in results.values() if r.valid)
        if diagram_type:
            kind = kinds[0]
            await repository.update_session(session_id, _step_after_change(record))
            message = f"Regenerated the {DIAGRAM_NAMES[kind]}"
        else:
            await repository.update_session(session_id, {"current_step": SessionStep.DIAGRAMS})
            message = f"Generated {len(results)} diagrams ({valid_count} valid)"
        await repository.add_message(session_id, "assistant", f"{message}.")
        logger.info(f"[diagram] session {session_id}: {message}")

        return {
            "diagrams": {kind.value: code for kind, code in updated.get_diagrams().items()},
            "validation": {
                kind.value: {"valid": result.valid, **_status_entry(result)}
                for kind, result in results.items()
            },
            "message": message,
        }

    async def edit(self, session_id: str, diagram_type: str, instruction: str) -> Dict[str, Any]:
        kind = parse_diagram_kind(diagram_type)
        await self.sessions.require_session(session_id)
        record = await self.sessions.require_prd(session_id)
        code = record.get_diagrams()[kind]
        if not code:
            raise NotFoundError(
                f"No {kind.value} diagram to edit; generate the diagrams first",
                details={"diagramType": kind.value},
            )

        result = await edit_diagram(self.llm, self.validator, kind, code, instruction)
        await self.sessions.save_prd(session_id, self._diagram_updates(record, [result]))

        repository = self.sessions.repository
        await repository.add_message(session_id, "user", instruction)
        await repository.add_message(session_id, "assistant", f"Updated the {DIAGRAM_NAMES[kind]}.")
        await repository.update_session(session_id, _step_after_change(record))

        return {
            "diagramType": kind.value,
            "code": result.code,
            "valid": result.valid,
            "error": result.error,
            "message": f"Updated the {DIAGRAM_NAMES[kind]}",
        }

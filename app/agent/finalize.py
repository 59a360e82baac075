from __future__ import annotations

import logging
from typing import AsyncIterator, Dict, Optional

from app.agent.prompts import FINALIZE_SYSTEM_PROMPT, build_finalize_prompt
from app.models.prd import DiagramKind, PRDDocument
from app.services.ai_service import AIStreamChunk, LLMClient, ResponseMode

logger = logging.getLogger(__name__)


def count_diagrams(diagrams: Dict[DiagramKind, Optional[str]]) -> int:
    return sum(1 for code in diagrams.values() if code)


async def finalize_prd(
    llm: LLMClient,
    prd: PRDDocument,
    diagrams: Dict[DiagramKind, Optional[str]],
) -> str:
    """One text-mode call; the returned Markdown is trusted as-is."""
    logger.info("[prd] finalizing '%s' with %s diagram(s)", prd.title, count_diagrams(diagrams))
    return await llm.chat(FINALIZE_SYSTEM_PROMPT, build_finalize_prompt(prd, diagrams), mode=ResponseMode.TEXT)


def stream_finalize(
    llm: LLMClient,
    prd: PRDDocument,
    diagrams: Dict[DiagramKind, Optional[str]],
) -> AsyncIterator[AIStreamChunk]:
    logger.info("[prd] streaming finalization of '%s'", prd.title)
    return llm.chat_stream(FINALIZE_SYSTEM_PROMPT, build_finalize_prompt(prd, diagrams))

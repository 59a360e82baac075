from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Optional

from pydantic import BaseModel

from app.agent.prompts import (
    DIAGRAM_SYSTEM_PROMPT,
    build_diagram_edit_prompt,
    build_diagram_prompt,
)
from app.core.exceptions import ConfigurationError, UpstreamError
from app.models.prd import DiagramKind, DiagramStatus, PRDDocument
from app.services.ai_service import LLMClient, ResponseMode
from app.services.diagram_validator import MermaidValidator

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^[ \t]*```[\w-]*[ \t]*$", re.M)
_BLANK_RUN_RE = re.compile(r"\n{3,}")


class DiagramResult(BaseModel):
    """Outcome of one diagram kind: pending -> generated -> valid | invalid."""
    kind: DiagramKind
    code: str = ""
    status: DiagramStatus = DiagramStatus.PENDING
    attempts: int = 0
    error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.status == DiagramStatus.VALID


def clean_mermaid_code(text: str) -> str:
    """Drop fence markers, collapse long blank runs and trailing whitespace."""
    code = _FENCE_RE.sub("", text or "")
    # a fence glued to the first statement, e.g. "```mermaid graph TD"
    code = re.sub(r"^\s*```(?:mermaid)?[ \t]+", "", code)
    code = code.replace("```", "")
    code = "\n".join(line.rstrip() for line in code.splitlines())
    code = _BLANK_RUN_RE.sub("\n\n", code)
    return code.strip("\n")


async def generate_diagram(
    llm: LLMClient,
    validator: MermaidValidator,
    kind: DiagramKind,
    prd: PRDDocument,
    max_retries: int = 1,
) -> DiagramResult:
    """At most ``1 + max_retries`` model calls; the last text is kept even when invalid."""
    result = DiagramResult(kind=kind)
    prompt = build_diagram_prompt(kind, prd)
    total = max_retries + 1

    for attempt in range(1, total + 1):
        result.attempts = attempt
        logger.info("[diagram] %s attempt %s/%s", kind.value, attempt, total)
        text = await llm.chat(DIAGRAM_SYSTEM_PROMPT, prompt, mode=ResponseMode.TEXT)
        result.code = clean_mermaid_code(text)
        result.status = DiagramStatus.GENERATED

        validation = await validator.validate(result.code)
        if validation.valid:
            result.status = DiagramStatus.VALID
            result.error = None
            logger.info("[diagram] %s valid after %s attempt(s)", kind.value, attempt)
            return result

        result.error = validation.error
        logger.warning("[diagram] %s attempt %s invalid: %s", kind.value, attempt, validation.error)

    result.status = DiagramStatus.INVALID
    logger.warning("[diagram] %s still invalid after %s attempts, keeping last output", kind.value, total)
    return result


async def generate_all_diagrams(
    llm: LLMClient,
    validator: MermaidValidator,
    prd: PRDDocument,
    max_retries: int = 1,
    kinds: Optional[Iterable[DiagramKind]] = None,
) -> Dict[DiagramKind, DiagramResult]:
    """Generate the requested kinds one after another.

    Upstream and configuration errors abort the whole run; any other failure
    only marks its own kind invalid with an empty code.
    """
    results: Dict[DiagramKind, DiagramResult] = {}
    for kind in list(kinds) if kinds is not None else list(DiagramKind):
        try:
            results[kind] = await generate_diagram(llm, validator, kind, prd, max_retries)
        except (UpstreamError, ConfigurationError):
            logger.error("[diagram] aborting diagram generation at %s", kind.value)
            raise
        except Exception as e:
            logger.warning("[diagram] %s failed: %s", kind.value, e)
            results[kind] = DiagramResult(kind=kind, code="", status=DiagramStatus.INVALID, error=str(e))
    return results


async def edit_diagram(
    llm: LLMClient,
    validator: MermaidValidator,
    kind: DiagramKind,
    code: str,
    instruction: str,
) -> DiagramResult:
    """Single edit call; the validation status is recorded but not enforced."""
    logger.info("[diagram] editing %s", kind.value)
    text = await llm.chat(
        DIAGRAM_SYSTEM_PROMPT, build_diagram_edit_prompt(kind, code, instruction), mode=ResponseMode.TEXT
    )
    result = DiagramResult(kind=kind, code=clean_mermaid_code(text), status=DiagramStatus.GENERATED, attempts=1)
    validation = await validator.validate(result.code)
    if validation.valid:
        result.status = DiagramStatus.VALID
    else:
        result.status = DiagramStatus.INVALID
        result.error = validation.error
        logger.warning("[diagram] edited %s is invalid: %s", kind.value, validation.error)
    return result

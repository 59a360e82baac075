from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from app.agent.prompts import (
    PRD_EDIT_SYSTEM_PROMPT,
    PRD_SYSTEM_PROMPT,
    build_edit_prompt,
    build_generation_prompt,
)
from app.core.exceptions import IncompleteDocument, MalformedResponse
from app.models.prd import PRDDocument
from app.services.ai_service import LLMClient, ResponseMode

logger = logging.getLogger(__name__)

_OBJECT_SPAN_RE = re.compile(r"\{[\s\S]*\}")

# Accept both the camelCase keys we ask for and snake_case ones some models return.
_PAYLOAD_KEYS: Dict[str, str] = {}
for _name, _field in PRDDocument.model_fields.items():
    _alias = _field.alias or _name
    _PAYLOAD_KEYS[_name] = _alias
    _PAYLOAD_KEYS[_alias] = _alias


def decode_json_object(text: str) -> Dict[str, Any]:
    """Strict parse first, then the first ``{`` .. last ``}`` span."""
    raw = (text or "").strip()
    try:
        data = json.loads(raw)
    except ValueError:
        match = _OBJECT_SPAN_RE.search(raw)
        if not match:
            raise MalformedResponse("Model response is not valid JSON", details={"preview": raw[:200]})
        try:
            data = json.loads(match.group(0))
        except ValueError as e:
            raise MalformedResponse(
                f"Model response is not valid JSON: {e}", details={"preview": raw[:200]}
            ) from e
    if not isinstance(data, dict):
        raise MalformedResponse("Model response is not a JSON object", details={"preview": raw[:200]})
    return data


def validate_prd_payload(data: Dict[str, Any]) -> PRDDocument:
    """Require title, description and at least one feature, then build the typed document."""
    missing = []
    for key in ("title", "description"):
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            missing.append(key)
    features = data.get("features")
    if not isinstance(features, list) or not features:
        missing.append("features")
    if missing:
        raise IncompleteDocument(
            f"PRD is missing required fields: {', '.join(missing)}", details={"missing": missing}
        )

    try:
        return PRDDocument.model_validate(data)
    except PydanticValidationError as e:
        errors = [{"loc": [str(part) for part in err["loc"]], "msg": err["msg"]} for err in e.errors()]
        raise IncompleteDocument("PRD does not match the expected structure", details=errors) from e


def merge_prd_payload(current: PRDDocument, returned: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay only the keys the model returned with a non-null value."""
    merged = current.to_payload()
    for key, value in returned.items():
        alias = _PAYLOAD_KEYS.get(key)
        if alias is None or value is None:
            continue
        merged[alias] = value
    return merged


async def generate_prd(llm: LLMClient, idea: str) -> PRDDocument:
    logger.info("[prd] generating PRD (idea_len=%s)", len(idea))
    text = await llm.chat(PRD_SYSTEM_PROMPT, build_generation_prompt(idea), mode=ResponseMode.JSON)
    document = validate_prd_payload(decode_json_object(text))
    logger.info("[prd] generated '%s' with %s features", document.title, len(document.features))
    return document


async def edit_prd(
    llm: LLMClient,
    current: PRDDocument,
    instruction: str,
    target_field: Optional[str] = None,
) -> PRDDocument:
    logger.info("[prd] editing '%s' (target_field=%s)", current.title, target_field)
    prompt = build_edit_prompt(current, instruction, target_field)
    text = await llm.chat(PRD_EDIT_SYSTEM_PROMPT, prompt, mode=ResponseMode.JSON)
    returned = decode_json_object(text)
    document = validate_prd_payload(merge_prd_payload(current, returned))
    changed = sorted({_PAYLOAD_KEYS[k] for k, v in returned.items() if k in _PAYLOAD_KEYS and v is not None})
    logger.info("[prd] edit applied to fields: %s", ", ".join(changed) or "none")
    return document

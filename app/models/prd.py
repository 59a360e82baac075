"""
PRD data models for the AI PRD Studio.

``PRDDocument`` is the typed structure the model is asked to produce and the
shape returned by the API. ``PRDRecord`` is the stored row: list/object fields
are kept as serialized JSON text and decoded on read with a per-field
fallback so corrupted rows never break a read path.
"""

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class DiagramKind(str, Enum):
    """The four Mermaid visualizations derived from a PRD."""
    ARCHITECTURE = "architecture"
    JOURNEY = "journey"
    FEATURES = "features"
    DATAFLOW = "dataflow"


class DiagramStatus(str, Enum):
    """Per-kind generation state: pending -> generated -> valid | invalid."""
    PENDING = "pending"
    GENERATED = "generated"
    VALID = "valid"
    INVALID = "invalid"


DIAGRAM_FIELDS: Dict[DiagramKind, str] = {
    DiagramKind.ARCHITECTURE: "mermaid_architecture",
    DiagramKind.JOURNEY: "mermaid_journey",
    DiagramKind.FEATURES: "mermaid_features",
    DiagramKind.DATAFLOW: "mermaid_dataflow",
}

PRIORITIES = ("high", "medium", "low")
DIFFICULTIES = ("easy", "medium", "hard")


def _coerce_str_list(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [v] if v.strip() else []
    if not isinstance(v, (list, tuple)):
        return []
    return [str(item) for item in v if item is not None and str(item).strip()]


def _clamp_score(v: Any) -> int:
    try:
        score = int(round(float(v)))
    except (TypeError, ValueError, OverflowError):
        return 3
    return max(1, min(5, score))


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either casing."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TargetUsers(CamelModel):
    primary: List[str] = Field(default_factory=list)
    secondary: List[str] = Field(default_factory=list)

    @field_validator("primary", "secondary", mode="before")
    def coerce_lists(cls, v):
        return _coerce_str_list(v)


class Feature(CamelModel):
    """A single PRD feature."""
    id: str = ""
    name: str = Field(..., min_length=1)
    description: str = ""
    priority: str = "medium"
    effort: int = 3
    value: int = 3
    acceptance_criteria: List[str] = Field(default_factory=list)

    @field_validator("id", "description", mode="before")
    def coerce_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("priority", mode="before")
    def normalize_priority(cls, v):
        p = str(v or "").strip().lower()
        return p if p in PRIORITIES else "medium"

    @field_validator("effort", "value", mode="before")
    def clamp_scores(cls, v):
        return _clamp_score(v)

    @field_validator("acceptance_criteria", mode="before")
    def coerce_criteria(cls, v):
        return _coerce_str_list(v)


class TechFeasibility(CamelModel):
    overall: str = "medium"
    challenges: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @field_validator("overall", mode="before")
    def normalize_overall(cls, v):
        o = str(v or "").strip().lower()
        return o if o in DIFFICULTIES else "medium"

    @field_validator("challenges", "recommendations", mode="before")
    def coerce_lists(cls, v):
        return _coerce_str_list(v)


class Competitor(CamelModel):
    name: str = Field(..., min_length=1)
    features: List[str] = Field(default_factory=list)
    differences: str = ""

    @field_validator("features", mode="before")
    def coerce_features(cls, v):
        return _coerce_str_list(v)

    @field_validator("differences", mode="before")
    def coerce_differences(cls, v):
        return "" if v is None else str(v)


class PRDDocument(CamelModel):
    """Structured PRD content as produced by the model."""
    title: str
    description: str
    background: Optional[str] = None
    target_users: TargetUsers = Field(default_factory=TargetUsers)
    pain_points: List[str] = Field(default_factory=list)
    core_value: List[str] = Field(default_factory=list)
    features: List[Feature] = Field(default_factory=list)
    success_metrics: List[str] = Field(default_factory=list)
    tech_feasibility: Optional[TechFeasibility] = None
    competitors: List[Competitor] = Field(default_factory=list)

    @field_validator("target_users", mode="before")
    def default_target_users(cls, v):
        return v if isinstance(v, (dict, TargetUsers)) else {}

    @field_validator("pain_points", "core_value", "success_metrics", mode="before")
    def coerce_lists(cls, v):
        return _coerce_str_list(v)

    @field_validator("competitors", mode="before")
    def coerce_competitors(cls, v):
        return v if isinstance(v, list) else []

    @field_validator("features", mode="after")
    def assign_feature_ids(cls, v):
        for index, feature in enumerate(v, start=1):
            if not feature.id:
                feature.id = f"feature_{index}"
        return v

    def to_payload(self) -> Dict[str, Any]:
        """Camel-cased dict, as sent to the client and embedded in prompts."""
        return self.model_dump(by_alias=True, mode="json")


PRD_PAYLOAD_KEYS = tuple(
    field.alias or name for name, field in PRDDocument.model_fields.items()
)


# Decoders for the serialized columns, each with the default used on corruption.
_SERIALIZED_FIELDS: Dict[str, Any] = {
    "target_users": (TypeAdapter(TargetUsers), TargetUsers),
    "pain_points": (TypeAdapter(List[str]), list),
    "core_value": (TypeAdapter(List[str]), list),
    "features": (TypeAdapter(List[Feature]), list),
    "success_metrics": (TypeAdapter(List[str]), list),
    "tech_feasibility": (TypeAdapter(Optional[TechFeasibility]), lambda: None),
    "competitors": (TypeAdapter(List[Competitor]), list),
}


def safe_json_loads(text: Optional[str], default: Any) -> Any:
    """Parse JSON text, returning ``default`` for empty or malformed input."""
    if not text:
        return default
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return default


def _load_serialized(field_name: str, text: Optional[str]) -> Any:
    adapter, default_factory = _SERIALIZED_FIELDS[field_name]
    raw = safe_json_loads(text, None)
    if raw is None:
        return default_factory()
    try:
        return adapter.validate_python(raw)
    except PydanticValidationError:
        logger.warning("Stored PRD field %s is malformed; using default", field_name)
        return default_factory()


def _dump_serialized(value: Any) -> str:
    if isinstance(value, BaseModel):
        return json.dumps(value.model_dump(by_alias=True, mode="json"), ensure_ascii=False)
    if isinstance(value, list):
        return json.dumps(
            [v.model_dump(by_alias=True, mode="json") if isinstance(v, BaseModel) else v for v in value],
            ensure_ascii=False,
        )
    return json.dumps(value, ensure_ascii=False)


class PRDRecord(BaseModel):
    """PRD row as stored in the database."""
    id: str = Field(alias="_id")
    session_id: str
    title: str
    description: str
    background: Optional[str] = None
    target_users: str = "{}"
    pain_points: Optional[str] = None
    core_value: Optional[str] = None
    features: str = "[]"
    success_metrics: Optional[str] = None
    tech_feasibility: Optional[str] = None
    competitors: Optional[str] = None

    mermaid_architecture: Optional[str] = None
    mermaid_journey: Optional[str] = None
    mermaid_features: Optional[str] = None
    mermaid_dataflow: Optional[str] = None
    diagram_status: Optional[str] = None

    is_final: bool = False
    final_content: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True

    @staticmethod
    def serialize_document(document: PRDDocument) -> Dict[str, Any]:
        """Column values for the content part of a PRD."""
        columns: Dict[str, Any] = {
            "title": document.title,
            "description": document.description,
            "background": document.background,
        }
        for field_name in _SERIALIZED_FIELDS:
            columns[field_name] = _dump_serialized(getattr(document, field_name))
        return columns

    def to_document(self) -> PRDDocument:
        """Decode the stored columns; malformed fields degrade to their defaults."""
        values = {
            field_name: _load_serialized(field_name, getattr(self, field_name))
            for field_name in _SERIALIZED_FIELDS
        }
        return PRDDocument(
            title=self.title,
            description=self.description,
            background=self.background,
            **values,
        )

    def get_diagrams(self) -> Dict[DiagramKind, Optional[str]]:
        return {kind: getattr(self, column) for kind, column in DIAGRAM_FIELDS.items()}

    def get_diagram_status(self) -> Dict[str, Any]:
        status = safe_json_loads(self.diagram_status, {})
        return status if isinstance(status, dict) else {}

    def to_response(self) -> Dict[str, Any]:
        """API representation: decoded content plus diagram and finalization state."""
        payload = self.to_document().to_payload()
        payload.update({
            "id": self.id,
            "sessionId": self.session_id,
            "mermaidArchitecture": self.mermaid_architecture,
            "mermaidJourney": self.mermaid_journey,
            "mermaidFeatures": self.mermaid_features,
            "mermaidDataflow": self.mermaid_dataflow,
            "diagramStatus": self.get_diagram_status(),
            "isFinal": self.is_final,
            "finalContent": self.final_content,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        })
        return payload

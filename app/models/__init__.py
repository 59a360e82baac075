"""Models package."""

from .session import Session, Message, SessionStep
from .prd import (
    PRDDocument, PRDRecord, Feature, TargetUsers, TechFeasibility, Competitor,
    DiagramKind, DiagramStatus, DIAGRAM_FIELDS
)
from .analytics import AnalyticsEvent, DailyStats

__all__ = [
    "Session", "Message", "SessionStep",
    "PRDDocument", "PRDRecord", "Feature", "TargetUsers", "TechFeasibility", "Competitor",
    "DiagramKind", "DiagramStatus", "DIAGRAM_FIELDS",
    "AnalyticsEvent", "DailyStats"
]

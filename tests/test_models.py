import json

from app.models.analytics import DailyStats
from app.models.prd import DiagramKind, PRDDocument, PRDRecord
from app.models.session import Session


def _record(document: PRDDocument, **overrides) -> PRDRecord:
    return PRDRecord(_id="prd-1", session_id="session-1", **PRDRecord.serialize_document(document), **overrides)


def test_serialized_columns_round_trip(meeting_document):
    record = _record(meeting_document)
    assert json.loads(record.features)[0]["acceptanceCriteria"] == ["Accepts mp3 and mp4", "Shows upload progress"]
    assert record.to_document() == meeting_document


def test_corrupted_columns_fall_back_per_field(meeting_document):
    record = _record(meeting_document)
    record.features = "{not json"
    record.pain_points = json.dumps({"unexpected": "shape"})
    record.tech_feasibility = None

    document = record.to_document()
    assert document.features == []
    assert document.pain_points == []
    assert document.tech_feasibility is None
    assert document.core_value == meeting_document.core_value
    assert document.title == "MeetMind"


def test_record_response_shape(meeting_document):
    record = _record(
        meeting_document,
        mermaid_architecture="graph TD\n    A --> B",
        diagram_status=json.dumps({"architecture": {"status": "valid", "attempts": 1, "error": None}}),
    )
    response = record.to_response()

    assert response["sessionId"] == "session-1"
    assert response["targetUsers"]["primary"] == ["Project managers"]
    assert response["mermaidArchitecture"] == "graph TD\n    A --> B"
    assert response["mermaidJourney"] is None
    assert response["diagramStatus"]["architecture"]["status"] == "valid"
    assert response["isFinal"] is False
    assert response["finalContent"] is None


def test_diagram_status_tolerates_bad_json(meeting_document):
    record = _record(meeting_document, diagram_status="[1, 2")
    assert record.get_diagram_status() == {}


def test_get_diagrams_maps_every_kind(meeting_document):
    record = _record(meeting_document, mermaid_dataflow="graph TD\n    A --> B")
    diagrams = record.get_diagrams()
    assert set(diagrams) == set(DiagramKind)
    assert diagrams[DiagramKind.DATAFLOW] == "graph TD\n    A --> B"
    assert diagrams[DiagramKind.JOURNEY] is None


def test_document_accepts_snake_case_keys():
    document = PRDDocument.model_validate({
        "title": "T",
        "description": "D",
        "pain_points": "Single pain point",
        "features": [{"name": "F", "acceptance_criteria": None}],
        "target_users": "not an object",
    })
    assert document.pain_points == ["Single pain point"]
    assert document.features[0].acceptance_criteria == []
    assert document.target_users.primary == []


def test_daily_stats_success_rate():
    assert DailyStats(date="2026-01-01").success_rate == 0.0
    stats = DailyStats(date="2026-01-01", prd_total=3, prd_success=2, visitors=["a", "b"], total_visits=5)
    response = stats.to_response()
    assert response["successRate"] == 66.67
    assert response["uniqueUsers"] == 2
    assert response["totalVisits"] == 5
    assert response["prdGenerated"] == 3


def test_session_response_uses_camel_case():
    session = Session(_id="session-1", title="MeetMind", current_step=2)
    response = session.to_response()
    assert response["id"] == "session-1"
    assert response["currentStep"] == 2
    assert "createdAt" in response

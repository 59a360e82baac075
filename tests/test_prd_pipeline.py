import json

import pytest

from app.agent.prd import (
    decode_json_object,
    edit_prd,
    generate_prd,
    merge_prd_payload,
    validate_prd_payload,
)
from app.core.exceptions import IncompleteDocument, MalformedResponse
from app.services.ai_service import ResponseMode


def test_decode_strict_json():
    assert decode_json_object('{"title": "X"}') == {"title": "X"}


def test_decode_falls_back_to_embedded_object():
    text = 'Sure! Here is the PRD:\n```json\n{"title": "X", "features": [{"name": "a"}]}\n```\nEnjoy.'
    assert decode_json_object(text) == {"title": "X", "features": [{"name": "a"}]}


def test_decode_rejects_text_without_object():
    with pytest.raises(MalformedResponse):
        decode_json_object("I cannot help with that.")


def test_decode_rejects_broken_span():
    with pytest.raises(MalformedResponse):
        decode_json_object('prefix {"title": "X", } suffix')


def test_decode_rejects_non_object_json():
    with pytest.raises(MalformedResponse):
        decode_json_object('[{"title": "X"}]')


def test_validate_reports_missing_fields(meeting_prd):
    del meeting_prd["title"]
    meeting_prd["features"] = []
    with pytest.raises(IncompleteDocument) as exc_info:
        validate_prd_payload(meeting_prd)
    assert exc_info.value.details == {"missing": ["title", "features"]}
    assert "title" in exc_info.value.message


def test_validate_rejects_blank_description(meeting_prd):
    meeting_prd["description"] = "   "
    with pytest.raises(IncompleteDocument):
        validate_prd_payload(meeting_prd)


def test_validate_normalizes_feature_values(meeting_prd):
    meeting_prd["features"] = [
        {"name": "Search", "priority": "URGENT", "effort": 9, "value": "0"},
        {"name": "Export", "priority": "Low", "effort": 2.6},
    ]
    document = validate_prd_payload(meeting_prd)
    search, export = document.features
    assert (search.id, search.priority, search.effort, search.value) == ("feature_1", "medium", 5, 1)
    assert (export.id, export.priority, export.effort, export.value) == ("feature_2", "low", 3, 3)


def test_validate_defaults_non_finite_scores(meeting_prd):
    meeting_prd["features"] = [
        {"name": "Search", "effort": float("inf"), "value": 1e400},
        {"name": "Export", "effort": "-Infinity", "value": float("nan")},
    ]
    document = validate_prd_payload(meeting_prd)
    assert [(f.effort, f.value) for f in document.features] == [(3, 3), (3, 3)]


def test_decode_accepts_infinity_literal_in_scores(meeting_prd):
    meeting_prd["features"] = [{"name": "Search", "effort": 2}]
    raw = json.dumps(meeting_prd).replace('"effort": 2', '"effort": Infinity')
    document = validate_prd_payload(decode_json_object(raw))
    assert document.features[0].effort == 3


def test_validate_rejects_feature_without_name(meeting_prd):
    meeting_prd["features"] = [{"description": "nameless"}]
    with pytest.raises(IncompleteDocument):
        validate_prd_payload(meeting_prd)


def test_merge_only_overwrites_returned_non_null_keys(meeting_document):
    merged = merge_prd_payload(meeting_document, {
        "title": "MeetMind Pro",
        "features": None,
        "pain_points": ["Meetings run long"],
        "unknownKey": "ignored",
    })
    assert merged["title"] == "MeetMind Pro"
    assert merged["painPoints"] == ["Meetings run long"]
    assert len(merged["features"]) == 3
    assert merged["description"] == meeting_document.description
    assert "unknownKey" not in merged


@pytest.mark.asyncio
async def test_generate_prd_uses_json_mode(fake_llm, meeting_prd):
    llm = fake_llm.queue(json.dumps(meeting_prd))
    document = await generate_prd(llm, "An app that summarizes meetings")

    assert document.title == "MeetMind"
    assert len(llm.calls) == 1
    assert llm.calls[0]["mode"] == ResponseMode.JSON
    assert "An app that summarizes meetings" in llm.calls[0]["user"]


@pytest.mark.asyncio
async def test_generate_prd_propagates_incomplete_document(fake_llm, meeting_prd):
    meeting_prd["features"] = []
    llm = fake_llm.queue(json.dumps(meeting_prd))
    with pytest.raises(IncompleteDocument):
        await generate_prd(llm, "An app that summarizes meetings")


@pytest.mark.asyncio
async def test_edit_prd_keeps_fields_the_model_omitted(fake_llm, meeting_document):
    llm = fake_llm.queue('{"title": "MeetMind Teams", "techFeasibility": null}')
    document = await edit_prd(llm, meeting_document, "Rename it for teams", target_field="title")

    assert document.title == "MeetMind Teams"
    assert [f.name for f in document.features] == [f.name for f in meeting_document.features]
    assert document.tech_feasibility == meeting_document.tech_feasibility
    prompt = llm.calls[0]["user"]
    assert "Rename it for teams" in prompt
    assert "The user wants to change the field: title" in prompt
    assert '"title": "MeetMind"' in prompt


@pytest.mark.asyncio
async def test_edit_prd_validates_the_merged_document(fake_llm, meeting_document):
    llm = fake_llm.queue('{"features": []}')
    with pytest.raises(IncompleteDocument):
        await edit_prd(llm, meeting_document, "Remove every feature")

import pytest

from app.agent.finalize import count_diagrams, finalize_prd, stream_finalize
from app.agent.prompts import build_finalize_prompt
from app.models.prd import DiagramKind
from app.services.ai_service import ResponseMode, collect_stream

FLOWCHART = "graph TD\n    A[User] --> B[Web app]"


def test_finalize_prompt_embeds_diagrams_and_placeholders(meeting_document):
    prompt = build_finalize_prompt(meeting_document, {
        DiagramKind.ARCHITECTURE: FLOWCHART,
        DiagramKind.JOURNEY: None,
        DiagramKind.FEATURES: "",
        DiagramKind.DATAFLOW: None,
    })

    assert f"```mermaid\n{FLOWCHART}\n```" in prompt
    assert "```mermaid\n%% no journey diagram\n```" in prompt
    assert "%% no features diagram" in prompt
    assert "%% no dataflow diagram" in prompt
    assert prompt.count("```mermaid") == 4


def test_finalize_prompt_lists_every_feature(meeting_document):
    prompt = build_finalize_prompt(meeting_document, {})
    for feature in meeting_document.features:
        assert feature.name in prompt
    assert "Otter" in prompt
    assert "Use a hosted speech-to-text API" in prompt


def test_count_diagrams_ignores_missing_codes():
    assert count_diagrams({
        DiagramKind.ARCHITECTURE: FLOWCHART,
        DiagramKind.JOURNEY: "",
        DiagramKind.FEATURES: None,
        DiagramKind.DATAFLOW: FLOWCHART,
    }) == 2


@pytest.mark.asyncio
async def test_finalize_prd_makes_one_text_call(fake_llm, meeting_document):
    fake_llm.queue("# MeetMind\n\nFull document")
    markdown = await finalize_prd(fake_llm, meeting_document, {DiagramKind.ARCHITECTURE: FLOWCHART})

    assert markdown == "# MeetMind\n\nFull document"
    assert len(fake_llm.calls) == 1
    assert fake_llm.calls[0]["mode"] == ResponseMode.TEXT


@pytest.mark.asyncio
async def test_stream_finalize_yields_until_sentinel(fake_llm, meeting_document):
    fake_llm.stream_chunks = ["# Meet", "Mind\n", "Body"]
    text = await collect_stream(stream_finalize(fake_llm, meeting_document, {}))
    assert text == "# MeetMind\nBody"

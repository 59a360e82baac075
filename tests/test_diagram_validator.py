import pytest

from app.core.config import settings
from app.services.diagram_validator import MermaidSyntaxError, MermaidValidator, parse_mermaid


@pytest.fixture
def validator():
    config = settings.model_copy(update={"MERMAID_CLI_PATH": None, "MERMAID_CLI_ENABLED": False})
    return MermaidValidator(config)


@pytest.mark.parametrize("source, expected", [
    ("graph TD\n    A[User] --> B[Web app]\n    B --> C[(Database)]", "graph"),
    ("flowchart LR\n    A -->|submit| B{Valid?}\n    B -->|yes| C([Done])", "flowchart"),
    ("graph TD;A-->B;B-->C", "graph"),
    ("%% generated\ngraph LR\n    A>Flag] --> B[\"Quoted (label)\"]", "graph"),
    ("journey\n    title User flow\n    section Sign up\n      Visit site: 4: User\n      Create account: 3: User, Admin", "journey"),
    ("sequenceDiagram\n    Alice->>Bob: Hi", "sequenceDiagram"),
    ("---\ntitle: Demo\n---\ngraph TD\n    A --> B", "graph"),
])
def test_parse_accepts_well_formed_sources(source, expected):
    assert parse_mermaid(source) == expected


@pytest.mark.parametrize("source, fragment", [
    ("", "empty"),
    ("   \n  ", "empty"),
    ("%% only a comment", "no statements"),
    ("diagram TD\n    A --> B", "Unknown diagram type"),
    ("graph XY\n    A --> B", "direction"),
    ("graph TD", "no nodes"),
    ("graph TD\n    A[User --> B", "unclosed"),
    ("graph TD\n    A[User]] --> B", "unexpected"),
    ("graph TD\n    A[\"open label] --> B", "unterminated"),
    ("journey\n    title Flow\n    section Start", "no tasks"),
    ("journey\n    title Flow\n    Upload without score", "journey task"),
    ("pie", "no statements"),
    ("---\ntitle: Demo\ngraph TD\n    A --> B", "front-matter"),
])
def test_parse_rejects_malformed_sources(source, fragment):
    with pytest.raises(MermaidSyntaxError) as exc_info:
        parse_mermaid(source)
    assert fragment in str(exc_info.value)


@pytest.mark.asyncio
async def test_validate_reports_instead_of_raising(validator):
    result = await validator.validate("graph TD\n    A[User --> B")
    assert result.valid is False
    assert "unclosed" in result.error


@pytest.mark.asyncio
async def test_validate_accepts_valid_source(validator):
    result = await validator.validate("graph TD\n    A --> B")
    assert result.valid is True
    assert result.error is None


@pytest.mark.asyncio
async def test_validate_handles_none(validator):
    result = await validator.validate(None)
    assert result.valid is False


def test_cli_is_disabled_without_configuration(validator):
    assert validator.cli_path is None


@pytest.mark.asyncio
async def test_cli_failure_is_reported_as_invalid(validator, monkeypatch):
    async def failing_render(source):
        raise OSError("mmdc crashed")

    validator.cli_path = "/usr/bin/mmdc"
    monkeypatch.setattr(validator, "_render_with_cli", failing_render)
    result = await validator.validate("graph TD\n    A --> B")
    assert result.valid is False
    assert "mmdc crashed" in result.error

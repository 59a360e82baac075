import io

import fitz
import pytest
from docx import Document

from app.core.exceptions import RenderError, ValidationError
from app.services.export_service import EXPORT_FORMATS, build_export_filename, markdown_to_html

FINAL_MARKDOWN = """# MeetMind PRD

## 1. Document info

- **Version**: 1.0
- Owner: `product team`

## 2. Feature planning

1. Recording upload
2. Summary generation

| Feature | Priority |
|---------|----------|
| Upload  | high     |
| Summary | high     |

```mermaid
graph TD
    A[User] --> B[Web app]
```

> Risks are reviewed weekly.
"""


@pytest.mark.parametrize("title, fmt, expected", [
    ("MeetMind", "pdf", "MeetMind_PRD.pdf"),
    ("Meet Mind: v2!", "docx", "Meet_Mind__v2__PRD.docx"),
    ("会议纪要助手", "md", "会议纪要助手_PRD.md"),
    ("", "md", "PRD_PRD.md"),
])
def test_build_export_filename(title, fmt, expected):
    assert build_export_filename(title, fmt) == expected


def test_markdown_to_html_renders_tables_and_fences():
    html = markdown_to_html(FINAL_MARKDOWN)
    assert "<table>" in html
    assert "<code" in html
    assert "<h1>MeetMind PRD</h1>" in html


def test_render_markdown_is_utf8(exporter):
    content, media_type, filename = exporter.render("# 会议纪要\n\nBody", "md", "会议纪要")
    assert content == "# 会议纪要\n\nBody".encode("utf-8")
    assert media_type == EXPORT_FORMATS["md"]
    assert filename == "会议纪要_PRD.md"


def test_render_pdf(exporter):
    content, media_type, filename = exporter.render(FINAL_MARKDOWN, "pdf", "MeetMind")
    assert content.startswith(b"%PDF")
    assert media_type == "application/pdf"
    assert filename == "MeetMind_PRD.pdf"


def test_render_docx_structure(exporter):
    content, media_type, _ = exporter.render(FINAL_MARKDOWN, "docx", "MeetMind")
    assert content.startswith(b"PK")
    assert media_type == EXPORT_FORMATS["docx"]

    document = Document(io.BytesIO(content))
    assert document.core_properties.title == "MeetMind"
    headings = [p.text for p in document.paragraphs if p.style.name.startswith("Heading")]
    assert headings == ["MeetMind PRD", "1. Document info", "2. Feature planning"]
    bullets = [p for p in document.paragraphs if p.style.name == "List Bullet"]
    assert bullets[0].text == "Version: 1.0"
    assert bullets[0].runs[0].bold
    assert [p.text for p in document.paragraphs if p.style.name == "List Number"] == [
        "Recording upload", "Summary generation",
    ]
    assert any("A[User] --> B[Web app]" in p.text for p in document.paragraphs)

    table = document.tables[0]
    assert len(table.rows) == 3
    assert table.cell(1, 0).text == "Upload"


def test_render_rejects_unknown_format(exporter):
    with pytest.raises(ValidationError) as exc_info:
        exporter.render("# Doc", "html", "Doc")
    assert exc_info.value.status_code == 400


def test_renderer_failure_becomes_render_error(exporter, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("font missing")

    monkeypatch.setattr(fitz, "Story", broken)
    with pytest.raises(RenderError) as exc_info:
        exporter.render("# Doc", "pdf", "Doc")
    assert "font missing" in exc_info.value.message

"""
Export renderers for the finalized PRD: Markdown, PDF and DOCX.

PDF goes Markdown -> HTML (python-markdown) -> PyMuPDF Story laid out on A4.
DOCX is built with python-docx from a line-based walk of the Markdown.
"""

import io
import logging
import re
from typing import List, Optional, Tuple

import fitz  # PyMuPDF
import markdown
from docx import Document
from docx.shared import Pt

from app.core.exceptions import RenderError, ValidationError

logger = logging.getLogger(__name__)


EXPORT_FORMATS = {
    "md": "text/markdown; charset=utf-8",
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

PDF_CSS = """
body { font-family: sans-serif; font-size: 11pt; line-height: 1.4; }
h1 { font-size: 20pt; margin-bottom: 8pt; }
h2 { font-size: 16pt; margin-top: 12pt; }
h3 { font-size: 13pt; margin-top: 10pt; }
pre, code { font-family: monospace; font-size: 9pt; background-color: #f4f4f4; }
table { border-collapse: collapse; }
th, td { border: 1px solid #999; padding: 3pt; }
"""

PAGE_MARGIN = 54  # points, 0.75in

_FILENAME_UNSAFE_RE = re.compile(r"[^A-Za-z0-9\u4e00-\u9fa5]")
_INLINE_RE = re.compile(r"(\*\*[^*]+\*\*|__[^_]+__|`[^`]+`|\*[^*\s][^*]*\*)")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.*)$")
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+(.*)$")
_TABLE_SEPARATOR_RE = re.compile(r"^\s*\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?\s*$")


def build_export_filename(title: str, fmt: str) -> str:
    """Letters, digits and CJK kept; everything else becomes ``_``."""
    safe = _FILENAME_UNSAFE_RE.sub("_", title or "") or "PRD"
    return f"{safe}_PRD.{fmt}"


def markdown_to_html(markdown_text: str) -> str:
    return markdown.markdown(markdown_text, extensions=["fenced_code", "tables"])


def markdown_to_pdf(markdown_text: str) -> bytes:
    html = markdown_to_html(markdown_text)
    story = fitz.Story(html=html, user_css=PDF_CSS)
    buffer = io.BytesIO()
    writer = fitz.DocumentWriter(buffer)
    mediabox = fitz.paper_rect("a4")
    where = mediabox + (PAGE_MARGIN, PAGE_MARGIN, -PAGE_MARGIN, -PAGE_MARGIN)

    more = 1
    while more:
        device = writer.begin_page(mediabox)
        more, _ = story.place(where)
        story.draw(device)
        writer.end_page()
    writer.close()
    return buffer.getvalue()


def _add_inline_runs(paragraph, text: str) -> None:
    """Bold, italic and code spans become formatted runs."""
    for part in _INLINE_RE.split(text):
        if not part:
            continue
        if (part.startswith("**") and part.endswith("**")) or (part.startswith("__") and part.endswith("__")):
            paragraph.add_run(part[2:-2]).bold = True
        elif part.startswith("`") and part.endswith("`"):
            run = paragraph.add_run(part[1:-1])
            run.font.name = "Courier New"
        elif part.startswith("*") and part.endswith("*") and len(part) > 2:
            paragraph.add_run(part[1:-1]).italic = True
        else:
            paragraph.add_run(part)


def _split_table_row(line: str) -> List[str]:
    return [cell.strip() for cell in line.strip().strip("|").split("|")]


def _add_table(document, rows: List[List[str]]) -> None:
    columns = max(len(row) for row in rows)
    table = document.add_table(rows=len(rows), cols=columns)
    table.style = "Table Grid"
    for r, row in enumerate(rows):
        for c in range(columns):
            cell = table.cell(r, c)
            cell.text = ""
            _add_inline_runs(cell.paragraphs[0], row[c] if c < len(row) else "")
            if r == 0:
                for run in cell.paragraphs[0].runs:
                    run.bold = True


def _add_code_block(document, lines: List[str]) -> None:
    paragraph = document.add_paragraph()
    run = paragraph.add_run("\n".join(lines))
    run.font.name = "Courier New"
    run.font.size = Pt(9)


def markdown_to_docx(markdown_text: str, title: Optional[str] = None) -> bytes:
    document = Document()
    if title:
        document.core_properties.title = title

    lines = markdown_text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i]
        stripped = line.strip()

        if stripped.startswith("```"):
            code: List[str] = []
            i += 1
            while i < len(lines) and not lines[i].strip().startswith("```"):
                code.append(lines[i])
                i += 1
            _add_code_block(document, code)
            i += 1
            continue

        if stripped.startswith("|"):
            rows: List[List[str]] = []
            while i < len(lines) and lines[i].strip().startswith("|"):
                if not _TABLE_SEPARATOR_RE.match(lines[i]):
                    rows.append(_split_table_row(lines[i]))
                i += 1
            if rows:
                _add_table(document, rows)
            continue

        i += 1
        if not stripped or re.fullmatch(r"[-*_]{3,}", stripped):
            continue

        heading = _HEADING_RE.match(stripped)
        if heading:
            document.add_heading(heading.group(2).strip(), level=min(len(heading.group(1)), 4))
            continue

        bullet = _BULLET_RE.match(line)
        if bullet:
            _add_inline_runs(document.add_paragraph(style="List Bullet"), bullet.group(1))
            continue

        numbered = _NUMBERED_RE.match(line)
        if numbered:
            _add_inline_runs(document.add_paragraph(style="List Number"), numbered.group(1))
            continue

        if stripped.startswith(">"):
            _add_inline_runs(document.add_paragraph(style="Quote"), stripped.lstrip("> "))
            continue

        _add_inline_runs(document.add_paragraph(), stripped)

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class ExportService:
    """Renders finalized Markdown into a downloadable file."""

    def render(self, markdown_text: str, fmt: str, title: str) -> Tuple[bytes, str, str]:
        """Return ``(content, media_type, filename)``."""
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format: {fmt}", details={"allowed": list(EXPORT_FORMATS)})

        filename = build_export_filename(title, fmt)
        if fmt == "md":
            return markdown_text.encode("utf-8"), EXPORT_FORMATS[fmt], filename

        try:
            if fmt == "pdf":
                content = markdown_to_pdf(markdown_text)
            else:
                content = markdown_to_docx(markdown_text, title)
        except Exception as e:
            logger.error(f"Failed to render {fmt} export: {e}")
            raise RenderError(f"Failed to render {fmt.upper()} export: {e}") from e

        logger.info(f"Rendered {fmt} export {filename} ({len(content)} bytes)")
        return content, EXPORT_FORMATS[fmt], filename


export_service = ExportService()

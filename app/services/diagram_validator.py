"""
Mermaid diagram validation.

A structural parse always runs; when the Mermaid CLI (``mmdc``) is configured
the source is additionally rendered from a throwaway temp file. Any failure is
reported as ``valid=False`` with a message, never raised.
"""

import asyncio
import logging
import os
import re
import shutil
import tempfile
import uuid
from typing import List, Optional

import aiofiles
from pydantic import BaseModel

from app.core.config import Settings, settings

logger = logging.getLogger(__name__)


DIAGRAM_DECLARATIONS = {
    "graph", "flowchart", "journey", "sequenceDiagram", "classDiagram", "classDiagram-v2",
    "stateDiagram", "stateDiagram-v2", "erDiagram", "gantt", "pie", "mindmap", "timeline",
    "gitGraph", "quadrantChart", "requirementDiagram", "C4Context", "C4Container",
    "C4Component", "C4Dynamic", "C4Deployment", "sankey-beta", "xychart-beta", "block-beta",
}
FLOW_DIRECTIONS = {"TB", "TD", "BT", "RL", "LR"}
JOURNEY_KEYWORDS = ("title", "section", "accTitle", "accDescr")
JOURNEY_TASK_RE = re.compile(r"^[^:]+:\s*-?\d+\s*(:.*)?$")
BRACKET_PAIRS = {")": "(", "]": "[", "}": "{"}


class MermaidSyntaxError(Exception):
    """Raised by the structural parser."""
    pass


class ValidationResult(BaseModel):
    valid: bool
    error: Optional[str] = None


def _meaningful_lines(source: str) -> List[str]:
    """Strip comments, directives and a leading front-matter block."""
    lines = [line.rstrip() for line in source.splitlines()]
    if lines and lines[0].strip() == "---":
        try:
            end = next(i for i in range(1, len(lines)) if lines[i].strip() == "---")
            lines = lines[end + 1:]
        except StopIteration:
            raise MermaidSyntaxError("Unterminated front-matter block")
    return [line for line in lines if line.strip() and not line.strip().startswith("%%")]


def _check_brackets(line: str, line_no: int) -> None:
    stack: List[str] = []
    in_quotes = False
    prev = ""
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            if ch in "([{":
                stack.append(ch)
            elif ch in ")]}":
                expected = BRACKET_PAIRS[ch]
                if stack and stack[-1] == expected:
                    stack.pop()
                elif ch == "]" and stack and stack[-1] == ">":
                    stack.pop()
                else:
                    raise MermaidSyntaxError(f"Line {line_no}: unexpected '{ch}'")
            elif ch == ">" and not stack and (prev.isalnum() or prev == "_"):
                # asymmetric node shape: id>label]
                stack.append(">")
        prev = ch
    if in_quotes:
        raise MermaidSyntaxError(f"Line {line_no}: unterminated string")
    if stack:
        raise MermaidSyntaxError(f"Line {line_no}: unclosed '{stack[-1]}'")


def parse_mermaid(source: str) -> str:
    """Structurally parse a Mermaid source; returns the diagram type."""
    if not source or not source.strip():
        raise MermaidSyntaxError("Diagram source is empty")

    lines = _meaningful_lines(source)
    if not lines:
        raise MermaidSyntaxError("Diagram source has no statements")

    header = lines[0].strip()
    head_tokens = header.replace(";", " ").split()
    diagram_type = head_tokens[0]
    if diagram_type not in DIAGRAM_DECLARATIONS:
        raise MermaidSyntaxError(f"Unknown diagram type '{diagram_type}'")

    body = lines[1:]
    if diagram_type in ("graph", "flowchart"):
        if len(head_tokens) > 1 and head_tokens[1] in FLOW_DIRECTIONS:
            inline = header.split(";", 1)[1] if ";" in header else ""
        elif len(head_tokens) > 1 and ";" not in header:
            raise MermaidSyntaxError(f"Invalid flowchart direction '{head_tokens[1]}'")
        else:
            inline = header.split(";", 1)[1] if ";" in header else ""
        statements = [s for s in inline.split(";") if s.strip()] + body
        if not statements:
            raise MermaidSyntaxError("Flowchart has no nodes")
        for offset, line in enumerate(statements, start=2):
            _check_brackets(line, offset)
    elif diagram_type == "journey":
        tasks = 0
        for offset, line in enumerate(body, start=2):
            stripped = line.strip()
            if stripped.startswith(JOURNEY_KEYWORDS):
                continue
            if not JOURNEY_TASK_RE.match(stripped):
                raise MermaidSyntaxError(f"Line {offset}: journey task must be 'name: score: actors'")
            tasks += 1
        if tasks == 0:
            raise MermaidSyntaxError("Journey has no tasks")
    elif not body:
        raise MermaidSyntaxError(f"{diagram_type} has no statements")

    return diagram_type


class MermaidValidator:
    """Reports whether a Mermaid source parses, without keeping any output."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.cli_path = self._resolve_cli()

    def _resolve_cli(self) -> Optional[str]:
        if not (self.config.MERMAID_CLI_PATH or self.config.MERMAID_CLI_ENABLED):
            return None
        path = shutil.which(self.config.MERMAID_CLI_PATH or "mmdc")
        if path is None:
            logger.warning("Mermaid CLI requested but not found; using structural validation only")
        return path

    async def validate(self, source: str) -> ValidationResult:
        try:
            parse_mermaid(source)
        except Exception as e:
            return ValidationResult(valid=False, error=str(e))

        if self.cli_path:
            try:
                return await self._render_with_cli(source)
            except Exception as e:
                logger.warning("[diagram] Mermaid CLI validation error: %s", e)
                return ValidationResult(valid=False, error=f"Mermaid CLI failed: {e}")

        return ValidationResult(valid=True)

    async def _render_with_cli(self, source: str) -> ValidationResult:
        """Render under a throwaway id; only the exit status is kept."""
        workdir = tempfile.mkdtemp(prefix="mermaid-validate-")
        diagram_id = f"validation-{uuid.uuid4().hex[:8]}"
        input_path = os.path.join(workdir, f"{diagram_id}.mmd")
        output_path = os.path.join(workdir, f"{diagram_id}.svg")
        try:
            async with aiofiles.open(input_path, "w", encoding="utf-8") as f:
                await f.write(source)

            process = await asyncio.create_subprocess_exec(
                self.cli_path, "-i", input_path, "-o", output_path, "-q",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await asyncio.wait_for(
                    process.communicate(), timeout=self.config.MERMAID_CLI_TIMEOUT_SECONDS
                )
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                return ValidationResult(valid=False, error="Mermaid CLI timed out")

            if process.returncode != 0:
                detail = (stderr or b"").decode("utf-8", errors="replace").strip()
                return ValidationResult(valid=False, error=detail or f"mmdc exited with {process.returncode}")
            return ValidationResult(valid=True)
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

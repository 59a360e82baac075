from __future__ import annotations

import json
from typing import Dict, List, Optional

from app.models.prd import DiagramKind, PRDDocument


PRD_SYSTEM_PROMPT = (
    "You are an experienced AI product management advisor who turns vague product ideas "
    "into structured Product Requirements Documents (PRDs).\n"
    "Your responsibilities:\n"
    "1. Understand the product idea in depth\n"
    "2. Produce a structured, actionable PRD\n"
    "3. Assess technical feasibility\n"
    "4. Help prioritize features\n"
    "Output rules:\n"
    "- Always answer with a single JSON object\n"
    "- Stay professional, clear and actionable\n"
    "- Respect realistic development and resource constraints"
)

PRD_SCHEMA_EXAMPLE = """{
  "title": "Product name",
  "description": "One sentence describing the core value",
  "background": "Background, market opportunity and the problem solved",
  "targetUsers": {
    "primary": ["Primary persona: age, role, pain"],
    "secondary": ["Secondary persona"]
  },
  "painPoints": ["Pain point 1", "Pain point 2"],
  "coreValue": ["Value proposition 1", "Value proposition 2"],
  "features": [
    {
      "id": "feature_1",
      "name": "Feature name",
      "description": "Feature description",
      "priority": "high",
      "effort": 3,
      "value": 4,
      "acceptanceCriteria": ["Criterion 1", "Criterion 2"]
    }
  ],
  "successMetrics": ["Metric 1", "Metric 2"],
  "techFeasibility": {
    "overall": "medium",
    "challenges": ["Challenge 1"],
    "recommendations": ["Recommendation 1"]
  },
  "competitors": [
    {
      "name": "Competitor",
      "features": ["Key feature 1", "Key feature 2"],
      "differences": "How we differ"
    }
  ]
}"""


def build_generation_prompt(idea: str) -> str:
    return (
        "Write a complete PRD for the following product idea.\n\n"
        f"Product idea: {idea}\n\n"
        "Answer with JSON using exactly this structure:\n\n"
        f"{PRD_SCHEMA_EXAMPLE}\n\n"
        "Requirements:\n"
        "1. title: short and punchy, states the positioning\n"
        "2. description: one sentence on what the product is and whose problem it solves\n"
        "3. background: market context, user need and opportunity\n"
        "4. targetUsers: concrete personas with age, role, usage context and pain\n"
        "5. painPoints: 3-5 user pain points\n"
        "6. coreValue: 3-5 value propositions\n"
        "7. features: 6-10 core features\n"
        "   - priority: high/medium/low\n"
        "   - effort: 1-5 (development difficulty)\n"
        "   - value: 1-5 (user value)\n"
        "   - acceptanceCriteria: 2-3 testable criteria\n"
        "8. successMetrics: 3-5 measurable metrics\n"
        "9. techFeasibility: overall easy/medium/hard, 2-3 challenges, 2-3 recommendations\n"
        "10. competitors: 2-3 competitors with their key features and our differentiation\n\n"
        "Make sure the JSON is valid and can be parsed directly."
    )


PRD_EDIT_SYSTEM_PROMPT = (
    "You are a PRD editing assistant. Understand the user's change request and update "
    "exactly the matching fields of the PRD.\n"
    "Principles:\n"
    "1. Only change what the user explicitly asks for\n"
    "2. Leave every other field untouched\n"
    "3. Keep the edited content professional, accurate and complete\n"
    "JSON rules (strict):\n"
    "- The whole response is one valid JSON object\n"
    "- No text before or after the JSON\n"
    "- No Markdown code fences\n"
    "- Arrays and objects must be complete"
)


def build_edit_prompt(current: PRDDocument, instruction: str, target_field: Optional[str] = None) -> str:
    prompt = (
        "# Current PRD\n\n"
        f"{json.dumps(current.to_payload(), ensure_ascii=False, indent=2)}\n\n"
        "# Change request\n\n"
        f"{instruction}\n"
    )
    if target_field:
        prompt += (
            "\n# Target field\n\n"
            f"The user wants to change the field: {target_field}\n"
            "Only update that field and keep every other field exactly as it is.\n"
        )
    prompt += (
        "\n# Output\n\n"
        "Return the complete updated PRD as JSON:\n"
        "1. Only touch the relevant fields\n"
        "2. Keep the original structure and types\n"
        "3. Return valid JSON only, without explanations\n"
    )
    return prompt


DIAGRAM_SYSTEM_PROMPT = (
    "You are a system architect and product designer who draws clear, correct Mermaid diagrams.\n"
    "Diagram kinds:\n"
    "1. System architecture (graph TD): system components and tech stack\n"
    "2. User journey (journey): how a user moves through the product\n"
    "3. Feature modules (graph LR): modular structure of the features, never mindmap\n"
    "4. Data flow (graph TD): how data moves through the system\n"
    "Strict syntax rules:\n"
    "- Node ids are letters or short words: A, B, Node1\n"
    "- Labels go in brackets: A[Label], B(Rounded), C[(Database)]\n"
    "- Arrows: A --> B or A -->|label| B, with labels of 1-3 words\n"
    "- One node definition per line, labels of at most a few words\n"
    "- No HTML tags such as <br/> or <div>\n"
    "- No brackets or quotes inside labels\n"
    "Output only the Mermaid code, without explanations."
)

_SYNTAX_RULES = (
    "# Syntax constraints (the diagram will not render otherwise)\n\n"
    "- Every node definition on its own line\n"
    "- Short node labels, use numbering or abbreviations for long names\n"
    "- Arrow format: A --> B or A -->|data| B, with short arrow labels\n"
    "- No HTML tags (<br/>, <div> and similar)\n"
    "- No brackets or quotes inside label text\n"
)

_OUTPUT_RULES = "# Output\n\nReturn only the Mermaid code, nothing else.\n"


def _feature_lines(prd: PRDDocument, with_priority: bool = False, limit: Optional[int] = None) -> str:
    features = prd.features[:limit] if limit else prd.features
    if with_priority:
        return "\n".join(f"- **{f.name}** (priority: {f.priority}): {f.description}" for f in features)
    return "\n".join(f"- {f.name}: {f.description}" for f in features)


def _difficulty(prd: PRDDocument) -> str:
    return prd.tech_feasibility.overall if prd.tech_feasibility else "unknown"


def _architecture_prompt(prd: PRDDocument) -> str:
    return (
        "# Task\n\nDraw the system architecture of this product as a Mermaid graph TD diagram.\n\n"
        f"# PRD\n\n**Product**: {prd.title}\n**Description**: {prd.description}\n\n"
        f"**Core features**:\n{_feature_lines(prd)}\n\n"
        f"**Technical difficulty**: {_difficulty(prd)}\n\n"
        "# Requirements\n\n"
        "1. Use graph TD (top to bottom)\n"
        "2. Show the layers: frontend, backend API, data (database, cache), external services if needed\n"
        "3. Name a suggested technology for each layer\n"
        "4. Connect the components with arrows to show the data direction\n\n"
        f"{_SYNTAX_RULES}\n{_OUTPUT_RULES}\n"
        "Example:\n```mermaid\ngraph TD\n    A[User] --> B[Web app]\n    B --> C[API]\n"
        "    C --> D[(Database)]\n    C --> E[AI service]\n```\n"
    )


def _journey_prompt(prd: PRDDocument) -> str:
    secondary = ""
    if prd.target_users.secondary:
        secondary = f"- Secondary users: {', '.join(prd.target_users.secondary)}\n"
    pain_points = "\n".join(f"- {p}" for p in prd.pain_points) or "none"
    return (
        "# Task\n\nDraw the user journey of this product as a Mermaid journey diagram.\n\n"
        f"# PRD\n\n**Product**: {prd.title}\n**Description**: {prd.description}\n\n"
        f"**Target users**:\n- Primary users: {', '.join(prd.target_users.primary)}\n{secondary}\n"
        f"**Pain points**:\n{pain_points}\n\n"
        f"**Core features**:\n{_feature_lines(prd, limit=5)}\n\n"
        "# Requirements\n\n"
        "1. Use the journey syntax\n"
        "2. Show the complete flow of a typical user\n"
        "3. Include 4-6 key steps\n"
        "4. Give each step a satisfaction score from 0 to 5\n\n"
        "# Syntax constraints (the diagram will not render otherwise)\n\n"
        "- Every step on its own line\n"
        "- Step format: step name: score: actor\n"
        "- Short step and section names\n"
        "- No HTML tags and no special symbols\n\n"
        f"{_OUTPUT_RULES}\n"
        "Example:\n```mermaid\njourney\n    title User flow\n    section Sign up\n"
        "      Visit site: 4: User\n      Create account: 3: User\n    section Core\n"
        "      Use feature: 5: User\n```\n"
    )


def _features_prompt(prd: PRDDocument) -> str:
    return (
        "# Task\n\nDraw the feature modules of this product as a Mermaid graph LR diagram.\n\n"
        f"# PRD\n\n**Product**: {prd.title}\n**Description**: {prd.description}\n\n"
        f"**Features**:\n{_feature_lines(prd, with_priority=True)}\n\n"
        "# Requirements\n\n"
        "1. Use graph LR (left to right), never mindmap\n"
        "2. Show the modular structure of the features\n"
        "3. Group features by priority or by type\n"
        "4. Put high-priority features in prominent positions\n\n"
        f"{_SYNTAX_RULES}- Use numbered ids for features: F1[Feature 1] F2[Feature 2]\n\n{_OUTPUT_RULES}\n"
        "Example:\n```mermaid\ngraph LR\n    A[Product] --> B[Accounts]\n    A --> C[Core]\n"
        "    C --> C1[Feature A]\n    C --> C2[Feature B]\n```\n"
    )


def _dataflow_prompt(prd: PRDDocument) -> str:
    return (
        "# Task\n\nDraw how data flows through this product as a Mermaid graph TD diagram.\n\n"
        f"# PRD\n\n**Product**: {prd.title}\n**Description**: {prd.description}\n\n"
        f"**Core features**:\n{_feature_lines(prd)}\n\n"
        f"**Technical difficulty**: {_difficulty(prd)}\n\n"
        "# Requirements\n\n"
        "1. Use graph TD\n"
        "2. Show where user input enters, how it moves between components, how it is "
        "processed and where it is stored or displayed\n"
        "3. Mark the key data types\n"
        "4. Include validation, filtering and transformation steps\n\n"
        f"{_SYNTAX_RULES}\n{_OUTPUT_RULES}\n"
        "Example:\n```mermaid\ngraph TD\n    A[Input] -->|submit| B[Validate]\n"
        "    B -->|ok| C[Process]\n    B -->|fail| D[Error]\n    C -->|save| E[(Database)]\n```\n"
    )


_DIAGRAM_PROMPTS = {
    DiagramKind.ARCHITECTURE: _architecture_prompt,
    DiagramKind.JOURNEY: _journey_prompt,
    DiagramKind.FEATURES: _features_prompt,
    DiagramKind.DATAFLOW: _dataflow_prompt,
}

DIAGRAM_NAMES: Dict[DiagramKind, str] = {
    DiagramKind.ARCHITECTURE: "system architecture diagram",
    DiagramKind.JOURNEY: "user journey diagram",
    DiagramKind.FEATURES: "feature module diagram",
    DiagramKind.DATAFLOW: "data flow diagram",
}


def build_diagram_prompt(kind: DiagramKind, prd: PRDDocument) -> str:
    return _DIAGRAM_PROMPTS[kind](prd)


def build_diagram_edit_prompt(kind: DiagramKind, code: str, instruction: str) -> str:
    return (
        f"# Task\n\nThe user wants to change the {DIAGRAM_NAMES[kind]}. "
        "Modify the Mermaid code according to the instruction.\n\n"
        f"# Current diagram\n\n```\n{code}\n```\n\n"
        f"# Instruction\n\n{instruction}\n\n"
        "# Requirements\n\n"
        "1. Keep the Mermaid syntax valid\n"
        "2. No HTML tags such as <br/>\n"
        "3. Keep node labels short, without line breaks\n"
        "4. Return only the modified Mermaid code\n"
        "5. No explanations\n"
    )


FINALIZE_SYSTEM_PROMPT = (
    "You are a technical writer who merges a draft PRD and its diagrams into a complete, "
    "deliverable product requirements document.\n"
    "Your job:\n"
    "1. Integrate every part of the PRD\n"
    "2. Add technical detail: architecture, API design principles, data model concepts\n"
    "3. Add project planning: work breakdown and milestones\n"
    "4. Embed each Mermaid diagram inside its matching section, not at the end\n"
    "5. Produce the whole document as Markdown\n"
    "Constraints:\n"
    "- Standard Markdown with a clear heading hierarchy\n"
    "- Diagrams wrapped in ```mermaid blocks\n"
    "- No table of contents\n"
    "- No code implementation details, code samples or programming language syntax\n"
    "- Write for product managers and architects, not for developers"
)

_FINALIZE_SECTIONS = (
    (DiagramKind.ARCHITECTURE, "System architecture", "Technical solution"),
    (DiagramKind.JOURNEY, "User journey", "User analysis"),
    (DiagramKind.FEATURES, "Feature modules", "Feature planning"),
    (DiagramKind.DATAFLOW, "Data flow", "Technical solution"),
)


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items) or "none"


def diagram_placeholder(kind: DiagramKind) -> str:
    return f"%% no {kind.value} diagram"


def build_finalize_prompt(prd: PRDDocument, diagrams: Dict[DiagramKind, Optional[str]]) -> str:
    """Every PRD field in readable form plus the four diagrams as mermaid blocks."""
    lines = [
        "# Task",
        "",
        "Merge the following PRD into a complete deliverable Markdown document.",
        "",
        "# PRD",
        "",
        "## Basics",
        f"- **Title**: {prd.title}",
        f"- **Description**: {prd.description}",
    ]
    if prd.background:
        lines.append(f"- **Background**: {prd.background}")

    lines += ["", "## Target users", "**Primary users**:", _bullets(prd.target_users.primary)]
    if prd.target_users.secondary:
        lines += ["", "**Secondary users**:", _bullets(prd.target_users.secondary)]

    lines += ["", "## Pain points", _bullets(prd.pain_points)]
    lines += ["", "## Core value", _bullets(prd.core_value)]

    lines += ["", "## Features"]
    for f in prd.features:
        lines += [
            "",
            f"### {f.name} (priority: {f.priority}, effort: {f.effort}/5, value: {f.value}/5)",
            f.description,
            "",
            "**Acceptance criteria**:",
            _bullets(f.acceptance_criteria),
        ]

    lines += ["", "## Success metrics", _bullets(prd.success_metrics)]

    tech = prd.tech_feasibility
    lines += [
        "",
        "## Technical feasibility",
        f"**Overall**: {tech.overall if tech else 'unknown'}",
        "",
        "**Challenges**:",
        _bullets(tech.challenges if tech else []),
        "",
        "**Recommendations**:",
        _bullets(tech.recommendations if tech else []),
    ]

    lines += ["", "## Competitors"]
    if prd.competitors:
        for c in prd.competitors:
            lines += [
                "",
                f"### {c.name}",
                f"**Features**: {', '.join(c.features) or 'none'}",
                f"**Differences**: {c.differences or 'not stated'}",
            ]
    else:
        lines.append("none")

    lines += ["", "# Mermaid diagrams (embed each one in its section)"]
    for kind, name, section in _FINALIZE_SECTIONS:
        code = diagrams.get(kind) or diagram_placeholder(kind)
        lines += ["", f"## {name} diagram (goes into \"{section}\")", "```mermaid", code, "```"]

    lines += [
        "",
        "# Output",
        "",
        "Write the complete Markdown document with these sections, without a table of contents:",
        "1. Document info (title, version, date)",
        "2. Product background",
        "3. User analysis, including the user journey diagram",
        "4. Feature planning, including the feature module diagram",
        "5. Success metrics",
        "6. Technical solution, including the architecture and data flow diagrams",
        "7. Project plan",
        "8. Risk assessment",
        "9. Appendix",
        "",
        "Introduce and explain every diagram with surrounding text. Return only Markdown.",
    ]
    return "\n".join(lines)

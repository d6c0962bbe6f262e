"""
Journey document parser.

A journey file is a ``---`` delimited YAML header followed by a
Markdown body::

    ---
    id: JRN-0001
    title: User signs in
    status: clarified
    ...
    ---

    ## Acceptance Criteria

    ### AC-1: Login form accepts credentials
    - User navigates to /login
    - User enters 'a@b.com' in the 'Email' field

    ## Procedural Steps
    1. Open the login page (AC-1)

The header is validated strictly and any problem raises
``JourneyParseError``. The body is read leniently: a missing section is
simply empty.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..core.errors import JourneyParseError
from .schema import JourneyHeader

logger = logging.getLogger(__name__)

HEADER_PATTERN = re.compile(r"^---\r?\n(.*?)\r?\n---", re.DOTALL)

# A level-2 section runs until the next level-2 heading or the end
_SECTION_END = r"(?=\n##\s[^#]|\Z)"
AC_SECTION_PATTERN = re.compile(
    rf"##\s*Acceptance\s*Criteria\s*\n(.*?){_SECTION_END}", re.IGNORECASE | re.DOTALL
)
PROCEDURAL_SECTION_PATTERN = re.compile(
    rf"##\s*Procedural\s*Steps?\s*\n(.*?){_SECTION_END}", re.IGNORECASE | re.DOTALL
)
DATA_SECTION_PATTERN = re.compile(
    rf"##\s*(?:Data|Environment|Data/Environment)\s*(?:Notes?)?\s*\n(.*?){_SECTION_END}",
    re.IGNORECASE | re.DOTALL,
)

AC_HEADER_PATTERN = re.compile(r"^###?[ \t]*(AC-\d+)[: \t]*(.*?)$", re.IGNORECASE | re.MULTILINE)
BULLET_PATTERN = re.compile(r"^[-*]\s+(.+)$", re.MULTILINE)
NUMBERED_PATTERN = re.compile(r"^\d+\.\s+(.+)$", re.MULTILINE)
AC_REFERENCE_PATTERN = re.compile(r"\(AC-(\d+)\)", re.IGNORECASE)
AC_REFERENCE_STRIP = re.compile(r"\s*\(AC-\d+\)\s*", re.IGNORECASE)

STRUCTURED_STEP_HEADER = re.compile(r"^###\s*Step\s+(\d+):\s*(.+)$", re.MULTILINE)
STRUCTURED_BULLET_PATTERN = re.compile(
    r"^-\s*\*\*(Action|Wait for|Assert)\*\*:\s*(.+)$", re.IGNORECASE | re.MULTILINE
)


@dataclass
class AcceptanceCriterion:
    id: str
    title: str
    steps: list[str] = field(default_factory=list)
    raw_content: str = ""


@dataclass
class ProceduralStep:
    number: int
    text: str
    linked_ac: str | None = None


@dataclass
class StructuredBullet:
    kind: str  # "Action", "Wait for" or "Assert"
    text: str

    def as_step_text(self) -> str:
        return f"**{self.kind}**: {self.text}"


@dataclass
class StructuredStep:
    number: int
    name: str
    bullets: list[StructuredBullet] = field(default_factory=list)


@dataclass
class ParsedJourney:
    header: JourneyHeader
    body: str
    acceptance_criteria: list[AcceptanceCriterion] = field(default_factory=list)
    procedural_steps: list[ProceduralStep] = field(default_factory=list)
    structured_steps: list[StructuredStep] = field(default_factory=list)
    data_notes: list[str] = field(default_factory=list)
    source_path: str = ""


def split_header(content: str) -> tuple[str, str]:
    """Split a document into (header YAML, body)."""
    match = HEADER_PATTERN.match(content)
    if not match:
        raise ValueError("No YAML header found (content should start with ---)")
    return match.group(1), content[match.end() :].strip()


def parse_acceptance_criteria(body: str) -> list[AcceptanceCriterion]:
    section_match = AC_SECTION_PATTERN.search(body)
    if not section_match:
        return []
    section = section_match.group(1)

    headers = list(AC_HEADER_PATTERN.finditer(section))
    criteria: list[AcceptanceCriterion] = []
    for index, header in enumerate(headers):
        end = headers[index + 1].start() if index + 1 < len(headers) else len(section)
        content = section[header.end() : end]
        criteria.append(
            AcceptanceCriterion(
                id=header.group(1).upper(),
                title=header.group(2).strip(),
                steps=[m.group(1).strip() for m in BULLET_PATTERN.finditer(content)],
                raw_content=(header.group(0) + content).strip(),
            )
        )
    return criteria


def _procedural_step(number: int, text: str) -> ProceduralStep:
    reference = AC_REFERENCE_PATTERN.search(text)
    return ProceduralStep(
        number=number,
        text=AC_REFERENCE_STRIP.sub(" ", text).strip(),
        linked_ac=f"AC-{reference.group(1)}" if reference else None,
    )


def parse_procedural_steps(body: str) -> list[ProceduralStep]:
    """Numbered items of the Procedural Steps section, or its bullets if none are numbered."""
    section_match = PROCEDURAL_SECTION_PATTERN.search(body)
    if not section_match:
        return []
    section = section_match.group(1)

    items = [m.group(1).strip() for m in NUMBERED_PATTERN.finditer(section)]
    if not items:
        items = [m.group(1).strip() for m in BULLET_PATTERN.finditer(section)]
    return [_procedural_step(number, text) for number, text in enumerate(items, start=1)]


def parse_data_notes(body: str) -> list[str]:
    section_match = DATA_SECTION_PATTERN.search(body)
    if not section_match:
        return []
    return [m.group(1).strip() for m in BULLET_PATTERN.finditer(section_match.group(1))]


def parse_structured_steps(body: str) -> list[StructuredStep]:
    """``### Step n: name`` blocks with ``- **Action**: ...`` style bullets."""
    headers = list(STRUCTURED_STEP_HEADER.finditer(body))
    steps: list[StructuredStep] = []
    for index, header in enumerate(headers):
        end = headers[index + 1].start() if index + 1 < len(headers) else len(body)
        section = body[header.end() : end]
        bullets = [
            StructuredBullet(kind=_canonical_kind(m.group(1)), text=m.group(2).strip())
            for m in STRUCTURED_BULLET_PATTERN.finditer(section)
        ]
        steps.append(
            StructuredStep(number=int(header.group(1)), name=header.group(2).strip(), bullets=bullets)
        )
    return steps


def _canonical_kind(kind: str) -> str:
    lower = kind.lower()
    if lower == "action":
        return "Action"
    if lower == "wait for":
        return "Wait for"
    return "Assert"


def structured_steps_to_criteria(steps: list[StructuredStep]) -> list[AcceptanceCriterion]:
    return [
        AcceptanceCriterion(
            id=f"STEP-{step.number}",
            title=step.name,
            steps=[bullet.as_step_text() for bullet in step.bullets],
            raw_content="\n".join(
                [f"### Step {step.number}: {step.name}"]
                + [f"- {bullet.as_step_text()}" for bullet in step.bullets]
            ),
        )
        for step in steps
    ]


def parse_journey_content(content: str, source_path: str | Path = "") -> ParsedJourney:
    """Parse journey text.

    Raises:
        JourneyParseError: If the header is missing, not YAML, or fails validation.
    """
    path = str(source_path)
    file_path = source_path or None

    try:
        header_text, body = split_header(content)
    except ValueError as e:
        raise JourneyParseError(str(e), file_path, e) from e

    try:
        raw: Any = yaml.safe_load(header_text)
    except yaml.YAMLError as e:
        raise JourneyParseError(f"Invalid YAML in journey header: {e}", file_path, e) from e
    if not isinstance(raw, dict):
        raise JourneyParseError("Journey header must be a YAML mapping", file_path)

    try:
        header = JourneyHeader.model_validate(raw)
    except ValidationError as e:
        raise JourneyParseError(f"Invalid journey header: {e}", file_path, e) from e

    criteria = parse_acceptance_criteria(body)
    structured = parse_structured_steps(body)
    if not criteria and structured:
        logger.debug(f"{header.id}: using {len(structured)} structured steps as criteria")
        criteria = structured_steps_to_criteria(structured)

    return ParsedJourney(
        header=header,
        body=body,
        acceptance_criteria=criteria,
        procedural_steps=parse_procedural_steps(body),
        structured_steps=structured,
        data_notes=parse_data_notes(body),
        source_path=path,
    )


def parse_journey(path: Path) -> ParsedJourney:
    """Read and parse a journey file."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise JourneyParseError(f"Cannot read journey file: {e}", path, e) from e
    return parse_journey_content(content, path)

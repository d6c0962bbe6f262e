"""Tests for journey document parsing and header validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from stepforge.core.errors import JourneyParseError
from stepforge.core.ir import CompletionType, DataStrategy, JourneyTier
from stepforge.journey.parser import (
    ParsedJourney,
    parse_acceptance_criteria,
    parse_data_notes,
    parse_journey,
    parse_journey_content,
    parse_procedural_steps,
    parse_structured_steps,
    split_header,
)
from stepforge.journey.schema import JourneyHeader, JourneyStatus, TestRef, validate_for_autogen

MINIMAL_HEADER = {
    "id": "JRN-0042",
    "title": "Minimal",
    "status": "defined",
    "tier": "smoke",
    "scope": "auth",
    "actor": "user",
}


def document(header: str, body: str = "") -> str:
    return f"---\n{header.strip()}\n---\n{body}"


class TestJourneyHeader:
    def test_minimal(self) -> None:
        header = JourneyHeader.model_validate(MINIMAL_HEADER)
        assert header.status == JourneyStatus.DEFINED
        assert header.tier == JourneyTier.SMOKE
        assert header.revision == 1
        assert header.tests == []

    @pytest.mark.parametrize("bad_id", ["JRN-42", "jrn-0042", "JRN-00420", "ABC-0042"])
    def test_id_format(self, bad_id: str) -> None:
        with pytest.raises(ValidationError):
            JourneyHeader.model_validate({**MINIMAL_HEADER, "id": bad_id})

    def test_unknown_tier(self) -> None:
        with pytest.raises(ValidationError):
            JourneyHeader.model_validate({**MINIMAL_HEADER, "tier": "nightly"})

    def test_clarified_needs_completion(self) -> None:
        with pytest.raises(ValidationError, match="completion signal"):
            JourneyHeader.model_validate({**MINIMAL_HEADER, "status": "clarified"})

    def test_implemented_needs_tests(self) -> None:
        with pytest.raises(ValidationError, match="test reference"):
            JourneyHeader.model_validate({**MINIMAL_HEADER, "status": "implemented"})

    def test_tests_accept_strings_and_refs(self) -> None:
        header = JourneyHeader.model_validate(
            {
                **MINIMAL_HEADER,
                "status": "implemented",
                "tests": ["tests/login.spec.ts", {"file": "tests/other.spec.ts", "line": 12}],
            }
        )
        assert header.tests[0] == "tests/login.spec.ts"
        assert header.tests[1] == TestRef(file="tests/other.spec.ts", line=12)

    def test_quarantined_requirements(self) -> None:
        quarantined = {**MINIMAL_HEADER, "status": "quarantined"}
        with pytest.raises(ValidationError, match="owner"):
            JourneyHeader.model_validate(quarantined)
        with pytest.raises(ValidationError, match="linked issue"):
            JourneyHeader.model_validate({**quarantined, "owner": "qa", "statusReason": "flaky"})
        header = JourneyHeader.model_validate(
            {
                **quarantined,
                "owner": "qa",
                "statusReason": "flaky",
                "links": {"issues": ["#12"]},
            }
        )
        assert header.status_reason == "flaky"

    def test_camel_case_keys(self) -> None:
        header = JourneyHeader.model_validate(
            {
                **MINIMAL_HEADER,
                "negativePaths": [
                    {"name": "bad password", "input": {"password": "x"}, "expectedError": "Invalid"}
                ],
                "visualRegression": {"enabled": True, "threshold": 0.1},
            }
        )
        assert header.negative_paths[0].expected_error == "Invalid"
        assert header.visual_regression.threshold == 0.1

    def test_validate_for_autogen(self) -> None:
        header = JourneyHeader.model_validate(MINIMAL_HEADER)
        issues = validate_for_autogen(header)
        assert issues[0] == 'Journey status must be "clarified" for code generation, got "defined"'
        assert "Journey must have completion signals defined" in issues


class TestSplitHeader:
    def test_split(self) -> None:
        header, body = split_header("---\nid: x\n---\n\n## Body\n")
        assert header == "id: x"
        assert body == "## Body"

    def test_crlf(self) -> None:
        header, _ = split_header("---\r\nid: x\r\n---\r\nbody")
        assert header == "id: x"

    def test_missing(self) -> None:
        with pytest.raises(ValueError):
            split_header("# No header here")


class TestBodySections:
    BODY = """
## Acceptance Criteria

### AC-1: First
- User clicks 'A' button
* User clicks 'B' button

### ac-2 Second
- User should see 'Done'
Some prose that is not a step.

## Procedural Steps
1. Do the first thing (AC-1)
2. Do the second thing
- not numbered

## Environment Notes
- Runs against staging
"""

    def test_acceptance_criteria(self) -> None:
        criteria = parse_acceptance_criteria(self.BODY)
        assert [c.id for c in criteria] == ["AC-1", "AC-2"]
        assert criteria[0].title == "First"
        assert criteria[0].steps == ["User clicks 'A' button", "User clicks 'B' button"]
        assert criteria[1].title == "Second"
        assert criteria[1].steps == ["User should see 'Done'"]
        assert criteria[0].raw_content.startswith("### AC-1: First")

    def test_missing_sections(self) -> None:
        assert parse_acceptance_criteria("## Notes\n- nothing") == []
        assert parse_procedural_steps("") == []
        assert parse_data_notes("") == []

    def test_procedural_steps(self) -> None:
        steps = parse_procedural_steps(self.BODY)
        assert [(s.number, s.text, s.linked_ac) for s in steps] == [
            (1, "Do the first thing", "AC-1"),
            (2, "Do the second thing", None),
        ]

    def test_procedural_bullets_fallback(self) -> None:
        steps = parse_procedural_steps("## Procedural Steps\n- Open it\n- Close it (ac-3)\n")
        assert [(s.number, s.text, s.linked_ac) for s in steps] == [
            (1, "Open it", None),
            (2, "Close it", "AC-3"),
        ]

    def test_data_notes(self) -> None:
        assert parse_data_notes(self.BODY) == ["Runs against staging"]

    def test_structured_steps(self) -> None:
        body = (
            "### Step 1: Open\n"
            "- **Action**: Navigate to /x\n"
            "- **wait for**: panel to appear\n"
            "- a plain note\n"
            "### Step 2: Check\n"
            "- **Assert**: panel is visible\n"
        )
        steps = parse_structured_steps(body)
        assert [s.name for s in steps] == ["Open", "Check"]
        assert [b.kind for b in steps[0].bullets] == ["Action", "Wait for"]
        assert steps[0].bullets[1].as_step_text() == "**Wait for**: panel to appear"


class TestParseJourneyContent:
    def test_no_header(self) -> None:
        with pytest.raises(JourneyParseError, match="No YAML header"):
            parse_journey_content("## Acceptance Criteria\n")

    def test_invalid_yaml(self) -> None:
        with pytest.raises(JourneyParseError, match="Invalid YAML") as info:
            parse_journey_content(document("id: [unclosed"), "journeys/bad.md")
        assert info.value.file_path == Path("journeys/bad.md")
        assert info.value.cause is not None

    def test_header_not_mapping(self) -> None:
        with pytest.raises(JourneyParseError, match="must be a YAML mapping"):
            parse_journey_content(document("- a\n- b"))

    def test_schema_failure(self) -> None:
        with pytest.raises(JourneyParseError, match="Invalid journey header"):
            parse_journey_content(document("id: JRN-1\ntitle: x"))

    def test_structured_steps_become_criteria(self, journeys_dir: Path) -> None:
        parsed = parse_journey(journeys_dir / "structured.md")
        assert [c.id for c in parsed.acceptance_criteria] == ["STEP-1", "STEP-2"]
        assert parsed.acceptance_criteria[0].steps == [
            "**Action**: Navigate to /settings",
            "**Wait for**: settings panel to be visible",
        ]

    def test_criteria_win_over_structured_steps(self) -> None:
        header = "\n".join(f"{k}: {v}" for k, v in MINIMAL_HEADER.items())
        body = (
            "## Acceptance Criteria\n\n### AC-1: Only\n- User clicks 'A' button\n\n"
            "## Details\n\n### Step 1: Ignored\n- **Action**: Click the B button\n"
        )
        parsed = parse_journey_content(document(header, body))
        assert [c.id for c in parsed.acceptance_criteria] == ["AC-1"]
        assert len(parsed.structured_steps) == 1


class TestParseJourney:
    def test_login_fixture(self, login_journey: ParsedJourney) -> None:
        header = login_journey.header
        assert header.id == "JRN-0001"
        assert header.revision == 2
        assert header.data.strategy == DataStrategy.SEED
        assert [c.type for c in header.completion] == [CompletionType.URL, CompletionType.TOAST]
        assert [c.id for c in login_journey.acceptance_criteria] == ["AC-1", "AC-2"]
        assert len(login_journey.procedural_steps) == 2
        assert login_journey.data_notes == ["Uses the seeded standard user", "Password comes from the vault"]
        assert login_journey.source_path.endswith("login.md")

    def test_missing_file(self, tmp_path: Path) -> None:
        missing = tmp_path / "nope.md"
        with pytest.raises(JourneyParseError, match="Cannot read journey file") as info:
            parse_journey(missing)
        assert info.value.file_path == missing
        assert str(missing) in str(info.value)

"""
Journey document header schema.

The YAML header at the top of a journey file is validated into a
``JourneyHeader``. Keys are camelCase in the document (``negativePaths``,
``statusReason``) and snake_case on the model. Status-specific rules
(clarified journeys need completion signals, quarantined ones need an
owner and a linked issue) are enforced here, so a header that parses is
consistent with its declared status.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field, model_validator

from ..core.ir import (
    Accessibility,
    CompletionSignal,
    IRModel,
    JourneyDataConfig,
    JourneyTier,
    NegativePath,
    Performance,
    TestDataSet,
    VisualRegression,
)

JOURNEY_ID_PATTERN = r"^JRN-\d{4}$"


class JourneyStatus(StrEnum):
    PROPOSED = "proposed"
    DEFINED = "defined"
    CLARIFIED = "clarified"
    IMPLEMENTED = "implemented"
    QUARANTINED = "quarantined"
    DEPRECATED = "deprecated"


class JourneyModules(IRModel):
    foundation: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)


class TestRef(IRModel):
    __test__ = False  # not a pytest class

    file: str
    line: int | None = None


class JourneyLinks(IRModel):
    issues: list[str] | None = None
    prs: list[str] | None = None
    docs: list[str] | None = None


class JourneyFlags(IRModel):
    required: list[str] | None = None
    forbidden: list[str] | None = None


class JourneyHeader(IRModel):
    """Validated journey header."""

    id: str = Field(..., pattern=JOURNEY_ID_PATTERN)
    title: str = Field(..., min_length=1)
    status: JourneyStatus
    tier: JourneyTier
    scope: str = Field(..., min_length=1)
    actor: str = Field(..., min_length=1)
    revision: int = Field(default=1, gt=0)
    owner: str | None = None
    status_reason: str | None = None
    modules: JourneyModules = Field(default_factory=JourneyModules)
    tests: list[str | TestRef] = Field(default_factory=list)
    data: JourneyDataConfig | None = None
    completion: list[CompletionSignal] | None = None
    links: JourneyLinks | None = None
    tags: list[str] | None = None
    flags: JourneyFlags | None = None
    prerequisites: list[str] | None = None
    negative_paths: list[NegativePath] | None = None
    test_data: list[TestDataSet] | None = None
    visual_regression: VisualRegression | None = None
    accessibility: Accessibility | None = None
    performance: Performance | None = None

    @model_validator(mode="after")
    def check_status_requirements(self) -> JourneyHeader:
        if self.status == JourneyStatus.CLARIFIED and not self.completion:
            raise ValueError("Clarified journeys must have at least one completion signal")
        if self.status == JourneyStatus.IMPLEMENTED and not self.tests:
            raise ValueError("Implemented journeys must have at least one test reference")
        if self.status == JourneyStatus.QUARANTINED:
            if not self.owner or not self.status_reason:
                raise ValueError("Quarantined journeys require an owner and a status reason")
            if not (self.links and self.links.issues):
                raise ValueError("Quarantined journeys must have at least one linked issue")
        return self


def validate_for_autogen(header: JourneyHeader) -> list[str]:
    """Reasons the journey is not ready for automatic test generation.

    An empty list means it is ready.
    """
    issues: list[str] = []
    if header.status != JourneyStatus.CLARIFIED:
        issues.append(f'Journey status must be "clarified" for code generation, got "{header.status}"')
    if not header.completion:
        issues.append("Journey must have completion signals defined")
    if not header.actor:
        issues.append("Journey must have an actor defined")
    if not header.scope:
        issues.append("Journey must have a scope defined")
    return issues

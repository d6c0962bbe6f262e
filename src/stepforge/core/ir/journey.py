"""
Journey-level IR types.

An IRJourney is the compiled form of one journey document: header
metadata carried through unchanged plus one IRStep per acceptance
criterion (or procedural step). It is rebuilt wholesale on every parse.
The header sub-models here are shared with the journey header schema.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from .base import IRModel
from .primitives import IRPrimitive


class JourneyTier(StrEnum):
    SMOKE = "smoke"
    RELEASE = "release"
    REGRESSION = "regression"


class DataStrategy(StrEnum):
    SEED = "seed"
    CREATE = "create"
    REUSE = "reuse"


class CleanupStrategy(StrEnum):
    REQUIRED = "required"
    BEST_EFFORT = "best-effort"
    NONE = "none"


class CompletionType(StrEnum):
    URL = "url"
    TOAST = "toast"
    ELEMENT = "element"
    TEXT = "text"
    TITLE = "title"
    API = "api"


class ElementState(StrEnum):
    VISIBLE = "visible"
    HIDDEN = "hidden"
    ATTACHED = "attached"
    DETACHED = "detached"


class CompletionOptions(IRModel):
    timeout: int | None = Field(default=None, gt=0)
    exact: bool | None = None
    state: ElementState | None = None
    method: str | None = None
    status: int | None = Field(default=None, gt=0)


class CompletionSignal(IRModel):
    """How the journey knows it finished (landing URL, toast, element, ...)."""

    type: CompletionType
    value: str = Field(..., min_length=1)
    options: CompletionOptions | None = None


class JourneyDataConfig(IRModel):
    strategy: DataStrategy = DataStrategy.CREATE
    cleanup: CleanupStrategy = CleanupStrategy.BEST_EFFORT


class ModuleDependencies(IRModel):
    foundation: list[str] = Field(default_factory=list)
    feature: list[str] = Field(default_factory=list)


class NegativePath(IRModel):
    name: str = Field(..., min_length=1)
    input: dict[str, Any] = Field(default_factory=dict)
    expected_error: str = Field(..., min_length=1)
    expected_element: str | None = None


class TestDataSet(IRModel):
    __test__ = False  # not a pytest class

    name: str = Field(..., min_length=1)
    description: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class VisualRegression(IRModel):
    enabled: bool
    snapshots: list[str] | None = None
    threshold: float | None = Field(default=None, ge=0, le=1)


class AccessibilityTiming(StrEnum):
    AFTER_EACH = "afterEach"
    IN_TEST = "inTest"


class Accessibility(IRModel):
    enabled: bool
    rules: list[str] | None = None
    exclude: list[str] | None = None
    timing: AccessibilityTiming = AccessibilityTiming.AFTER_EACH


class PerformanceBudgets(IRModel):
    lcp: float | None = Field(default=None, gt=0)
    fid: float | None = Field(default=None, gt=0)
    cls: float | None = Field(default=None, ge=0)
    ttfb: float | None = Field(default=None, gt=0)


class Performance(IRModel):
    enabled: bool
    budgets: PerformanceBudgets | None = None
    collect_timeout: int | None = Field(default=None, gt=0)


class IRStep(IRModel):
    """
    One compiled acceptance criterion or procedural step.

    Primitives are partitioned: ``expect*`` types go to ``assertions``,
    everything else (including ``blocked``) to ``actions``.
    """

    id: str
    description: str
    actions: list[IRPrimitive] = Field(default_factory=list)
    assertions: list[IRPrimitive] = Field(default_factory=list)
    source_text: str | None = None
    notes: list[str] = Field(default_factory=list)


class IRJourney(IRModel):
    id: str
    title: str
    tier: JourneyTier
    scope: str
    actor: str
    tags: list[str] = Field(default_factory=list)
    module_dependencies: ModuleDependencies = Field(default_factory=ModuleDependencies)
    data: JourneyDataConfig | None = None
    completion: list[CompletionSignal] = Field(default_factory=list)
    steps: list[IRStep] = Field(default_factory=list)
    revision: int = 1
    source_path: str = ""
    prerequisites: list[str] = Field(default_factory=list)
    negative_paths: list[NegativePath] = Field(default_factory=list)
    test_data: list[TestDataSet] = Field(default_factory=list)
    visual_regression: VisualRegression | None = None
    accessibility: Accessibility | None = None
    performance: Performance | None = None

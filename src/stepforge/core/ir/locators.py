"""
Element and value references used by IR primitives.

A LocatorSpec names an element abstractly (role + accessible name, label,
test id, ...). Resolving it against a live page is the renderer's job.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from .base import IRModel


class LocatorStrategy(StrEnum):
    """How an element is located, in decreasing order of robustness."""

    ROLE = "role"
    LABEL = "label"
    PLACEHOLDER = "placeholder"
    TEXT = "text"
    TESTID = "testid"
    CSS = "css"


class LocatorOptions(IRModel):
    name: str | None = Field(default=None, description="Accessible name (role locators)")
    exact: bool | None = Field(default=None, description="Exact text match")
    level: int | None = Field(default=None, description="Heading level (role=heading)")


class LocatorSpec(IRModel):
    """
    Abstract element identity.

    Example:
        LocatorSpec(strategy=LocatorStrategy.ROLE, value="button",
                    options=LocatorOptions(name="Submit"))
    """

    strategy: LocatorStrategy
    value: str
    options: LocatorOptions | None = None


class ValueType(StrEnum):
    """Where a fill value comes from; indirections are resolved by the renderer."""

    LITERAL = "literal"
    ACTOR = "actor"  # {{email}} - property of the acting user
    TEST_DATA = "testData"  # $user.email - test data set reference
    GENERATED = "generated"  # ${runId} - generated at run time
    RUN_ID = "runId"


class ValueSpec(IRModel):
    type: ValueType
    value: str

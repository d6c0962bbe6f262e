"""
IR primitives: the closed set of atomic UI actions and assertions.

Every primitive carries a literal ``type`` tag, and the tag alone decides
which fields are required. ``IRPrimitive`` is the discriminated union of
all variants; ``PRIMITIVE_ADAPTER`` validates wire dicts into it.

Primitives whose type starts with ``expect`` are assertions; everything
else (including waits and ``blocked``) is an action.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from .base import IRModel
from .locators import LocatorSpec, ValueSpec

# =============================================================================
# Navigation
# =============================================================================


class Goto(IRModel):
    type: Literal["goto"] = "goto"
    url: str
    wait_for_load: bool = True
    wait_until: str | None = Field(
        default=None, description="Load state to await (load, domcontentloaded, networkidle, commit)"
    )


class Reload(IRModel):
    type: Literal["reload"] = "reload"


class GoBack(IRModel):
    type: Literal["goBack"] = "goBack"


class GoForward(IRModel):
    type: Literal["goForward"] = "goForward"


class WaitForURL(IRModel):
    type: Literal["waitForURL"] = "waitForURL"
    pattern: str
    regex: bool = False


# =============================================================================
# Interaction
# =============================================================================


class Click(IRModel):
    type: Literal["click"] = "click"
    locator: LocatorSpec


class DblClick(IRModel):
    type: Literal["dblclick"] = "dblclick"
    locator: LocatorSpec


class RightClick(IRModel):
    type: Literal["rightClick"] = "rightClick"
    locator: LocatorSpec


class Fill(IRModel):
    type: Literal["fill"] = "fill"
    locator: LocatorSpec
    value: ValueSpec


class Select(IRModel):
    type: Literal["select"] = "select"
    locator: LocatorSpec
    option: str


class Check(IRModel):
    type: Literal["check"] = "check"
    locator: LocatorSpec


class Uncheck(IRModel):
    type: Literal["uncheck"] = "uncheck"
    locator: LocatorSpec


class Press(IRModel):
    type: Literal["press"] = "press"
    key: str
    locator: LocatorSpec | None = None


class Hover(IRModel):
    type: Literal["hover"] = "hover"
    locator: LocatorSpec


class Focus(IRModel):
    type: Literal["focus"] = "focus"
    locator: LocatorSpec


class Clear(IRModel):
    type: Literal["clear"] = "clear"
    locator: LocatorSpec


class Upload(IRModel):
    type: Literal["upload"] = "upload"
    locator: LocatorSpec
    files: list[str] = Field(default_factory=list)


# =============================================================================
# Assertions
# =============================================================================


class ToastType(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


class ExpectVisible(IRModel):
    type: Literal["expectVisible"] = "expectVisible"
    locator: LocatorSpec
    timeout: int | None = None


class ExpectHidden(IRModel):
    type: Literal["expectHidden"] = "expectHidden"
    locator: LocatorSpec
    timeout: int | None = None


class ExpectText(IRModel):
    type: Literal["expectText"] = "expectText"
    locator: LocatorSpec
    text: str


class ExpectValue(IRModel):
    type: Literal["expectValue"] = "expectValue"
    locator: LocatorSpec
    value: str


class ExpectChecked(IRModel):
    type: Literal["expectChecked"] = "expectChecked"
    locator: LocatorSpec


class ExpectEnabled(IRModel):
    type: Literal["expectEnabled"] = "expectEnabled"
    locator: LocatorSpec


class ExpectDisabled(IRModel):
    type: Literal["expectDisabled"] = "expectDisabled"
    locator: LocatorSpec


class ExpectURL(IRModel):
    type: Literal["expectURL"] = "expectURL"
    pattern: str
    regex: bool = False


class ExpectTitle(IRModel):
    type: Literal["expectTitle"] = "expectTitle"
    title: str
    regex: bool = False


class ExpectCount(IRModel):
    type: Literal["expectCount"] = "expectCount"
    locator: LocatorSpec
    count: int


class ExpectToast(IRModel):
    type: Literal["expectToast"] = "expectToast"
    toast_type: ToastType
    message: str | None = None


# =============================================================================
# Waits
# =============================================================================


class WaitForVisible(IRModel):
    type: Literal["waitForVisible"] = "waitForVisible"
    locator: LocatorSpec
    timeout: int | None = None


class WaitForHidden(IRModel):
    type: Literal["waitForHidden"] = "waitForHidden"
    locator: LocatorSpec
    timeout: int | None = None


class WaitForTimeout(IRModel):
    type: Literal["waitForTimeout"] = "waitForTimeout"
    ms: int


class WaitForNetworkIdle(IRModel):
    type: Literal["waitForNetworkIdle"] = "waitForNetworkIdle"
    timeout: int | None = None


class WaitForLoadingComplete(IRModel):
    type: Literal["waitForLoadingComplete"] = "waitForLoadingComplete"
    timeout: int | None = None
    signal: str | None = Field(default=None, description="App-specific loading signal name")


class WaitForResponse(IRModel):
    type: Literal["waitForResponse"] = "waitForResponse"
    url_pattern: str


# =============================================================================
# Dialogs
# =============================================================================


class DismissModal(IRModel):
    type: Literal["dismissModal"] = "dismissModal"


class AcceptAlert(IRModel):
    type: Literal["acceptAlert"] = "acceptAlert"


class DismissAlert(IRModel):
    type: Literal["dismissAlert"] = "dismissAlert"


# =============================================================================
# Indirection and failure
# =============================================================================


class CallModule(IRModel):
    """Delegate to a hand-written page module (e.g. ``auth.login``)."""

    type: Literal["callModule"] = "callModule"
    module: str
    method: str
    args: list[Any] = Field(default_factory=list)


class Blocked(IRModel):
    """A step that could not be compiled; carries the original text for review."""

    type: Literal["blocked"] = "blocked"
    reason: str
    source_text: str


IRPrimitive = Annotated[
    Goto
    | Reload
    | GoBack
    | GoForward
    | WaitForURL
    | Click
    | DblClick
    | RightClick
    | Fill
    | Select
    | Check
    | Uncheck
    | Press
    | Hover
    | Focus
    | Clear
    | Upload
    | ExpectVisible
    | ExpectHidden
    | ExpectText
    | ExpectValue
    | ExpectChecked
    | ExpectEnabled
    | ExpectDisabled
    | ExpectURL
    | ExpectTitle
    | ExpectCount
    | ExpectToast
    | WaitForVisible
    | WaitForHidden
    | WaitForTimeout
    | WaitForNetworkIdle
    | WaitForLoadingComplete
    | WaitForResponse
    | DismissModal
    | AcceptAlert
    | DismissAlert
    | CallModule
    | Blocked,
    Field(discriminator="type"),
]

PRIMITIVE_ADAPTER: TypeAdapter[IRPrimitive] = TypeAdapter(IRPrimitive)


def parse_primitive(data: dict[str, Any]) -> IRPrimitive:
    """Validate a wire dict (camelCase or snake_case keys) into a primitive."""
    return PRIMITIVE_ADAPTER.validate_python(data)


def is_assertion(primitive: IRPrimitive) -> bool:
    return primitive.type.startswith("expect")

"""
Step grammar - ordered regex rules that turn step text into IR primitives.

The catalog is a flat, hand-ordered tuple. ``match_pattern`` walks it
front to back and returns the first rule whose regex matches and whose
``extract`` produces a primitive. Order is the disambiguation policy:

- structured ``**Action**:`` bullets before free text
- negative assertions ("is not visible") before their positive forms
- "click on X" before bare "click X", "go back" before "go to X"
- URL assertions before the generic "X contains 'text'" rule

Whenever two rules both match one input, moving either changes the
result. ``get_pattern_matches`` lists every rule a text satisfies, in
priority order, which is the tool for auditing such overlaps.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from ..core.ir import (
    AcceptAlert,
    CallModule,
    Check,
    Clear,
    Click,
    DblClick,
    DismissAlert,
    DismissModal,
    ExpectChecked,
    ExpectCount,
    ExpectDisabled,
    ExpectEnabled,
    ExpectHidden,
    ExpectText,
    ExpectTitle,
    ExpectToast,
    ExpectURL,
    ExpectValue,
    ExpectVisible,
    Fill,
    Focus,
    GoBack,
    GoForward,
    Goto,
    Hover,
    IRPrimitive,
    LocatorOptions,
    LocatorSpec,
    LocatorStrategy,
    Press,
    Reload,
    RightClick,
    Select,
    ToastType,
    Uncheck,
    ValueSpec,
    ValueType,
    WaitForHidden,
    WaitForLoadingComplete,
    WaitForNetworkIdle,
    WaitForTimeout,
    WaitForURL,
    WaitForVisible,
)

PATTERN_VERSION = "1.2.0"

Extractor = Callable[[re.Match[str]], IRPrimitive | None]


@dataclass(frozen=True)
class StepPattern:
    """One grammar rule.

    ``extract`` returns None when the regex matched but a capture is
    unusable (for instance a target that is only quote marks); matching
    then continues with the next rule.
    """

    name: str
    regex: re.Pattern[str]
    primitive_type: str
    extract: Extractor
    category: str


@dataclass(frozen=True)
class PatternMatch:
    pattern: str
    primitive: IRPrimitive


def make_locator(strategy: LocatorStrategy, value: str, name: str | None = None) -> LocatorSpec:
    """Locator with an optional accessible name."""
    options = LocatorOptions(name=name) if name else None
    return LocatorSpec(strategy=strategy, value=value, options=options)


def value_from_text(text: str) -> ValueSpec:
    """Classify a fill value.

    ``{{email}}`` is an actor property, ``${runId}`` a generated value,
    ``$user.email`` a test data reference; anything else is literal.
    """
    if re.fullmatch(r"\{\{.+\}\}", text, re.DOTALL):
        return ValueSpec(type=ValueType.ACTOR, value=text[2:-2].strip())
    if re.search(r"\$\{.+\}", text):
        return ValueSpec(type=ValueType.GENERATED, value=text)
    if re.fullmatch(r"\$.+", text, re.DOTALL):
        return ValueSpec(type=ValueType.TEST_DATA, value=text[1:])
    return ValueSpec(type=ValueType.LITERAL, value=text)


def locator_from_selector_phrase(selector: str) -> LocatorSpec:
    """Turn "the Save button" / "Email field" / "welcome banner" into a locator."""
    clean = re.sub(r"^the\s+", "", selector.strip(), flags=re.IGNORECASE).strip().strip("'\"")

    if re.search(r"button$", clean, re.IGNORECASE):
        name = re.sub(r"\s*button$", "", clean, flags=re.IGNORECASE).strip().strip("'\"")
        return make_locator(LocatorStrategy.ROLE, "button", name)
    if re.search(r"link$", clean, re.IGNORECASE):
        name = re.sub(r"\s*link$", "", clean, flags=re.IGNORECASE).strip().strip("'\"")
        return make_locator(LocatorStrategy.ROLE, "link", name)
    if re.search(r"(?:input|field)$", clean, re.IGNORECASE):
        label = re.sub(r"\s*(?:input|field)$", "", clean, flags=re.IGNORECASE).strip().strip("'\"")
        return make_locator(LocatorStrategy.LABEL, label)
    return make_locator(LocatorStrategy.TEXT, clean)


def _unquote(text: str) -> str | None:
    """Drop quote characters; None if nothing is left."""
    cleaned = re.sub(r"""["']""", "", text).strip()
    return cleaned or None


def _text(value: str | None) -> LocatorSpec | None:
    return make_locator(LocatorStrategy.TEXT, value) if value else None


def _label(value: str | None) -> LocatorSpec | None:
    return make_locator(LocatorStrategy.LABEL, value) if value else None


def _rule(
    category: str, name: str, regex: str, primitive_type: str, extract: Extractor
) -> StepPattern:
    return StepPattern(
        name=name,
        regex=re.compile(regex, re.IGNORECASE),
        primitive_type=primitive_type,
        extract=extract,
        category=category,
    )


# =============================================================================
# Extractors that need more than one expression
# =============================================================================


def _structured_click(m: re.Match[str]) -> IRPrimitive | None:
    return Click(locator=locator_from_selector_phrase(f"{m.group(1)} button"))


def _structured_fill(m: re.Match[str]) -> IRPrimitive | None:
    return Fill(locator=locator_from_selector_phrase(m.group(1)), value=value_from_text(m.group(2)))


def _navigate_to_page(m: re.Match[str]) -> IRPrimitive | None:
    slug = re.sub(r"\s+", "-", m.group(1).strip().lower())
    return Goto(url=f"/{slug}")


def _click_text(m: re.Match[str]) -> IRPrimitive | None:
    locator = _text(_unquote(m.group(1)))
    return Click(locator=locator) if locator else None


def _dblclick(m: re.Match[str]) -> IRPrimitive | None:
    locator = _text(_unquote(m.group(1)))
    return DblClick(locator=locator) if locator else None


def _right_click(m: re.Match[str]) -> IRPrimitive | None:
    locator = _text(_unquote(m.group(1)))
    return RightClick(locator=locator) if locator else None


def _fill_label_value(m: re.Match[str]) -> IRPrimitive | None:
    """Unquoted label in group 1, value in group 2."""
    label, value = _unquote(m.group(1)), _unquote(m.group(2))
    if not label or value is None:
        return None
    return Fill(locator=make_locator(LocatorStrategy.LABEL, label), value=value_from_text(value))


def _fill_value_label(m: re.Match[str]) -> IRPrimitive | None:
    """Value in group 1, label in group 2."""
    value, label = _unquote(m.group(1)), _unquote(m.group(2))
    if not label or value is None:
        return None
    return Fill(locator=make_locator(LocatorStrategy.LABEL, label), value=value_from_text(value))


def _fill_from_actor(m: re.Match[str]) -> IRPrimitive | None:
    field = _unquote(m.group(1))
    if not field:
        return None
    actor_key = re.sub(r"\s+", "_", field.lower())
    return Fill(
        locator=make_locator(LocatorStrategy.LABEL, field),
        value=ValueSpec(type=ValueType.ACTOR, value=actor_key),
    )


def _clear(m: re.Match[str]) -> IRPrimitive | None:
    locator = _label(_unquote(m.group(1)))
    return Clear(locator=locator) if locator else None


def _toast_appears(m: re.Match[str]) -> IRPrimitive | None:
    kind = (m.group(1) or "info").lower()
    return ExpectToast(toast_type=ToastType(kind))


def _hidden_text(m: re.Match[str]) -> IRPrimitive | None:
    locator = _text(_unquote(m.group(1)))
    return ExpectHidden(locator=locator) if locator else None


def _visible_text(m: re.Match[str]) -> IRPrimitive | None:
    locator = _text(_unquote(m.group(1)))
    return ExpectVisible(locator=locator) if locator else None


def _hover(m: re.Match[str]) -> IRPrimitive | None:
    locator = _text(_unquote(m.group(1)))
    return Hover(locator=locator) if locator else None


def _focus(m: re.Match[str]) -> IRPrimitive | None:
    locator = _label(_unquote(m.group(1)))
    return Focus(locator=locator) if locator else None


# =============================================================================
# Rule groups, listed in priority order
# =============================================================================

STRUCTURED_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "structured",
        "structured-action-click",
        r"""^\*\*Action\*\*:\s*click\s+(?:the\s+)?['"]?(.+?)['"]?\s*(?:button|link)?$""",
        "click",
        _structured_click,
    ),
    _rule(
        "structured",
        "structured-action-fill",
        r"""^\*\*Action\*\*:\s*fill\s+(?:in\s+)?['"]?(.+?)['"]?\s+with\s+['"]?(.+?)['"]?$""",
        "fill",
        _structured_fill,
    ),
    _rule(
        "structured",
        "structured-action-navigate",
        r"""^\*\*Action\*\*:\s*navigate\s+to\s+['"]?(.+?)['"]?$""",
        "goto",
        lambda m: Goto(url=m.group(1)),
    ),
    _rule(
        "structured",
        "structured-wait-for-visible",
        r"""^\*\*Wait for\*\*:\s*(.+?)\s+(?:to\s+)?(?:be\s+)?(?:visible|appear|load)""",
        "expectVisible",
        lambda m: ExpectVisible(locator=locator_from_selector_phrase(m.group(1))),
    ),
    _rule(
        "structured",
        "structured-assert-visible",
        r"""^\*\*Assert\*\*:\s*(.+?)\s+(?:is\s+)?visible$""",
        "expectVisible",
        lambda m: ExpectVisible(locator=locator_from_selector_phrase(m.group(1))),
    ),
    _rule(
        "structured",
        "structured-assert-text",
        r"""^\*\*Assert\*\*:\s*(.+?)\s+(?:contains|has text)\s+['"]?(.+?)['"]?$""",
        "expectText",
        lambda m: ExpectText(locator=locator_from_selector_phrase(m.group(1)), text=m.group(2)),
    ),
)

AUTH_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "auth",
        "user-login",
        r"^(?:user\s+)?(?:logs?\s*in|login\s+is\s+performed|authenticates?)$",
        "callModule",
        lambda m: CallModule(module="auth", method="login"),
    ),
    _rule(
        "auth",
        "user-logout",
        r"^(?:user\s+)?(?:logs?\s*out|logout\s+is\s+performed|signs?\s*out)$",
        "callModule",
        lambda m: CallModule(module="auth", method="logout"),
    ),
    _rule(
        "auth",
        "login-as-role",
        r"^(?:user\s+)?logs?\s*in\s+as\s+(?:an?\s+)?(.+?)(?:\s+user)?$",
        "callModule",
        lambda m: CallModule(module="auth", method="loginAs", args=[m.group(1).lower()]),
    ),
)

TOAST_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "toast",
        "success-toast-message",
        r"""^(?:a\s+)?success\s+toast\s+(?:with\s+)?["']([^"']+)["']\s*(?:message\s+)?(?:appears?|is\s+shown|displays?)$""",
        "expectToast",
        lambda m: ExpectToast(toast_type=ToastType.SUCCESS, message=m.group(1)),
    ),
    _rule(
        "toast",
        "success-toast-appears-with",
        r"""^(?:a\s+)?success\s+toast\s+(?:appears?|is\s+shown|displays?)\s+(?:with\s+)?(?:(?:message|text)\s+)?["']?(.+?)["']?$""",
        "expectToast",
        lambda m: ExpectToast(toast_type=ToastType.SUCCESS, message=m.group(1)),
    ),
    _rule(
        "toast",
        "error-toast-message",
        r"""^(?:an?\s+)?error\s+toast\s+(?:with\s+)?["']([^"']+)["']\s*(?:message\s+)?(?:appears?|is\s+shown|displays?)$""",
        "expectToast",
        lambda m: ExpectToast(toast_type=ToastType.ERROR, message=m.group(1)),
    ),
    _rule(
        "toast",
        "error-toast-appears-with",
        r"""^(?:an?\s+)?error\s+toast\s+(?:appears?|is\s+shown|displays?)\s+(?:with\s+)?(?:(?:message|text)\s+)?["']?(.+?)["']?$""",
        "expectToast",
        lambda m: ExpectToast(toast_type=ToastType.ERROR, message=m.group(1)),
    ),
    _rule(
        "toast",
        "toast-appears",
        r"^(?:a\s+)?(?:(success|error|info|warning)\s+)?toast\s+(?:notification\s+)?(?:appears?|is\s+shown|displays?)$",
        "expectToast",
        _toast_appears,
    ),
    _rule(
        "toast",
        "toast-with-text",
        r"""^(?:a\s+)?(?:toast|notification)\s+(?:with\s+)?(?:(?:text|message)\s+)?["']?(.+?)["']?\s+(?:appears?|is\s+shown|displays?)$""",
        "expectToast",
        lambda m: ExpectToast(toast_type=ToastType.INFO, message=m.group(1)),
    ),
    _rule(
        "toast",
        "status-message-visible",
        r"""^(?:a\s+)?status\s+(?:message\s+)?["']([^"']+)["']\s+(?:is\s+)?(?:visible|shown|displayed)$""",
        "expectVisible",
        lambda m: ExpectVisible(locator=make_locator(LocatorStrategy.ROLE, "status", m.group(1))),
    ),
    _rule(
        "toast",
        "verify-status-message",
        r"""^(?:verify|check)\s+(?:that\s+)?(?:the\s+)?status\s+(?:message\s+)?(?:shows?|displays?|contains?)\s+["']([^"']+)["']$""",
        "expectVisible",
        lambda m: ExpectVisible(locator=make_locator(LocatorStrategy.ROLE, "status", m.group(1))),
    ),
)

MODAL_ALERT_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "modal",
        "dismiss-modal",
        r"^(?:dismiss|close)\s+(?:the\s+)?(?:modal|dialog)(?:\s+dialog)?$",
        "dismissModal",
        lambda m: DismissModal(),
    ),
    _rule(
        "modal",
        "accept-alert",
        r"^(?:accept|confirm|ok)\s+(?:the\s+)?alert$",
        "acceptAlert",
        lambda m: AcceptAlert(),
    ),
    _rule(
        "modal",
        "dismiss-alert",
        r"^(?:dismiss|cancel|close)\s+(?:the\s+)?alert$",
        "dismissAlert",
        lambda m: DismissAlert(),
    ),
)

EXTENDED_NAVIGATION_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "navigation",
        "refresh-page",
        r"^(?:user\s+)?(?:refresh(?:es)?|reloads?)\s+(?:the\s+)?page$",
        "reload",
        lambda m: Reload(),
    ),
    _rule(
        "navigation",
        "go-back",
        r"^(?:user\s+)?(?:go(?:es)?|navigates?)\s+back$",
        "goBack",
        lambda m: GoBack(),
    ),
    _rule(
        "navigation",
        "go-forward",
        r"^(?:user\s+)?(?:go(?:es)?|navigates?)\s+forward$",
        "goForward",
        lambda m: GoForward(),
    ),
)

NAVIGATION_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "navigation",
        "navigate-to-url",
        r"""^(?:user\s+)?(?:navigates?|go(?:es)?|opens?)\s+(?:to\s+)?(?:the\s+)?["']?([^"'\s]+)["']?$""",
        "goto",
        lambda m: Goto(url=m.group(1)),
    ),
    _rule(
        "navigation",
        "navigate-to-page",
        r"^(?:user\s+)?(?:navigates?|go(?:es)?|opens?)\s+(?:to\s+)?(?:the\s+)?(.+?)\s+page$",
        "goto",
        _navigate_to_page,
    ),
    _rule(
        "navigation",
        "wait-for-url-change",
        r"""^(?:user\s+)?waits?\s+(?:for\s+)?(?:the\s+)?url\s+(?:to\s+)?(?:change\s+to|contain|include)\s+["']?([^"']+)["']?$""",
        "waitForURL",
        lambda m: WaitForURL(pattern=m.group(1)),
    ),
)

EXTENDED_CLICK_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "click",
        "click-on-element",
        r"^(?:user\s+)?(?:clicks?|selects?)\s+on\s+(?:the\s+)?(.+?)(?:\s+button|\s+link)?$",
        "click",
        _click_text,
    ),
    _rule(
        "click",
        "press-enter-key",
        r"^(?:user\s+)?(?:press(?:es)?|hits?)\s+(?:the\s+)?(?:enter|return)(?:\s+key)?$",
        "press",
        lambda m: Press(key="Enter"),
    ),
    _rule(
        "click",
        "press-tab-key",
        r"^(?:user\s+)?(?:press(?:es)?|hits?)\s+(?:the\s+)?tab(?:\s+key)?$",
        "press",
        lambda m: Press(key="Tab"),
    ),
    _rule(
        "click",
        "press-escape-key",
        r"^(?:user\s+)?(?:press(?:es)?|hits?)\s+(?:the\s+)?(?:escape|esc)(?:\s+key)?$",
        "press",
        lambda m: Press(key="Escape"),
    ),
    _rule(
        "click",
        "double-click",
        r"""^(?:user\s+)?double[-\s]?clicks?\s+(?:on\s+)?(?:the\s+)?["']?(.+?)["']?$""",
        "dblclick",
        _dblclick,
    ),
    _rule(
        "click",
        "right-click",
        r"""^(?:user\s+)?right[-\s]?clicks?\s+(?:on\s+)?(?:the\s+)?["']?(.+?)["']?$""",
        "rightClick",
        _right_click,
    ),
    _rule(
        "click",
        "submit-form",
        r"^(?:user\s+)?submits?\s+(?:the\s+)?form$",
        "click",
        lambda m: Click(locator=make_locator(LocatorStrategy.ROLE, "button", "Submit")),
    ),
)

CLICK_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "click",
        "click-button-quoted",
        r"""^(?:user\s+)?(?:clicks?|presses?|taps?|selects?)\s+(?:on\s+)?(?:the\s+)?["']([^"']+)["']\s+button$""",
        "click",
        lambda m: Click(locator=make_locator(LocatorStrategy.ROLE, "button", m.group(1))),
    ),
    _rule(
        "click",
        "click-link-quoted",
        r"""^(?:user\s+)?(?:clicks?|presses?|taps?|selects?)\s+(?:on\s+)?(?:the\s+)?["']([^"']+)["']\s+link$""",
        "click",
        lambda m: Click(locator=make_locator(LocatorStrategy.ROLE, "link", m.group(1))),
    ),
    _rule(
        "click",
        "click-menuitem-quoted",
        r"""^(?:user\s+)?(?:clicks?|selects?)\s+(?:on\s+)?(?:the\s+)?["']([^"']+)["']\s+menu\s*item$""",
        "click",
        lambda m: Click(locator=make_locator(LocatorStrategy.ROLE, "menuitem", m.group(1))),
    ),
    _rule(
        "click",
        "click-tab-quoted",
        r"""^(?:user\s+)?(?:clicks?|selects?)\s+(?:on\s+)?(?:the\s+)?["']([^"']+)["']\s+tab$""",
        "click",
        lambda m: Click(locator=make_locator(LocatorStrategy.ROLE, "tab", m.group(1))),
    ),
    _rule(
        "click",
        "click-element-quoted",
        r"""^(?:user\s+)?(?:clicks?|presses?|taps?|selects?)\s+(?:on\s+)?(?:the\s+)?["']([^"']+)["']$""",
        "click",
        lambda m: Click(locator=make_locator(LocatorStrategy.TEXT, m.group(1))),
    ),
    _rule(
        "click",
        "click-element-generic",
        r"^(?:user\s+)?(?:clicks?|presses?|taps?|selects?)\s+(?:on\s+)?(?:the\s+)?(.+?)\s+(?:button|link|icon|menu|tab)$",
        "click",
        _click_text,
    ),
)

EXTENDED_FILL_PATTERNS: tuple[StepPattern, ...] = (
    # Ahead of fill-field-with-value, which would read "placeholder" as the value
    _rule(
        "fill",
        "fill-placeholder-field",
        r"""^(?:user\s+)?(?:enters?|types?|fills?)\s+["']([^"']+)["']\s+(?:in|into)\s+(?:the\s+)?(?:field|input)\s+with\s+placeholder\s+["']([^"']+)["']$""",
        "fill",
        lambda m: Fill(
            locator=make_locator(LocatorStrategy.PLACEHOLDER, m.group(2)),
            value=value_from_text(m.group(1)),
        ),
    ),
    _rule(
        "fill",
        "fill-field-with-value",
        r"""^(?:user\s+)?(?:fills?|enters?|types?|inputs?)(?:\s+in)?\s+(?:the\s+)?["']?(.+?)["']?\s+(?:field|input)\s+with\s+["']?(.+?)["']?$""",
        "fill",
        _fill_label_value,
    ),
    _rule(
        "fill",
        "type-into-field",
        r"""^(?:user\s+)?types?\s+['"](.+?)['"]\s+into\s+(?:the\s+)?["']?(.+?)["']?\s*(?:field|input)?$""",
        "fill",
        _fill_value_label,
    ),
    _rule(
        "fill",
        "fill-in-field-no-value",
        r"""^(?:user\s+)?fills?\s+in\s+(?:the\s+)?["']?(.+?)["']?\s*(?:field|input)?$""",
        "fill",
        _fill_from_actor,
    ),
    _rule(
        "fill",
        "clear-field",
        r"""^(?:user\s+)?clears?\s+(?:the\s+)?["']?(.+?)["']?\s*(?:field|input)?$""",
        "clear",
        _clear,
    ),
    _rule(
        "fill",
        "set-value",
        r"""^(?:user\s+)?sets?\s+(?:the\s+)?(?:value\s+)?(?:of\s+)?["']?(.+?)["']?\s+to\s+['"](.+?)['"]$""",
        "fill",
        _fill_label_value,
    ),
)

FILL_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "fill",
        "fill-field-quoted-value",
        r"""^(?:user\s+)?(?:enters?|types?|fills?(?:\s+in)?|inputs?)\s+["']([^"']+)["']\s+(?:in|into)\s+(?:the\s+)?["']([^"']+)["']\s*(?:field|input)?$""",
        "fill",
        lambda m: Fill(
            locator=make_locator(LocatorStrategy.LABEL, m.group(2)),
            value=value_from_text(m.group(1)),
        ),
    ),
    _rule(
        "fill",
        "fill-field-actor-value",
        r"""^(?:user\s+)?(?:enters?|types?|fills?(?:\s+in)?|inputs?)\s+(\{\{[^}]+\}\})\s+(?:in|into)\s+(?:the\s+)?["']([^"']+)["']\s*(?:field|input)?$""",
        "fill",
        lambda m: Fill(
            locator=make_locator(LocatorStrategy.LABEL, m.group(2)),
            value=value_from_text(m.group(1)),
        ),
    ),
    _rule(
        "fill",
        "fill-field-generic",
        r"""^(?:user\s+)?(?:enters?|types?|fills?(?:\s+in)?|inputs?)\s+(.+?)\s+(?:in|into)\s+(?:the\s+)?(.+?)\s*(?:field|input)?$""",
        "fill",
        _fill_value_label,
    ),
)

EXTENDED_SELECT_PATTERNS: tuple[StepPattern, ...] = (
    # Ahead of the named form, which would take "the" as the dropdown's name
    _rule(
        "select",
        "select-from-dropdown",
        r"""^(?:user\s+)?(?:selects?|chooses?)\s+['"](.+?)['"]\s+from\s+(?:the\s+)?dropdown$""",
        "select",
        lambda m: Select(locator=make_locator(LocatorStrategy.ROLE, "combobox"), option=m.group(1)),
    ),
    _rule(
        "select",
        "select-from-named-dropdown",
        r"""^(?:user\s+)?(?:selects?|chooses?)\s+["'](.+?)["']\s+from\s+(?:the\s+)?(.+?)\s*(?:dropdown|select|selector|menu|list)$""",
        "select",
        lambda m: Select(
            locator=make_locator(LocatorStrategy.LABEL, m.group(2).strip().strip("'\"")),
            option=m.group(1),
        ),
    ),
    _rule(
        "select",
        "select-option-named",
        r"""^(?:user\s+)?(?:selects?|chooses?)\s+(?:the\s+)?(?:option\s+)?(?:named\s+)?["']([^"']+)["'](?:\s+option)?$""",
        "select",
        lambda m: Select(locator=make_locator(LocatorStrategy.ROLE, "combobox"), option=m.group(1)),
    ),
)

SELECT_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "select",
        "select-option",
        r"""^(?:user\s+)?(?:selects?|chooses?)\s+["']([^"']+)["']\s+(?:from|in)\s+(?:the\s+)?["']([^"']+)["']\s*(?:dropdown|select|menu)?$""",
        "select",
        lambda m: Select(locator=make_locator(LocatorStrategy.LABEL, m.group(2)), option=m.group(1)),
    ),
)

CHECK_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "check",
        "check-checkbox",
        r"""^(?:user\s+)?(?:checks?|enables?|ticks?)\s+(?:the\s+)?["']([^"']+)["']\s*(?:checkbox|option)?$""",
        "check",
        lambda m: Check(locator=make_locator(LocatorStrategy.LABEL, m.group(1))),
    ),
    _rule(
        "check",
        "check-checkbox-unquoted",
        r"^(?:user\s+)?(?:checks?|enables?|ticks?)\s+(?:the\s+)?(\w+(?:\s+\w+)*)\s+checkbox$",
        "check",
        lambda m: Check(locator=make_locator(LocatorStrategy.LABEL, m.group(1))),
    ),
    _rule(
        "check",
        "uncheck-checkbox",
        r"""^(?:user\s+)?(?:unchecks?|disables?|unticks?)\s+(?:the\s+)?["']([^"']+)["']\s*(?:checkbox|option)?$""",
        "uncheck",
        lambda m: Uncheck(locator=make_locator(LocatorStrategy.LABEL, m.group(1))),
    ),
    _rule(
        "check",
        "uncheck-checkbox-unquoted",
        r"^(?:user\s+)?(?:unchecks?|disables?|unticks?)\s+(?:the\s+)?(\w+(?:\s+\w+)*)\s+checkbox$",
        "uncheck",
        lambda m: Uncheck(locator=make_locator(LocatorStrategy.LABEL, m.group(1))),
    ),
)

URL_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "url",
        "url-contains",
        r"""^(?:the\s+)?url\s+(?:should\s+)?(?:contains?|includes?)\s+["']?([^"'\s]+)["']?$""",
        "expectURL",
        lambda m: ExpectURL(pattern=m.group(1)),
    ),
    _rule(
        "url",
        "url-is",
        r"""^(?:the\s+)?url\s+(?:should\s+)?(?:is|equals?|be)\s+["']?([^"'\s]+)["']?$""",
        "expectURL",
        lambda m: ExpectURL(pattern=m.group(1)),
    ),
    _rule(
        "url",
        "redirected-to",
        r"""^(?:user\s+)?(?:is\s+)?redirected\s+to\s+["']?([^"'\s]+)["']?$""",
        "expectURL",
        lambda m: ExpectURL(pattern=m.group(1)),
    ),
)

EXTENDED_ASSERTION_PATTERNS: tuple[StepPattern, ...] = (
    # Negative assertions
    _rule(
        "assertion",
        "verify-not-visible",
        r"""^(?:verify|confirm|check)\s+(?:that\s+)?(?:the\s+)?["']?(.+?)["']?\s+is\s+not\s+visible$""",
        "expectHidden",
        _hidden_text,
    ),
    _rule(
        "assertion",
        "element-should-not-be-visible",
        r"""^(?:the\s+)?["']?(.+?)["']?\s+(?:should\s+)?(?:not\s+be|is\s+not)\s+(?:visible|displayed|shown)$""",
        "expectHidden",
        _hidden_text,
    ),
    # URL and title
    _rule(
        "assertion",
        "verify-url-contains",
        r"""^(?:verify|confirm|check)\s+(?:that\s+)?(?:the\s+)?url\s+contains?\s+["']([^"']+)["']$""",
        "expectURL",
        lambda m: ExpectURL(pattern=m.group(1)),
    ),
    _rule(
        "assertion",
        "verify-title-is",
        r"""^(?:verify|confirm|check)\s+(?:that\s+)?(?:the\s+)?(?:page\s+)?title\s+(?:is|equals?)\s+["']([^"']+)["']$""",
        "expectTitle",
        lambda m: ExpectTitle(title=m.group(1)),
    ),
    # Element state
    _rule(
        "assertion",
        "verify-field-value",
        r"""^(?:verify|confirm|check)\s+(?:that\s+)?(?:the\s+)?["']?(\w+)["']?\s+(?:field\s+)?has\s+value\s+["']([^"']+)["']$""",
        "expectValue",
        lambda m: ExpectValue(
            locator=make_locator(LocatorStrategy.LABEL, m.group(1)), value=m.group(2)
        ),
    ),
    _rule(
        "assertion",
        "verify-element-enabled",
        r"""^(?:verify|confirm|check)\s+(?:that\s+)?(?:the\s+)?["']?(.+?)["']?\s+(?:button\s+)?is\s+enabled$""",
        "expectEnabled",
        lambda m: ExpectEnabled(locator=make_locator(LocatorStrategy.LABEL, m.group(1))),
    ),
    _rule(
        "assertion",
        "verify-element-disabled",
        r"""^(?:verify|confirm|check)\s+(?:that\s+)?(?:the\s+)?["']?(.+?)["']?\s+(?:input\s+)?is\s+disabled$""",
        "expectDisabled",
        lambda m: ExpectDisabled(locator=make_locator(LocatorStrategy.LABEL, m.group(1))),
    ),
    _rule(
        "assertion",
        "verify-checkbox-checked",
        r"""^(?:verify|confirm|check)\s+(?:that\s+)?(?:the\s+)?["']?(.+?)["']?\s+(?:checkbox\s+)?is\s+checked$""",
        "expectChecked",
        lambda m: ExpectChecked(locator=make_locator(LocatorStrategy.LABEL, m.group(1))),
    ),
    _rule(
        "assertion",
        "verify-count",
        r"^(?:verify|confirm|check)\s+(?:that\s+)?(\d+)\s+(?:items?|elements?|rows?)\s+(?:are\s+)?(?:shown|displayed|exist|visible)$",
        "expectCount",
        lambda m: ExpectCount(locator=make_locator(LocatorStrategy.TEXT, "item"), count=int(m.group(1))),
    ),
    # Generic visibility, after the specific state checks
    _rule(
        "assertion",
        "verify-element-showing",
        r"""^(?:verify|confirm|ensure)\s+(?:that\s+)?(?:the\s+)?["']?(.+?)["']?\s+(?:is\s+)?(?:showing|displayed|visible)$""",
        "expectVisible",
        _visible_text,
    ),
    _rule(
        "assertion",
        "page-should-show",
        r"""^(?:the\s+)?page\s+should\s+(?:show|display|contain)\s+['"](.+?)['"]$""",
        "expectText",
        lambda m: ExpectText(locator=make_locator(LocatorStrategy.ROLE, "main"), text=m.group(1)),
    ),
    _rule(
        "assertion",
        "make-sure-assertion",
        r"^make\s+sure\s+(?:that\s+)?(?:the\s+)?(.+?)\s+(?:is\s+)?(?:visible|displayed|shown)$",
        "expectVisible",
        _visible_text,
    ),
    _rule(
        "assertion",
        "confirm-that-assertion",
        r"""^(?:verify|confirm)\s+(?:that\s+)?(?:the\s+)?["']?(.+?)["']?\s+(?:appears?|is\s+shown|displays?)$""",
        "expectVisible",
        _visible_text,
    ),
    _rule(
        "assertion",
        "check-element-exists",
        r"""^check\s+(?:that\s+)?(?:the\s+)?["']?(.+?)["']?\s+(?:exists?|is\s+present)$""",
        "expectVisible",
        _visible_text,
    ),
    # Generic "contains", last of the group
    _rule(
        "assertion",
        "element-contains-text",
        r"""^(?:the\s+)?["']?(.+?)["']?\s+(?:should\s+)?contains?\s+['"](.+?)['"]$""",
        "expectText",
        lambda m: ExpectText(locator=make_locator(LocatorStrategy.TEXT, m.group(1)), text=m.group(2)),
    ),
)

VISIBILITY_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "visibility",
        "should-see-text",
        r"""^(?:user\s+)?(?:should\s+)?(?:sees?|views?)\s+(?:the\s+)?["']([^"']+)["']$""",
        "expectVisible",
        lambda m: ExpectVisible(locator=make_locator(LocatorStrategy.TEXT, m.group(1))),
    ),
    # Ahead of is-visible, which would keep "page" in the locator text
    _rule(
        "visibility",
        "page-displayed",
        r"^(?:the\s+)?(.+?)\s+(?:page|screen|view)\s+(?:is\s+)?(?:displayed|shown|visible)$",
        "expectVisible",
        _visible_text,
    ),
    _rule(
        "visibility",
        "is-visible",
        r"""^["']?([^"']+)["']?\s+(?:is\s+)?(?:visible|displayed|shown)$""",
        "expectVisible",
        lambda m: ExpectVisible(locator=make_locator(LocatorStrategy.TEXT, m.group(1))),
    ),
    _rule(
        "visibility",
        "should-see-element",
        r"^(?:user\s+)?(?:should\s+)?(?:sees?|views?)\s+(?:the\s+)?(.+?)\s+(?:heading|button|link|form|page|element)$",
        "expectVisible",
        _visible_text,
    ),
)

EXTENDED_WAIT_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "wait",
        "wait-for-element-disappear",
        r"""^(?:user\s+)?waits?\s+(?:for\s+)?(?:the\s+)?["']?(.+?)["']?\s+to\s+(?:disappear|be\s+hidden)$""",
        "waitForHidden",
        lambda m: WaitForHidden(locator=make_locator(LocatorStrategy.TEXT, m.group(1))),
    ),
    _rule(
        "wait",
        "wait-for-element-appear",
        r"""^(?:user\s+)?waits?\s+(?:for\s+)?(?:the\s+)?["']?(.+?)["']?\s+to\s+(?:appear|show|be\s+visible)$""",
        "waitForVisible",
        lambda m: WaitForVisible(locator=make_locator(LocatorStrategy.TEXT, m.group(1))),
    ),
    _rule(
        "wait",
        "wait-until-loaded",
        r"^(?:user\s+)?waits?\s+until\s+(?:the\s+)?(?:page|content|data)\s+(?:is\s+)?loaded$",
        "waitForLoadingComplete",
        lambda m: WaitForLoadingComplete(),
    ),
    _rule(
        "wait",
        "wait-seconds",
        r"^(?:user\s+)?waits?\s+(?:for\s+)?(\d+)\s+seconds?$",
        "waitForTimeout",
        lambda m: WaitForTimeout(ms=int(m.group(1)) * 1000),
    ),
    _rule(
        "wait",
        "wait-for-network",
        r"^(?:user\s+)?waits?\s+(?:for\s+)?(?:the\s+)?network\s+(?:to\s+be\s+)?idle$",
        "waitForNetworkIdle",
        lambda m: WaitForNetworkIdle(),
    ),
)

WAIT_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "wait",
        "wait-for-navigation",
        r"""^(?:user\s+)?(?:waits?\s+)?(?:for\s+)?navigation\s+to\s+["']?([^"'\s]+)["']?$""",
        "waitForURL",
        lambda m: WaitForURL(pattern=m.group(1)),
    ),
    _rule(
        "wait",
        "wait-for-page",
        r"^(?:user\s+)?(?:waits?\s+)?(?:for\s+)?(?:the\s+)?(.+?)\s+(?:page|screen)\s+to\s+load$",
        "waitForLoadingComplete",
        lambda m: WaitForLoadingComplete(),
    ),
)

HOVER_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "hover",
        "hover-over-element",
        r"""^(?:user\s+)?hovers?\s+(?:over|on)\s+(?:the\s+)?["']?(.+?)["']?$""",
        "hover",
        _hover,
    ),
    _rule(
        "hover",
        "mouse-over",
        r"""^(?:user\s+)?mouse\s*over\s+(?:the\s+)?["']?(.+?)["']?$""",
        "hover",
        _hover,
    ),
)

FOCUS_PATTERNS: tuple[StepPattern, ...] = (
    _rule(
        "focus",
        "focus-on-element",
        r"""^(?:user\s+)?focus(?:es)?\s+(?:on\s+)?(?:the\s+)?["']?(.+?)["']?$""",
        "focus",
        _focus,
    ),
)

PATTERNS: tuple[StepPattern, ...] = (
    *STRUCTURED_PATTERNS,
    *AUTH_PATTERNS,
    *TOAST_PATTERNS,
    *MODAL_ALERT_PATTERNS,
    *EXTENDED_NAVIGATION_PATTERNS,  # "go back" before "go to X"
    *NAVIGATION_PATTERNS,
    *EXTENDED_CLICK_PATTERNS,  # "click on X" before "click X"
    *CLICK_PATTERNS,
    *EXTENDED_FILL_PATTERNS,
    *FILL_PATTERNS,
    *EXTENDED_SELECT_PATTERNS,
    *SELECT_PATTERNS,
    *CHECK_PATTERNS,
    *URL_PATTERNS,  # before the generic "X contains 'y'"
    *EXTENDED_ASSERTION_PATTERNS,  # "is not visible" before "is visible"
    *VISIBILITY_PATTERNS,
    *EXTENDED_WAIT_PATTERNS,
    *WAIT_PATTERNS,
    *HOVER_PATTERNS,
    *FOCUS_PATTERNS,
)


def match_pattern(text: str, patterns: tuple[StepPattern, ...] = PATTERNS) -> IRPrimitive | None:
    """First primitive produced by the catalog, or None."""
    trimmed = text.strip()
    for pattern in patterns:
        m = pattern.regex.match(trimmed)
        if m is None:
            continue
        primitive = pattern.extract(m)
        if primitive is not None:
            return primitive
    return None


def match_pattern_named(
    text: str, patterns: tuple[StepPattern, ...] = PATTERNS
) -> PatternMatch | None:
    """Like match_pattern, but also reports which rule fired."""
    trimmed = text.strip()
    for pattern in patterns:
        m = pattern.regex.match(trimmed)
        if m is None:
            continue
        primitive = pattern.extract(m)
        if primitive is not None:
            return PatternMatch(pattern=pattern.name, primitive=primitive)
    return None


def get_pattern_matches(text: str) -> list[PatternMatch]:
    """Every rule that produces a primitive for the text, in priority order."""
    trimmed = text.strip()
    matches: list[PatternMatch] = []
    for pattern in PATTERNS:
        m = pattern.regex.match(trimmed)
        if m is None:
            continue
        primitive = pattern.extract(m)
        if primitive is not None:
            matches.append(PatternMatch(pattern=pattern.name, primitive=primitive))
    return matches


def find_matching_pattern_names(text: str) -> list[str]:
    """Names of every rule whose regex matches, whether or not extract succeeds."""
    trimmed = text.strip()
    return [p.name for p in PATTERNS if p.regex.match(trimmed)]


def get_all_pattern_names() -> list[str]:
    return [p.name for p in PATTERNS]


def get_pattern(name: str) -> StepPattern | None:
    return next((p for p in PATTERNS if p.name == name), None)


def get_pattern_count_by_category() -> dict[str, int]:
    counts: dict[str, int] = {}
    for pattern in PATTERNS:
        counts[pattern.category] = counts.get(pattern.category, 0) + 1
    return counts

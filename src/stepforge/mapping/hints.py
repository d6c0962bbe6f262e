"""
Machine hints embedded in step text.

Authors disambiguate a step by appending parenthesized hints::

    Click the Save button (role=button, label="Save draft") (timeout=5000)

Locator hints (role, testid, label, text, exact, level) override the
element the grammar inferred; behavior hints (signal, module, wait,
timeout) tune the resulting primitive. Hints are parsed regardless of
semantic validity: an unknown ARIA role still yields a hint, plus a
warning.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_VALUE = r"""(?:"[^"]*"|'[^']*'|[^,)\s]*)"""
_PAIR = rf"[a-z]+\s*=\s*{_VALUE}"

HINT_GROUP_PATTERN = re.compile(rf"\(\s*{_PAIR}(?:\s*,\s*{_PAIR})*\s*\)", re.IGNORECASE)
HINT_PAIR_PATTERN = re.compile(
    r"""([a-z]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^,)\s]*))""", re.IGNORECASE
)

LOCATOR_HINT_TYPES = frozenset({"role", "testid", "label", "text", "exact", "level"})
BEHAVIOR_HINT_TYPES = frozenset({"signal", "module", "wait", "timeout"})
HINT_TYPES = LOCATOR_HINT_TYPES | BEHAVIOR_HINT_TYPES

VALID_ROLES = frozenset(
    {
        "alert",
        "alertdialog",
        "application",
        "article",
        "banner",
        "button",
        "cell",
        "checkbox",
        "columnheader",
        "combobox",
        "complementary",
        "contentinfo",
        "definition",
        "dialog",
        "directory",
        "document",
        "feed",
        "figure",
        "form",
        "grid",
        "gridcell",
        "group",
        "heading",
        "img",
        "link",
        "list",
        "listbox",
        "listitem",
        "log",
        "main",
        "marquee",
        "math",
        "menu",
        "menubar",
        "menuitem",
        "menuitemcheckbox",
        "menuitemradio",
        "navigation",
        "none",
        "note",
        "option",
        "presentation",
        "progressbar",
        "radio",
        "radiogroup",
        "region",
        "row",
        "rowgroup",
        "rowheader",
        "scrollbar",
        "search",
        "searchbox",
        "separator",
        "slider",
        "spinbutton",
        "status",
        "switch",
        "tab",
        "table",
        "tablist",
        "tabpanel",
        "term",
        "textbox",
        "timer",
        "toolbar",
        "tooltip",
        "tree",
        "treegrid",
        "treeitem",
    }
)


@dataclass(frozen=True)
class Hint:
    type: str
    value: str
    raw: str


@dataclass
class LocatorHints:
    role: str | None = None
    testid: str | None = None
    label: str | None = None
    text: str | None = None
    exact: bool | None = None
    level: int | None = None


@dataclass
class BehaviorHints:
    signal: str | None = None
    module: str | None = None
    wait: str | None = None
    timeout: int | None = None


@dataclass
class ExtractedHints:
    locator: LocatorHints = field(default_factory=LocatorHints)
    behavior: BehaviorHints = field(default_factory=BehaviorHints)
    has_hints: bool = False
    clean_text: str = ""
    warnings: list[str] = field(default_factory=list)
    hints: list[Hint] = field(default_factory=list)


def is_valid_role(role: str) -> bool:
    return role.lower() in VALID_ROLES


def contains_hints(text: str) -> bool:
    return HINT_GROUP_PATTERN.search(text) is not None


def _parse_group(group: str, hints: list[Hint], warnings: list[str]) -> None:
    for pair in HINT_PAIR_PATTERN.finditer(group):
        key = pair.group(1).lower()
        value = next((g for g in pair.group(2, 3, 4) if g is not None), "")
        if not value:
            warnings.append(f"Empty value for hint: {key}")
            continue
        if key not in HINT_TYPES:
            warnings.append(f"Unknown hint type: {key}")
            continue
        if key == "role" and not is_valid_role(value):
            warnings.append(f"Invalid ARIA role: {value}")
        hints.append(Hint(type=key, value=value, raw=pair.group(0)))


def parse_hints(text: str) -> tuple[list[Hint], str, list[str]]:
    """Collect hints and strip their spans.

    Returns:
        (hints, clean_text, warnings). ``clean_text`` equals ``text`` when no
        hint group is present.
    """
    hints: list[Hint] = []
    warnings: list[str] = []
    if not contains_hints(text):
        return hints, text, warnings

    clean = text
    # Removing one group can splice its neighbours into a new group
    while match := HINT_GROUP_PATTERN.search(clean):
        _parse_group(match.group(0), hints, warnings)
        clean = clean[: match.start()] + " " + clean[match.end() :]
    return hints, " ".join(clean.split()), warnings


def extract_hints(text: str) -> ExtractedHints:
    """Extract locator and behavior hints from step text.

    Later hints of the same type override earlier ones. Numeric hints that
    do not parse are dropped with a warning.
    """
    hints, clean_text, warnings = parse_hints(text)
    locator = LocatorHints()
    behavior = BehaviorHints()

    for hint in hints:
        if hint.type in ("level", "timeout"):
            try:
                number = int(hint.value)
            except ValueError:
                warnings.append(f"Invalid numeric value for hint {hint.type}: {hint.value}")
                continue
            if hint.type == "level":
                locator.level = number
            else:
                behavior.timeout = number
        elif hint.type == "exact":
            locator.exact = hint.value.lower() == "true"
        elif hint.type in LOCATOR_HINT_TYPES:
            setattr(locator, hint.type, hint.value)
        else:
            setattr(behavior, hint.type, hint.value)

    return ExtractedHints(
        locator=locator,
        behavior=behavior,
        has_hints=bool(hints),
        clean_text=clean_text,
        warnings=warnings,
        hints=hints,
    )


def has_locator_hints(hints: ExtractedHints) -> bool:
    loc = hints.locator
    return bool(loc.role or loc.testid or loc.label or loc.text)


def has_behavior_hints(hints: ExtractedHints) -> bool:
    beh = hints.behavior
    return bool(beh.signal or beh.module or beh.wait or beh.timeout is not None)


def parse_module_hint(module_hint: str) -> tuple[str, str] | None:
    """Split ``"auth.login"`` into ``("auth", "login")``."""
    parts = module_hint.split(".")
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]

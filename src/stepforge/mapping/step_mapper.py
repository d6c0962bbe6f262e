"""
Step mapper - turns one line of step text into one IR primitive.

Resolution order:

1. machine hints are split off the text
2. the grammar runs on the de-hinted text, then on its glossary-normalized form
3. a grammar match is refined by the hints; without one, locator hints
   alone can still produce a primitive
4. the learned pattern store, if one is attached
5. an exact glossary module-method phrase
6. otherwise a ``blocked`` primitive carrying the original text

Mapping never raises: unmappable text is data, not an error.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from ..core.ir import (
    Blocked,
    CallModule,
    Check,
    Click,
    ExpectVisible,
    Fill,
    IRPrimitive,
    LocatorOptions,
    LocatorSpec,
    LocatorStrategy,
    ValueSpec,
    ValueType,
    is_assertion,
)
from .glossary import GlossaryNormalizer
from .hints import ExtractedHints, extract_hints, has_locator_hints, parse_module_hint
from .patterns import match_pattern_named

if TYPE_CHECKING:
    from ..llkb.store import LearnedPatternStore

logger = logging.getLogger(__name__)

DEFAULT_LLKB_MIN_CONFIDENCE = 0.7
DEFAULT_LLKB_MIN_SIMILARITY = 0.7


class MatchSource(StrEnum):
    GRAMMAR = "grammar"
    HINTS = "hints"
    LLKB = "llkb"
    GLOSSARY = "glossary"
    BLOCKED = "blocked"


@dataclass
class StepMappingResult:
    """Outcome of mapping one step; ``primitive`` is ``blocked`` on failure."""

    primitive: IRPrimitive
    source_text: str
    is_assertion: bool
    matched_by: MatchSource
    message: str | None = None
    pattern: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return self.matched_by == MatchSource.BLOCKED


@dataclass
class MappingStats:
    total: int = 0
    mapped: int = 0
    blocked: int = 0
    actions: int = 0
    assertions: int = 0
    by_source: dict[str, int] = field(default_factory=dict)

    @property
    def mapping_rate(self) -> float:
        return self.mapped / self.total if self.total else 0.0


def build_locator_from_hints(hints: ExtractedHints) -> LocatorSpec | None:
    """Locator from hints; testid beats role beats label beats text."""
    loc = hints.locator
    if loc.testid:
        return LocatorSpec(strategy=LocatorStrategy.TESTID, value=loc.testid)
    if loc.role:
        options = LocatorOptions(
            name=loc.label or None,
            exact=True if loc.exact else None,
            level=loc.level or None,
        )
        has_options = any(v is not None for v in (options.name, options.exact, options.level))
        return LocatorSpec(
            strategy=LocatorStrategy.ROLE,
            value=loc.role,
            options=options if has_options else None,
        )
    if loc.label:
        return LocatorSpec(
            strategy=LocatorStrategy.LABEL,
            value=loc.label,
            options=LocatorOptions(exact=True) if loc.exact else None,
        )
    if loc.text:
        return LocatorSpec(
            strategy=LocatorStrategy.TEXT,
            value=loc.text,
            options=LocatorOptions(exact=True) if loc.exact else None,
        )
    return None


def _has_field(primitive: IRPrimitive, name: str) -> bool:
    return name in type(primitive).model_fields


def apply_hints(primitive: IRPrimitive, hints: ExtractedHints) -> IRPrimitive:
    """Override what the grammar inferred with what the author spelled out."""
    update: dict[str, Any] = {}

    if has_locator_hints(hints) and _has_field(primitive, "locator"):
        locator = build_locator_from_hints(hints)
        if locator is not None:
            update["locator"] = locator

    behavior = hints.behavior
    if behavior.timeout is not None and _has_field(primitive, "timeout"):
        update["timeout"] = behavior.timeout
    if behavior.signal and _has_field(primitive, "signal"):
        update["signal"] = behavior.signal
    if behavior.wait and _has_field(primitive, "wait_until"):
        update["wait_until"] = behavior.wait
    if behavior.module and isinstance(primitive, CallModule):
        parsed = parse_module_hint(behavior.module)
        if parsed:
            update["module"], update["method"] = parsed

    return primitive.model_copy(update=update) if update else primitive


def primitive_from_hints(text: str, hints: ExtractedHints) -> IRPrimitive | None:
    """Build a primitive from locator hints, guessing the action from keywords."""
    locator = build_locator_from_hints(hints)
    if locator is None:
        return None

    lower = text.lower()
    if "click" in lower or "press" in lower:
        return Click(locator=locator)
    if "enter" in lower or "type" in lower or "fill" in lower:
        quoted = re.search(r"""['"]([^'"]+)['"]""", text)
        return Fill(
            locator=locator,
            value=ValueSpec(type=ValueType.LITERAL, value=quoted.group(1) if quoted else ""),
        )
    if "see" in lower or "visible" in lower or "display" in lower:
        timeout = hints.behavior.timeout
        return ExpectVisible(locator=locator, timeout=timeout)
    if "check" in lower or "select" in lower:
        return Check(locator=locator)
    return Click(locator=locator)


class StepMapper:
    """
    Maps step text to IR primitives.

    Args:
        normalizer: Glossary normalizer; the default glossary if omitted.
        store: Learned pattern store consulted after the grammar. Optional.
        min_confidence: Lowest store confidence accepted as a match.
        use_fuzzy_match: Fall back to the most similar learned pattern.
        min_similarity: Lowest text similarity accepted by that fallback.
    """

    def __init__(
        self,
        normalizer: GlossaryNormalizer | None = None,
        store: LearnedPatternStore | None = None,
        *,
        min_confidence: float = DEFAULT_LLKB_MIN_CONFIDENCE,
        use_fuzzy_match: bool = True,
        min_similarity: float = DEFAULT_LLKB_MIN_SIMILARITY,
    ):
        self.normalizer = normalizer or GlossaryNormalizer()
        self.store = store
        self.min_confidence = min_confidence
        self.use_fuzzy_match = use_fuzzy_match
        self.min_similarity = min_similarity

    def map_step(
        self,
        text: str,
        *,
        journey_id: str | None = None,
        step_id: str | None = None,
    ) -> StepMappingResult:
        hints = extract_hints(text)
        clean_text = hints.clean_text
        warnings = list(hints.warnings)
        normalized = self.normalizer.normalize(clean_text)

        named = match_pattern_named(clean_text) or match_pattern_named(normalized)
        if named is not None:
            primitive = named.primitive
            if hints.has_hints:
                primitive = apply_hints(primitive, hints)
            return self._result(text, primitive, MatchSource.GRAMMAR, warnings, pattern=named.pattern)

        if has_locator_hints(hints):
            primitive = primitive_from_hints(clean_text, hints)
            if primitive is not None:
                return self._result(text, primitive, MatchSource.HINTS, warnings)

        if hints.behavior.module:
            parsed = parse_module_hint(hints.behavior.module)
            if parsed:
                module, method = parsed
                return self._result(
                    text, CallModule(module=module, method=method), MatchSource.HINTS, warnings
                )
            warnings.append(f"Invalid module hint: {hints.behavior.module}")

        if self.store is not None:
            llkb_match = self.store.match(
                clean_text,
                min_confidence=self.min_confidence,
                use_fuzzy_match=self.use_fuzzy_match,
                min_similarity=self.min_similarity,
            )
            if llkb_match is not None:
                logger.debug(
                    f"LLKB matched {step_id or 'step'} via {llkb_match.pattern_id} "
                    f"(confidence {llkb_match.confidence:.3f})"
                )
                if journey_id:
                    self.store.record_success(clean_text, llkb_match.primitive, journey_id)
                return self._result(
                    text,
                    llkb_match.primitive,
                    MatchSource.LLKB,
                    warnings,
                    pattern=llkb_match.pattern_id,
                )

        method_match = self.normalizer.match_module_method(clean_text)
        if method_match is not None:
            primitive = CallModule(module=method_match.module, method=method_match.method)
            return self._result(text, primitive, MatchSource.GLOSSARY, warnings)

        message = f'Could not map step: "{text}"'
        logger.debug(f"Blocked {step_id or 'step'}: {text!r}")
        return StepMappingResult(
            primitive=Blocked(reason=message, source_text=text),
            source_text=text,
            is_assertion=False,
            matched_by=MatchSource.BLOCKED,
            message=message,
            warnings=warnings,
        )

    def map_steps(
        self, texts: Iterable[str], *, journey_id: str | None = None
    ) -> list[StepMappingResult]:
        return [self.map_step(text, journey_id=journey_id) for text in texts]

    def learn(self, text: str, primitive: IRPrimitive, journey_id: str) -> None:
        """Record that ``primitive`` was the right reading of ``text``."""
        if self.store is None:
            raise RuntimeError("StepMapper has no learned pattern store")
        clean = extract_hints(text).clean_text
        self.store.record_success(clean, primitive, journey_id)

    def report_failure(self, text: str, journey_id: str) -> None:
        """Record that the learned reading of ``text`` was wrong."""
        if self.store is None:
            raise RuntimeError("StepMapper has no learned pattern store")
        clean = extract_hints(text).clean_text
        self.store.record_failure(clean, journey_id)

    @staticmethod
    def _result(
        text: str,
        primitive: IRPrimitive,
        source: MatchSource,
        warnings: list[str],
        pattern: str | None = None,
    ) -> StepMappingResult:
        return StepMappingResult(
            primitive=primitive,
            source_text=text,
            is_assertion=is_assertion(primitive),
            matched_by=source,
            pattern=pattern,
            warnings=warnings,
        )


def get_mapping_stats(results: Iterable[StepMappingResult]) -> MappingStats:
    stats = MappingStats()
    for result in results:
        stats.total += 1
        stats.by_source[result.matched_by.value] = stats.by_source.get(result.matched_by.value, 0) + 1
        if result.blocked:
            stats.blocked += 1
            continue
        stats.mapped += 1
        if result.is_assertion:
            stats.assertions += 1
        else:
            stats.actions += 1
    return stats


def suggest_improvements(blocked_texts: Iterable[str]) -> list[str]:
    """Rephrasing suggestions for steps that could not be mapped."""
    suggestions: list[str] = []
    for text in blocked_texts:
        lower = text.lower()
        if "go" in lower or "open" in lower or "navigate" in lower:
            hint = 'Try: "User navigates to /path" or "User opens /path"'
        elif "click" in lower or "press" in lower or "button" in lower:
            hint = "Try: \"User clicks 'Button Name' button\" or \"Click the 'Label' button\""
        elif "enter" in lower or "type" in lower or "field" in lower:
            hint = "Try: \"User enters 'value' in 'Field Label' field\""
        elif "see" in lower or "visible" in lower or "display" in lower:
            hint = "Try: \"User should see 'Text'\" or \"'Element' is visible\""
        else:
            hint = "Could not determine intent. Add a hint such as (role=button, label=\"Save\")."
        suggestions.append(f'"{text}" - {hint}')
    return suggestions

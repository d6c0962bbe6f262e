"""
Promotion of learned patterns into the static grammar.

A pattern that has proven itself across several journeys is a candidate
for a hand-written grammar rule. This module picks the candidates and
drafts an anchored regex for each; a human reviews and merges it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .store import LearnedPattern


@dataclass(frozen=True)
class PromotionCriteria:
    min_confidence: float = 0.9
    min_success_count: int = 5
    min_source_journeys: int = 2


DEFAULT_PROMOTION_CRITERIA = PromotionCriteria()


@dataclass(frozen=True)
class PromotedPattern:
    pattern: LearnedPattern
    generated_regex: str
    priority: float


_REGEX_SPECIALS = re.compile(r"[.*+?^${}()|\[\]\\]")
_VERB_FORMS = ("click", "fill", "select", "type", "see", "wait")


def generate_regex_from_text(text: str) -> str:
    """Draft an anchored, case-folded regex that generalizes ``text``.

    Quoted values become capture groups, articles become optional, a
    leading "user" becomes optional and common verbs accept both
    singular and plural forms. The result is a starting point for a
    grammar rule, not a finished one.
    """
    pattern = text.lower()
    pattern = _REGEX_SPECIALS.sub(lambda m: "\\" + m.group(0), pattern)
    pattern = re.sub(r'"[^"]+"', lambda m: '"([^"]+)"', pattern)
    pattern = re.sub(r"'[^']+'", lambda m: "'([^']+)'", pattern)
    pattern = re.sub(r"\b(the|a|an)\s+", lambda m: f"(?:{m.group(1)}\\s+)?", pattern)
    pattern = re.sub(r"^user\s+", lambda m: "(?:user\\s+)?", pattern)
    for verb in _VERB_FORMS:
        pattern = re.sub(rf"\b{verb}s?\b", f"{verb}s?", pattern)
    return f"^{pattern}$"


def missing_promotion_criteria(
    pattern: LearnedPattern, criteria: PromotionCriteria = DEFAULT_PROMOTION_CRITERIA
) -> list[str]:
    """Human-readable list of the criteria ``pattern`` does not yet meet."""
    missing: list[str] = []
    if pattern.confidence < criteria.min_confidence:
        missing.append(f"confidence: {pattern.confidence:.3f} < {criteria.min_confidence}")
    if pattern.success_count < criteria.min_success_count:
        missing.append(f"successCount: {pattern.success_count} < {criteria.min_success_count}")
    if len(pattern.source_journeys) < criteria.min_source_journeys:
        missing.append(
            f"sourceJourneys: {len(pattern.source_journeys)} < {criteria.min_source_journeys}"
        )
    return missing


def get_promotable_patterns(
    patterns: list[LearnedPattern],
    criteria: PromotionCriteria = DEFAULT_PROMOTION_CRITERIA,
) -> list[PromotedPattern]:
    """Unpromoted patterns meeting ``criteria``, highest priority first.

    Priority is ``success_count * confidence``.
    """
    promotable = [
        PromotedPattern(
            pattern=p,
            generated_regex=generate_regex_from_text(p.original_text),
            priority=p.success_count * p.confidence,
        )
        for p in patterns
        if not p.promoted_to_core and not missing_promotion_criteria(p, criteria)
    ]
    promotable.sort(key=lambda c: c.priority, reverse=True)
    return promotable

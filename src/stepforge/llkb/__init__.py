"""
Learned pattern knowledge base (LLKB).

The fallback matcher consulted when the static grammar has no rule for
a step. Patterns are learned from accepted mappings and scored with the
Wilson lower bound.
"""

from .confidence import calculate_confidence
from .promotion import (
    DEFAULT_PROMOTION_CRITERIA,
    PromotedPattern,
    PromotionCriteria,
    generate_regex_from_text,
    get_promotable_patterns,
    missing_promotion_criteria,
)
from .similarity import calculate_similarity, levenshtein_distance
from .store import (
    DEFAULT_MIN_SIMILARITY,
    EXPORT_FILE,
    PATTERNS_FILE,
    ExportResult,
    LearnedPattern,
    LearnedPatternStore,
    LlkbDocument,
    LlkbMatch,
    LlkbStats,
    PruneResult,
)

__all__ = [
    "calculate_confidence",
    "calculate_similarity",
    "levenshtein_distance",
    "DEFAULT_MIN_SIMILARITY",
    "DEFAULT_PROMOTION_CRITERIA",
    "PromotedPattern",
    "PromotionCriteria",
    "generate_regex_from_text",
    "get_promotable_patterns",
    "missing_promotion_criteria",
    "EXPORT_FILE",
    "PATTERNS_FILE",
    "ExportResult",
    "LearnedPattern",
    "LearnedPatternStore",
    "LlkbDocument",
    "LlkbMatch",
    "LlkbStats",
    "PruneResult",
]

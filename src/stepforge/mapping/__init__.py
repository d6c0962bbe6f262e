"""
Step text to IR mapping: glossary, hints, grammar and the step mapper.
"""

from .glossary import (
    DEFAULT_GLOSSARY,
    Glossary,
    GlossaryEntry,
    GlossaryNormalizer,
    ModuleMethod,
    ModuleMethodMatch,
    load_glossary,
    merge_glossaries,
)
from .hints import (
    BehaviorHints,
    ExtractedHints,
    Hint,
    LocatorHints,
    extract_hints,
    has_behavior_hints,
    has_locator_hints,
    parse_module_hint,
)
from .patterns import (
    PATTERN_VERSION,
    PATTERNS,
    PatternMatch,
    StepPattern,
    get_all_pattern_names,
    get_pattern_count_by_category,
    get_pattern_matches,
    match_pattern,
)
from .step_mapper import (
    MappingStats,
    MatchSource,
    StepMapper,
    StepMappingResult,
    get_mapping_stats,
    suggest_improvements,
)

__all__ = [
    "DEFAULT_GLOSSARY",
    "Glossary",
    "GlossaryEntry",
    "GlossaryNormalizer",
    "ModuleMethod",
    "ModuleMethodMatch",
    "load_glossary",
    "merge_glossaries",
    "BehaviorHints",
    "ExtractedHints",
    "Hint",
    "LocatorHints",
    "extract_hints",
    "has_behavior_hints",
    "has_locator_hints",
    "parse_module_hint",
    "PATTERN_VERSION",
    "PATTERNS",
    "PatternMatch",
    "StepPattern",
    "get_all_pattern_names",
    "get_pattern_count_by_category",
    "get_pattern_matches",
    "match_pattern",
    "MappingStats",
    "MatchSource",
    "StepMapper",
    "StepMappingResult",
    "get_mapping_stats",
    "suggest_improvements",
]

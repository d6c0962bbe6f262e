"""
Journey documents: header schema, parser and IR normalizer.
"""

from .normalizer import (
    BlockedStep,
    CodegenReadiness,
    NormalizeResult,
    NormalizeStats,
    build_tags,
    completion_signals_to_assertions,
    normalize_journey,
    validate_journey_for_codegen,
)
from .parser import (
    AcceptanceCriterion,
    ParsedJourney,
    ProceduralStep,
    StructuredStep,
    parse_journey,
    parse_journey_content,
)
from .schema import JourneyHeader, JourneyStatus, validate_for_autogen

__all__ = [
    "BlockedStep",
    "CodegenReadiness",
    "NormalizeResult",
    "NormalizeStats",
    "build_tags",
    "completion_signals_to_assertions",
    "normalize_journey",
    "validate_journey_for_codegen",
    "AcceptanceCriterion",
    "ParsedJourney",
    "ProceduralStep",
    "StructuredStep",
    "parse_journey",
    "parse_journey_content",
    "JourneyHeader",
    "JourneyStatus",
    "validate_for_autogen",
]

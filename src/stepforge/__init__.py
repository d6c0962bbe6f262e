"""
stepforge - compile natural-language test journeys into a typed IR.

Journeys (a YAML header plus prose acceptance criteria) are compiled step
by step into UI action/assertion primitives through a priority-ordered
pattern grammar backed by a learned-pattern store. Generated code is
re-emitted through managed blocks so hand-written edits survive.
"""

from __future__ import annotations

from ._version import __version__
from .core import ir
from .core.errors import (
    ConfigError,
    GlossaryError,
    JourneyParseError,
    PatternStoreError,
    RegenerationError,
    StepforgeError,
)

__all__ = [
    "__version__",
    "ir",
    "StepforgeError",
    "JourneyParseError",
    "GlossaryError",
    "PatternStoreError",
    "ConfigError",
    "RegenerationError",
]

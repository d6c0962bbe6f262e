"""Core stepforge functionality: IR types, errors and project configuration."""

from . import ir
from .config import CodegenConfig, GlossaryConfig, LlkbConfig, StepforgeConfig, load_config
from .errors import (
    ConfigError,
    ErrorContext,
    GlossaryError,
    JourneyParseError,
    PatternStoreError,
    RegenerationError,
    StepforgeError,
)

__all__ = [
    "ir",
    "StepforgeConfig",
    "GlossaryConfig",
    "LlkbConfig",
    "CodegenConfig",
    "load_config",
    "StepforgeError",
    "ErrorContext",
    "JourneyParseError",
    "GlossaryError",
    "PatternStoreError",
    "ConfigError",
    "RegenerationError",
]

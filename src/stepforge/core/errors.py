"""
Error types for stepforge journey parsing, glossary loading and code regeneration.

Only hard failures are exceptions. Per-step mapping failures become
``blocked`` primitives and malformed managed blocks become warnings.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class StepforgeError(Exception):
    """Base exception for all stepforge errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class JourneyParseError(StepforgeError):
    """
    Raised when a journey document cannot be parsed.

    Examples:
    - Missing ``---`` header delimiters
    - Header that is not valid YAML
    - Header failing schema validation (bad id, unknown tier, ...)
    - Unreadable journey file
    """

    def __init__(
        self,
        message: str,
        file_path: Path | str | None = None,
        cause: BaseException | None = None,
    ):
        self.file_path = Path(file_path) if file_path is not None else None
        self.cause = cause
        context = ErrorContext(file=self.file_path) if self.file_path is not None else None
        super().__init__(message, context)


class GlossaryError(StepforgeError):
    """Raised when a glossary file exists but cannot be loaded or validated."""

    pass


class PatternStoreError(StepforgeError):
    """
    Raised when the learned pattern store cannot be written.

    Unreadable or corrupt stores are not errors; they read as empty.
    """

    pass


class ConfigError(StepforgeError):
    """Raised when stepforge.toml is present but invalid."""

    pass


class RegenerationError(StepforgeError):
    """Raised when a generated file cannot be read or written back."""

    pass


@dataclass
class ErrorContext:
    """Location context for error messages."""

    file: Path
    line: int | None = None

    def format(self) -> str:
        if self.line is not None:
            return f"{self.file}:{self.line}"
        return str(self.file)

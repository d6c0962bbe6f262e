"""
Project configuration loaded from ``stepforge.toml``.

Every section is optional; a project without the file gets the defaults.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError, ErrorContext

CONFIG_FILE = "stepforge.toml"


@dataclass
class GlossaryConfig:
    """Glossary overrides merged on top of the built-in defaults."""

    path: Path | None = None


@dataclass
class LlkbConfig:
    """Learned pattern store configuration."""

    root: Path = Path(".stepforge/llkb")
    min_confidence: float = 0.7
    cache_ttl: float = 5.0
    fuzzy_match: bool = True
    min_similarity: float = 0.7


@dataclass
class CodegenConfig:
    """Managed block output configuration."""

    comment: str = "//"  # Line comment prefix of the generated language


@dataclass
class StepforgeConfig:
    name: str = "stepforge-project"
    project_root: Path = field(default_factory=Path.cwd)
    glossary: GlossaryConfig = field(default_factory=GlossaryConfig)
    llkb: LlkbConfig = field(default_factory=LlkbConfig)
    codegen: CodegenConfig = field(default_factory=CodegenConfig)

    @property
    def llkb_root(self) -> Path:
        """LLKB root resolved against the project root."""
        return self._resolve(self.llkb.root)

    @property
    def glossary_path(self) -> Path | None:
        if self.glossary.path is None:
            return None
        return self._resolve(self.glossary.path)

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.project_root / path


def _section(data: dict[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table", ErrorContext(file=path))
    return section


def _boolean(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def load_config(project_root: Path) -> StepforgeConfig:
    """Load stepforge.toml from a project root.

    Args:
        project_root: Directory that may contain stepforge.toml.

    Returns:
        Parsed configuration, or defaults when the file is absent.

    Raises:
        ConfigError: If the file is not valid TOML or has wrongly typed values.
    """
    path = project_root / CONFIG_FILE
    if not path.exists():
        return StepforgeConfig(project_root=project_root)

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML: {e}", ErrorContext(file=path)) from e

    project = _section(data, "project", path)
    glossary_data = _section(data, "glossary", path)
    llkb_data = _section(data, "llkb", path)
    codegen_data = _section(data, "codegen", path)

    try:
        glossary_path = glossary_data.get("path")
        glossary = GlossaryConfig(path=Path(glossary_path) if glossary_path else None)

        llkb = LlkbConfig(
            root=Path(llkb_data.get("root", ".stepforge/llkb")),
            min_confidence=float(llkb_data.get("min_confidence", 0.7)),
            cache_ttl=float(llkb_data.get("cache_ttl", 5.0)),
            fuzzy_match=_boolean(llkb_data.get("fuzzy_match", True), "llkb.fuzzy_match"),
            min_similarity=float(llkb_data.get("min_similarity", 0.7)),
        )

        codegen = CodegenConfig(comment=str(codegen_data.get("comment", "//")))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}", ErrorContext(file=path)) from e

    for key in ("min_confidence", "min_similarity"):
        value = getattr(llkb, key)
        if not 0.0 <= value <= 1.0:
            raise ConfigError(
                f"llkb.{key} must be between 0 and 1, got {value}", ErrorContext(file=path)
            )

    return StepforgeConfig(
        name=project.get("name", "stepforge-project"),
        project_root=project_root,
        glossary=glossary,
        llkb=llkb,
        codegen=codegen,
    )

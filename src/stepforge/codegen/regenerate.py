"""
Regenerate a generated file in place, keeping the user's edits.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ..core.errors import ErrorContext, RegenerationError
from ..core.ir import IRJourney
from .blocks import DEFAULT_COMMENT, BlockWarning, NewBlock, extract_managed_blocks, inject_managed_blocks

logger = logging.getLogger(__name__)

Renderer = Callable[[IRJourney], Sequence[NewBlock]]


@dataclass
class RegenerationResult:
    path: Path
    changed: bool
    warnings: list[BlockWarning] = field(default_factory=list)


def _write_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise


def regenerate_file(
    path: Path,
    journey: IRJourney,
    renderer: Renderer,
    *,
    comment: str = DEFAULT_COMMENT,
) -> RegenerationResult:
    """Render a journey and merge the blocks into the file at ``path``.

    A missing file is treated as empty. The file is only rewritten when
    the merged content differs from what is on disk.

    Raises:
        RegenerationError: If the file cannot be read or written.
    """
    try:
        existing = path.read_text(encoding="utf-8") if path.exists() else ""
    except OSError as e:
        raise RegenerationError(f"Cannot read generated file: {e}", ErrorContext(file=path)) from e

    warnings = extract_managed_blocks(existing).warnings if existing else []
    merged = inject_managed_blocks(existing, list(renderer(journey)), comment=comment)

    if merged == existing:
        logger.debug(f"{path} unchanged")
        return RegenerationResult(path=path, changed=False, warnings=warnings)

    try:
        _write_atomic(path, merged)
    except OSError as e:
        raise RegenerationError(f"Cannot write generated file: {e}", ErrorContext(file=path)) from e

    logger.info(f"Regenerated {path} for {journey.id}")
    return RegenerationResult(path=path, changed=True, warnings=warnings)

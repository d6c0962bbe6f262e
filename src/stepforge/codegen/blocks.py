"""
Managed blocks - regions of a generated file that regeneration may overwrite.

A managed block sits between two marker comments::

    // STEPFORGE:BEGIN GENERATED id=login-test
    test('login', async ({ page }) => { ... });
    // STEPFORGE:END GENERATED

Everything outside a block belongs to the user and survives
regeneration verbatim and in order. Markers are recognized by their
token anywhere on a line, whatever the comment syntax; the comment
prefix only matters when writing new markers.

Malformed structure is recovered, never fatal:

- a BEGIN inside an open block closes the open block just before it
- an END outside any block is ordinary text
- a block still open at end of input is dropped with its content
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

BLOCK_START_TOKEN = "STEPFORGE:BEGIN GENERATED"
BLOCK_END_TOKEN = "STEPFORGE:END GENERATED"
BLOCK_ID_PATTERN = re.compile(r"STEPFORGE:BEGIN GENERATED(?:\s+id=(\S+))?")
# Ids are read back up to the next whitespace, so they may not contain any
VALID_BLOCK_ID = re.compile(r"\S+")
DEFAULT_COMMENT = "//"


@dataclass(frozen=True)
class ManagedBlock:
    """A block found in existing source. Line numbers are 0-based."""

    id: str | None
    start_line: int
    end_line: int
    content: str


@dataclass(frozen=True)
class BlockWarning:
    type: str  # "nested" or "unclosed"
    line: int  # 1-based
    message: str


@dataclass(frozen=True)
class NewBlock:
    content: str
    id: str | None = None

    def __post_init__(self) -> None:
        check_block_id(self.id)


@dataclass
class BlockExtraction:
    blocks: list[ManagedBlock] = field(default_factory=list)
    preserved_lines: list[str] = field(default_factory=list)
    warnings: list[BlockWarning] = field(default_factory=list)

    @property
    def has_blocks(self) -> bool:
        return bool(self.blocks)


@dataclass
class _Text:
    line: str


@dataclass
class _Block:
    block: ManagedBlock
    start_marker: str
    end_marker: str | None  # None when closed early by a nested BEGIN
    line_count: int = 0


def is_start_marker(line: str) -> bool:
    return BLOCK_START_TOKEN in line


def is_end_marker(line: str) -> bool:
    return BLOCK_END_TOKEN in line


def check_block_id(block_id: str | None) -> None:
    """Reject ids that would not survive a write and re-read unchanged."""
    if block_id and not VALID_BLOCK_ID.fullmatch(block_id):
        raise ValueError(f"Managed block id must not contain whitespace: {block_id!r}")


def start_marker(block_id: str | None = None, *, comment: str = DEFAULT_COMMENT) -> str:
    check_block_id(block_id)
    marker = f"{comment} {BLOCK_START_TOKEN}"
    return f"{marker} id={block_id}" if block_id else marker


def end_marker(*, comment: str = DEFAULT_COMMENT) -> str:
    return f"{comment} {BLOCK_END_TOKEN}"


def wrap_in_block(content: str, block_id: str | None = None, *, comment: str = DEFAULT_COMMENT) -> str:
    return f"{start_marker(block_id, comment=comment)}\n{content}\n{end_marker(comment=comment)}"


def _scan(source: str) -> tuple[list[_Text | _Block], list[BlockWarning]]:
    """Single forward pass splitting source into text lines and blocks."""
    segments: list[_Text | _Block] = []
    warnings: list[BlockWarning] = []

    open_start: int | None = None
    open_id: str | None = None
    open_marker = ""
    content: list[str] = []

    for index, line in enumerate(source.split("\n")):
        if is_start_marker(line):
            if open_start is not None:
                warnings.append(
                    BlockWarning(
                        type="nested",
                        line=index + 1,
                        message=(
                            f"Nested managed block detected at line {index + 1}. "
                            f"Previous block starting at line {open_start + 1} will be closed."
                        ),
                    )
                )
                block = ManagedBlock(
                    id=open_id, start_line=open_start, end_line=index - 1, content="\n".join(content)
                )
                segments.append(
                    _Block(block=block, start_marker=open_marker, end_marker=None, line_count=len(content))
                )
            match = BLOCK_ID_PATTERN.search(line)
            open_start = index
            open_id = match.group(1) if match else None
            open_marker = line
            content = []
            continue

        if open_start is not None and is_end_marker(line):
            block = ManagedBlock(
                id=open_id, start_line=open_start, end_line=index, content="\n".join(content)
            )
            segments.append(
                _Block(block=block, start_marker=open_marker, end_marker=line, line_count=len(content))
            )
            open_start = None
            open_id = None
            content = []
            continue

        if open_start is not None:
            content.append(line)
        else:
            segments.append(_Text(line=line))

    if open_start is not None:
        warnings.append(
            BlockWarning(
                type="unclosed",
                line=open_start + 1,
                message=(
                    f"Unclosed managed block starting at line {open_start + 1} "
                    "- block will be ignored"
                ),
            )
        )
    return segments, warnings


def extract_managed_blocks(source: str) -> BlockExtraction:
    """Split source into managed blocks and the user's lines around them."""
    segments, warnings = _scan(source)
    extraction = BlockExtraction(warnings=warnings)
    for segment in segments:
        if isinstance(segment, _Block):
            extraction.blocks.append(segment.block)
        else:
            extraction.preserved_lines.append(segment.line)
    for warning in warnings:
        logger.warning(warning.message)
    return extraction


def _strip_blank_edges(lines: list[str]) -> list[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def inject_managed_blocks(
    existing_code: str,
    new_blocks: Sequence[NewBlock],
    *,
    comment: str = DEFAULT_COMMENT,
) -> str:
    """Merge freshly generated blocks into existing source.

    Blocks with an id replace the existing block with that id. Id-less
    blocks pair up by position: the nth id-less new block replaces the
    nth id-less existing block. This pairing goes wrong if the number or
    order of id-less blocks changes between generations, so give blocks
    ids wherever the generator can.

    Existing blocks without a counterpart are kept as they are; new
    blocks without a counterpart are appended, each after a blank line.
    """
    if not existing_code.strip():
        return "\n\n".join(wrap_in_block(b.content, b.id, comment=comment) for b in new_blocks)

    segments, _ = _scan(existing_code)
    if not any(isinstance(s, _Block) for s in segments):
        preserved = "\n".join(_strip_blank_edges([s.line for s in segments if isinstance(s, _Text)]))
        generated = "\n\n".join(wrap_in_block(b.content, b.id, comment=comment) for b in new_blocks)
        if not generated:
            return preserved
        return f"{preserved}\n\n{generated}" if preserved else generated

    by_id: dict[str, NewBlock] = {}
    for block in new_blocks:
        if block.id and block.id not in by_id:
            by_id[block.id] = block
    id_less = [b for b in new_blocks if not b.id]

    used_ids: set[str] = set()
    used_positions: set[int] = set()
    position = 0
    out: list[str] = []

    for segment in segments:
        if isinstance(segment, _Text):
            out.append(segment.line)
            continue

        existing = segment.block
        replacement: NewBlock | None = None
        if existing.id:
            replacement = by_id.get(existing.id)
            if replacement is not None:
                used_ids.add(existing.id)
        else:
            if position < len(id_less):
                replacement = id_less[position]
                used_positions.add(position)
            position += 1

        if replacement is not None:
            out.append(wrap_in_block(replacement.content, replacement.id, comment=comment))
            continue

        # Untouched: re-emit as found, closing a block that a nested BEGIN cut short
        out.append(segment.start_marker)
        if segment.line_count:
            out.append(existing.content)
        out.append(segment.end_marker if segment.end_marker is not None else end_marker(comment=comment))

    slot = 0
    for block in new_blocks:
        if block.id:
            if block.id in used_ids:
                continue
            used_ids.add(block.id)
        else:
            slot += 1
            if slot - 1 in used_positions:
                continue
        out.append("")
        out.append(wrap_in_block(block.content, block.id, comment=comment))

    return "\n".join(out)

"""
Managed-block output: merge generated code into files users also edit.
"""

from .blocks import (
    BLOCK_END_TOKEN,
    BLOCK_START_TOKEN,
    BlockExtraction,
    BlockWarning,
    ManagedBlock,
    NewBlock,
    extract_managed_blocks,
    inject_managed_blocks,
    wrap_in_block,
)
from .regenerate import RegenerationResult, Renderer, regenerate_file

__all__ = [
    "BLOCK_END_TOKEN",
    "BLOCK_START_TOKEN",
    "BlockExtraction",
    "BlockWarning",
    "ManagedBlock",
    "NewBlock",
    "extract_managed_blocks",
    "inject_managed_blocks",
    "wrap_in_block",
    "RegenerationResult",
    "Renderer",
    "regenerate_file",
]

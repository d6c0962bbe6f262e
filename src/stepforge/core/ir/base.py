"""Shared pydantic base for IR types."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class IRModel(BaseModel):
    """
    Immutable IR node.

    Attributes are snake_case in Python and camelCase on the wire, so
    ``to_dict()`` yields the same shapes the journey tooling exchanges
    as JSON (``sourceText``, ``toastType``, ``waitForLoad``, ...).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation: camelCase keys, unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

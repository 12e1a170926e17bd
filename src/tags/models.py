"""Tag records attached to IR nodes and fields."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Tag(BaseModel):
    """One annotation tag in textual order.

    ``parsed`` is ``None`` for unknown tags that pass through unparsed.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    raw_arguments: str = Field(default="", description="Payload text as written")
    parsed: dict[str, Any] | None = Field(
        default=None, description="Structured payload for recognized tags"
    )


__all__ = ["Tag"]

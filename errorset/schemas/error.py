"""Wire schema for serialized error sets."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationInfo
from pydantic import field_validator


class ErrorPayload(BaseModel):
    """JSON shape of an error set: optional code, ordered meta, named fields."""

    code: int = 0
    meta: list[str] = Field(default_factory=list)
    fields: dict[str, str] = Field(default_factory=dict)

    @field_validator("meta", "fields", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return [] if info.field_name == "meta" else {}
        return value

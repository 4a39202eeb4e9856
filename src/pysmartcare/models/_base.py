"""Base model and shared field types for SmartCare API records.

Every record model inherits from :class:`SmartCareModel` which provides:

* ``alias_generator=to_camel`` so camelCase API keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``null`` values so
  the field default is used instead.
* A ``raw`` dict that captures the original payload.

:data:`ApiTimestamp` and :data:`EntityId` normalize the two value kinds
the backend is loose about: textual timestamps and GUID/number ids.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from pysmartcare.ingestion.normalize import coerce_id, parse_timestamp

ApiTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Required timestamp; unparseable input fails validation."""

OptionalApiTimestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
"""Nullable timestamp; unparseable input becomes ``None``."""

EntityId = Annotated[str, BeforeValidator(coerce_id), Field(min_length=1)]
"""Non-empty identifier, accepting GUID strings or integers."""


class SmartCareModel(BaseModel):
    """Base for SmartCare API record models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original API record."""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        """Drop ``null`` values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = {key: value for key, value in values.items() if value is not None}
        # Keep an explicitly passed raw= (kwargs construction).
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned

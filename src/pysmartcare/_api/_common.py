"""Shared helpers for SmartCare endpoint modules.

This module centralizes the repeated response handling:
- URL-quoting path parameters
- validating list responses record by record
- validating single-record mutation responses

It is internal to pysmartcare and may change at any time.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from pysmartcare._redact import redact_for_log
from pysmartcare.exceptions import SmartCareApiError

_logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def path(template: str, **params: str) -> str:
    """Fill an endpoint template, quoting every parameter as one segment."""
    return template.format(**{key: quote(str(value), safe="") for key, value in params.items()})


def parse_records(model: type[M], payload: Any, *, endpoint: str) -> list[M]:
    """Validate a list response, skipping records that do not validate.

    A response that is not a list at all is an API error; individual bad
    records are logged and dropped so one corrupt row cannot blank the
    whole snapshot.
    """
    if not isinstance(payload, list):
        raise SmartCareApiError(
            f"{endpoint} returned {type(payload).__name__}, expected a list",
            endpoint=endpoint,
        )

    records: list[M] = []
    for index, item in enumerate(payload):
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            _logger.warning(
                "Skipping invalid %s record #%d from %s: %s (record=%s)",
                model.__name__,
                index,
                endpoint,
                exc.errors(include_url=False, include_input=False),
                redact_for_log(item),
            )
    return records


def parse_record(model: type[M], payload: Any, *, endpoint: str) -> M:
    """Validate a single-record response (e.g. a created entity)."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise SmartCareApiError(
            f"{endpoint} returned an invalid {model.__name__}: {exc.error_count()} error(s)",
            endpoint=endpoint,
        ) from exc

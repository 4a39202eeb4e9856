"""Normalization helpers.

Centralizes defensive parsing of backend values before they reach the
models and the state store.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar

T = TypeVar("T")

# Threshold to distinguish epoch seconds from milliseconds.
_MS_THRESHOLD = 100_000_000_000


def safe_int(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return int(result)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def non_negative_or_zero(value: Any) -> int:
    parsed = safe_int(value)
    if parsed is None or parsed < 0:
        return 0
    return parsed


def coerce_id(value: Any) -> Any:
    """Render numeric or GUID-like identifiers as plain strings.

    Anything that is not a scalar is returned unchanged so model
    validation can reject it.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, str)):
        return str(value).strip()
    return value


def _from_epoch(value: float) -> datetime:
    if abs(value) >= _MS_THRESHOLD:
        value /= 1000.0
    return datetime.fromtimestamp(value, tz=UTC)


def parse_timestamp(value: Any) -> datetime | None:
    """Convert a backend timestamp into a timezone-aware UTC datetime.

    Accepts ISO-8601 text (with ``Z``, an explicit offset or no zone at
    all, in which case UTC is assumed; .NET's seven-digit fractions are
    truncated), epoch seconds or milliseconds, and datetimes.  Returns
    ``None`` for missing or unparseable values.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        try:
            parsed = _from_epoch(float(value))
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _from_epoch(float(text))
        except ValueError:
            pass
        except (OverflowError, OSError):
            return None
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def group_by_owner(items: Iterable[T], owner_of: Callable[[T], str]) -> dict[str, list[T]]:
    """Group a flat list into per-owner lists, preserving input order."""
    grouped: dict[str, list[T]] = {}
    for item in items:
        grouped.setdefault(owner_of(item), []).append(item)
    return grouped

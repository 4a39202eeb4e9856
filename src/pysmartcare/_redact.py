"""Helpers for safe debug logging.

pysmartcare handles bearer tokens and clinical text (message content,
notification bodies). This module redacts those fields before anything
is emitted to the logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "authorization",
        "apitoken",
        "api_token",
        "token",
        "password",
        "cookie",
        # Clinical free text
        "content",
        "message",
        "lastmessage",
        "last_message",
        "title",
    }
)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)


def describe_payload(payload: str | bytes) -> str:
    """Describe an undecodable payload without echoing its contents.

    Raw push events may carry clinical text that could not be parsed far
    enough to redact field by field, so only the size and the first
    structural character are reported.
    """
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    stripped = payload.lstrip()
    lead = stripped[:1] if stripped else ""
    return f"<payload {len(payload)} chars, starts with {lead!r}>"

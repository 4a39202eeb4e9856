from __future__ import annotations

from pysmartcare._redact import describe_payload, redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "senderId": "u1",
        "content": "Chest pain since Monday",
        "authorization": "Bearer abc",
        "nested": {"title": "HIV test result", "lastMessage": "See attached"},
        "items": [{"message": "Body text", "type": "info"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["senderId"] == "u1"
    assert redacted["content"] == "<redacted>"
    assert redacted["authorization"] == "<redacted>"
    assert redacted["nested"]["title"] == "<redacted>"
    assert redacted["nested"]["lastMessage"] == "<redacted>"
    assert redacted["items"][0]["message"] == "<redacted>"
    assert redacted["items"][0]["type"] == "info"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_passes_scalars_through() -> None:
    assert redact_for_log(None) is None
    assert redact_for_log(3) == 3
    assert redact_for_log(b"abc") == "<bytes:3b>"


def test_describe_payload_never_echoes_content() -> None:
    payload = '{"content": "secret diagnosis"'
    description = describe_payload(payload)
    assert "secret" not in description
    assert f"{len(payload)} chars" in description

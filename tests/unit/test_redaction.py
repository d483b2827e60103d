"""Unit tests for sensitive data redaction."""

import pytest

from filebox.bootstrap.logging_setup import redact_sensitive


@pytest.mark.parametrize(
    "value",
    [
        "Authorization: Bearer token123",
        "token=abc123def456",
        "api_key=secret",
        "api-key=secret",
        "password=secret123",
        "Password: mypass",
        "signature=xyz789",
        "client_secret=abc123",
        "Cookie: filebox_session=abc",
        "TOKEN=abc",
    ],
)
def test_redacts_sensitive_keywords(value):
    """Anything mentioning credentials or cookies is masked."""
    assert redact_sensitive(value) == "[REDACTED]"


def test_redact_long_hex_and_base64_sequences():
    """Long opaque tokens are masked even without a keyword."""
    assert redact_sensitive("0123456789abcdef0123456789abcdef") == "[REDACTED]"
    assert redact_sensitive("YWJjZGVmZ2hpamtsbW5vcHFyc3R1dnd4eXo=") == "[REDACTED]"


def test_no_redaction_for_safe_values():
    """Ordinary values pass through unchanged."""
    assert redact_sensitive("user_id=123") == "user_id=123"
    assert redact_sensitive("127.0.0.1:54321") == "127.0.0.1:54321"
    assert redact_sensitive("NotFound") == "NotFound"


def test_redact_empty_and_none():
    """Empty values are returned as-is."""
    assert redact_sensitive("") == ""
    assert redact_sensitive(None) is None

import json
import logging

from storefront.common.logging_setup import JSONFormatter, SecurityFilter, mask_email, sanitize_message_text


def _record(msg, args=(), **extra):
    record = logging.LogRecord("storefront.test", logging.INFO, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_redacts_and_masks():
    record = _record("login.attempt", email="alice@example.com", password="Secret#123", user_id="u-1")

    out = json.loads(JSONFormatter().format(record))

    assert out["event"] == "login.attempt"
    assert out["password"] == "[REDACTED]"
    assert out["email"] == "al***@example.com"
    assert out["user_id"] == "u-1"
    assert out["service"] == "storefront"


def test_free_text_secrets_are_scrubbed():
    text = sanitize_message_text('token=abc.def password: hunter2 {"refresh_token": "xyz"}')

    assert "abc.def" not in text
    assert "hunter2" not in text
    assert "xyz" not in text


def test_security_filter_renders_args_first():
    record = _record("calling psp with secret=%s", args=("shh",))

    assert SecurityFilter().filter(record) is True
    assert record.getMessage() == "calling psp with secret=[REDACTED]"


def test_mask_email_without_at_sign():
    assert mask_email("alice") == "al***"

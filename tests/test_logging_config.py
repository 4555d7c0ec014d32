"""
Tests for log redaction.
"""

import logging

from dashauth.core.logging_config import RedactTokensFilter
from dashauth.core.security import SessionTokenIssuer


def _record(msg, *args):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_bearer_header_masked():
    record = _record("Authorization: Bearer %s", "abc.def.ghi")

    RedactTokensFilter().filter(record)

    assert record.getMessage() == "Authorization: Bearer [redacted]"


def test_session_token_masked():
    token = SessionTokenIssuer("secret").issue("user-1", "device-1")
    record = _record(f"token was {token}")

    RedactTokensFilter().filter(record)

    assert token not in record.getMessage()
    assert "[redacted-token]" in record.getMessage()


def test_plain_message_untouched():
    record = _record("Login challenge issued for %s", "maria@example.com")

    assert RedactTokensFilter().filter(record)
    assert record.getMessage() == "Login challenge issued for maria@example.com"
    assert record.args == ("maria@example.com",)

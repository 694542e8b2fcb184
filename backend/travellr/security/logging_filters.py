"""Logging filters that scrub sensitive content."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+|access_token\"\s*:\s*\"[^\"]+\"|password\"\s*:\s*\"[^\"]+\")",
    re.IGNORECASE,
)
# Credentials embedded in connection URLs, e.g. redis://:secret@host:6379/0
_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-z][a-z0-9+]*://)[^/\s:@]*:[^/\s@]+@", re.IGNORECASE)


def redact(message: str) -> str:
    message = _SENSITIVE_PATTERN.sub("**REDACTED**", message)
    return _URL_CREDENTIALS.sub(r"\g<scheme>**REDACTED**@", message)


class SensitiveFilter(logging.Filter):
    """Replace sensitive tokens in log messages with a redaction marker."""

    def filter(
        self, record: logging.LogRecord
    ) -> bool:  # pragma: no cover - logging side effect
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        return True


__all__ = ["SensitiveFilter", "redact"]

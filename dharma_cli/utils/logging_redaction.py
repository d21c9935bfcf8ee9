"""
Logging redaction helpers.
Redacts secrets (tokens, private keys, passphrases) from log messages.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable


_PATTERNS: Iterable[tuple[re.Pattern, str]] = (
    # Authorization: Bearer <token>
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-\._~+/]+=*)"), r"\1[REDACTED]"),
    # Labelled private keys; bare 32-byte hex is a tx or block hash
    (re.compile(r"(?i)\b((?:private[_ ]?)?key\s*[:=]?\s*)0x[0-9a-fA-F]{64}\b"), r"\g<1>0x[REDACTED]"),
    # Auth token key/value
    (re.compile(r"(?i)(auth[_-]?token|access_token|token)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
    # Passphrase / mnemonic key/value, quoted or bare
    (
        re.compile(r"(?i)(passphrase|password|mnemonic|recovery[_ ]phrase)\s*[:=]\s*(['\"]).*?\2"),
        r"\1=[REDACTED]",
    ),
    (re.compile(r"(?i)(passphrase|password|mnemonic)\s*[:=]\s*(\S+)"), r"\1=[REDACTED]"),
)


def redact_message(message: str) -> str:
    redacted = message
    for pattern, replacement in _PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive data from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:
            # Unformattable records go through unmodified
            return True
        record.msg = redact_message(message)
        record.args = ()
        return True


def install_redaction_filter() -> None:
    root = logging.getLogger()
    for handler in root.handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())

"""Logging Hardening and Redaction.

This module provides filters to prevent key material and data source
credentials from appearing in logs. SQL echo output in particular carries
insert parameters, including the wrapped key JSON.
"""
import logging
import re
from typing import Iterable

# Wrapped key payloads, raw or JSON-escaped inside a repr'd parameter tuple
SECRET_PATTERNS = [
    (re.compile(r'(\\?"data\\?":\s*\\?")[A-Za-z0-9+/=]+(\\?")'), r'\1[REDACTED]\2'),
    (re.compile(r'(password=)[^\s&\'"]+', re.IGNORECASE), r'\1[REDACTED]'),
    (re.compile(r'(://[^:/@\s]+:)[^@\s]+(@)'), r'\1[REDACTED]\2'),
]

DEFAULT_LOGGERS = ("sqlkeeper", "sqlalchemy.engine", "sqlalchemy.engine.Engine")


def redact(text: str) -> str:
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretRedactionFilter(logging.Filter):
    """Filter that redacts key material and credentials from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True

        redacted = redact(message)
        if redacted != message:
            # Freeze the formatted message so args cannot reintroduce secrets.
            record.msg = redacted
            record.args = None
        return True


def setup_logging_redaction(logger_names: Iterable[str] = DEFAULT_LOGGERS) -> None:
    """Attach SecretRedactionFilter to the given loggers and their existing children."""
    redact_filter = SecretRedactionFilter()
    prefixes = tuple(logger_names)

    names = set(prefixes)
    for name in logging.root.manager.loggerDict:
        if name.startswith(tuple(p + "." for p in prefixes)):
            names.add(name)

    for name in names:
        logger = logging.getLogger(name)
        # Remove existing filters if any (to avoid duplicates)
        for f in logger.filters[:]:
            if isinstance(f, SecretRedactionFilter):
                logger.removeFilter(f)
        logger.addFilter(redact_filter)

"""Logging setup.

Records pass through a redaction filter so access tokens never reach the
terminal, even in --verbose output that echoes request details.
"""

import logging
import re
from typing import ClassVar

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Their request lines duplicate the client's own debug output
QUIET_LOGGERS = ("httpx", "httpcore")


class SecretRedactingFilter(logging.Filter):
    """Replace GitHub credentials in log records with placeholders."""

    SECRET_PATTERNS: ClassVar[list[tuple[re.Pattern[str], str]]] = [
        (re.compile(r"\bgh[opus]_[A-Za-z0-9]{20,}"), "[REDACTED_GH_TOKEN]"),
        (re.compile(r"\bgithub_pat_\w+"), "[REDACTED_GH_PAT]"),
        # Covers "Authorization: token <t>" as well as bare and bearer values
        (
            re.compile(r"(Authorization:\s*(?:token\s+|bearer\s+)?)[^\s,\]'\"]+", re.IGNORECASE),
            r"\1[REDACTED]",
        ),
        (re.compile(r"([?&]access_token=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._redact(str(record.msg))
        if record.args:
            record.args = tuple(
                self._redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True

    def _redact(self, text: str) -> str:
        for pattern, replacement in self.SECRET_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for a command line run.

    Args:
        verbose: Log at DEBUG instead of INFO.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )

    redactor = SecretRedactingFilter()
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SecretRedactingFilter) for f in handler.filters):
            handler.addFilter(redactor)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

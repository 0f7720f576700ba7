"""Logging setup and secret redaction."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

REDACTED = "[REDACTED]"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SecretRedactingFilter(logging.Filter):
    """Mask passwords and destination tokens in log records.

    Webhook URLs embed their secret, so a failing HTTP call that logs its URL
    or exception text would otherwise leak it.
    """

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        # Longest first so a token containing another secret is masked whole.
        self._secrets = sorted({str(secret) for secret in secrets if str(secret)}, key=len, reverse=True)

    def _redact(self, value: Any) -> Any:
        if isinstance(value, str):
            for secret in self._secrets:
                value = value.replace(secret, REDACTED)
            return value
        if isinstance(value, BaseException):
            text = str(value)
            redacted = self._redact(text)
            return redacted if redacted != text else value
        if isinstance(value, (tuple, list)):
            return type(value)(self._redact(item) for item in value)
        if isinstance(value, dict):
            return {key: self._redact(item) for key, item in value.items()}
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        record.msg = self._redact(record.msg)
        if record.args:
            record.args = self._redact(record.args)
        return True


def configure_logging(level: str = "INFO", secrets: Iterable[str] = ()) -> None:
    """Configure root logging and install redaction on every root handler."""
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, level.upper(), logging.INFO))
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    redaction_filter = SecretRedactingFilter(secrets)
    for handler in root.handlers:
        handler.addFilter(redaction_filter)
    # aiohttp access noise is not useful here
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

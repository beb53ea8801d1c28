"""Log formatters for fedfarm.

Provides a formatter that masks secret values (passwords, client secrets,
tokens) before a record reaches a handler.
"""

import logging
import re
from typing import List, Optional, Tuple

REDACTED = "[REDACTED]"


class SecretRedactingFormatter(logging.Formatter):
    """Formatter that masks ``password=``, ``secret=`` and ``token=`` values.

    Matching is case-insensitive and also covers JSON-ish ``"password": "x"``
    fragments, which is how request payloads show up in debug logs.

    Attributes:
        redact_secrets: Whether to enable redaction
        patterns: List of (regex_pattern, replacement_text) tuples

    Example:
        >>> formatter = SecretRedactingFormatter(redact_secrets=True)
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: Optional[str] = None,
        redact_secrets: bool = True,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_secrets = redact_secrets

        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # password=hunter2, secret: abc, token='xyz'
            (
                re.compile(r"(?i)([A-Za-z_]*(?:password|secret|token))(\s*[=:]\s*)(['\"]?)[^\s'\",;|}]+\3"),
                rf"\1\2\3{REDACTED}\3",
            ),
            # "password": "hunter2"
            (
                re.compile(r"(?i)(['\"][A-Za-z_]*(?:password|secret|token)['\"]\s*:\s*)(['\"])[^'\"]*\2"),
                rf"\1\2{REDACTED}\2",
            ),
        ]

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        if self.redact_secrets:
            for pattern, replacement in self.patterns:
                formatted = pattern.sub(replacement, formatted)
        return formatted

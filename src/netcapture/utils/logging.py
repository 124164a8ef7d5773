"""Logging configuration for netcapture.

Captured URLs and headers end up in log messages, so every handler set
up here masks credential-bearing headers and query parameters.
"""

import logging
import re

MASK = "[MASKED]"


class SensitiveDataMaskingFilter(logging.Filter):
    """Logging filter that masks credentials in log records.

    Header values of Authorization, Cookie and Set-Cookie, and the values
    of credential-like query parameters, are replaced with [MASKED].
    """

    SENSITIVE_PATTERNS = [
        # Header lines and dict entries: "Authorization: Bearer x", "'cookie': 'a=b'"
        re.compile(
            r"""(["']?\b(?:authorization|proxy-authorization|cookie|set-cookie)\b["']?\s*[:=]\s*["']?)"""
            r"""([^"'\n,}]+)""",
            re.IGNORECASE,
        ),
        # Query parameters: ?access_token=x&sig=y
        re.compile(
            r"([?&](?:access_token|token|api_key|apikey|signature|sig)=)([^&\s\"'#]+)",
            re.IGNORECASE,
        ),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Mask sensitive values in log records.

        Args:
            record: Log record to process

        Returns:
            Always True (record is always passed through, just modified)
        """
        if record.msg:
            record.msg = self.mask(str(record.msg))
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(self.mask(arg) if isinstance(arg, str) else arg for arg in record.args)
        return True

    def mask(self, text: str) -> str:
        """Mask all sensitive values in text.

        Args:
            text: Text potentially containing credentials

        Returns:
            Text with credential values replaced by [MASKED]
        """
        for pattern in self.SENSITIVE_PATTERNS:
            text = pattern.sub(lambda m: m.group(1) + MASK, text)
        return text


def setup_logging(level: int = logging.INFO, name: str | None = None) -> logging.Logger:
    """Set up logging with credential masking.

    Args:
        level: Logging level (default: INFO)
        name: Logger name (default: "netcapture")

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name or "netcapture")
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    handler.addFilter(SensitiveDataMaskingFilter())
    logger.addHandler(handler)

    return logger

"""
Logging utilities for the CBTC SDK with sensitive data masking.

Credentials pass through this SDK on every request (passwords, client
secrets, bearer tokens), so anything that might reach a log record goes
through the maskers here first.

Usage:
    import logging
    from cbtc_sdk.logging_utils import mask_sensitive_data, short_id

    logger = logging.getLogger(__name__)
    logger.debug("Token response: %s", mask_sensitive_data(payload))
    logger.info("Transfer %s confirmed", short_id(instruction_cid))
"""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Union

from .constants import LoggingConfig


# =============================================================================
# Sensitive Data Masking
# =============================================================================

def mask_value(value: str, show_chars: int = 4) -> str:
    """Mask a sensitive value, optionally showing first/last characters.

    Args:
        value: The value to mask
        show_chars: Number of characters to show at start and end

    Returns:
        Masked string
    """
    if not value or len(value) <= show_chars * 2:
        return LoggingConfig.MASK_PATTERN

    return f"{value[:show_chars]}...{value[-show_chars:]}"


def is_sensitive_key(key: str) -> bool:
    """Check if a key name indicates sensitive data.

    Args:
        key: The key name to check

    Returns:
        True if the key likely contains sensitive data
    """
    key_lower = key.lower().replace("-", "_")
    return key_lower in LoggingConfig.SENSITIVE_FIELDS or any(
        sensitive in key_lower
        for sensitive in ("secret", "password", "token", "credential", "authorization")
    )


def mask_sensitive_data(
    data: Any,
    additional_fields: Optional[Sequence[str]] = None,
    mask_pattern: str = LoggingConfig.MASK_PATTERN,
    _depth: int = 0,
    _max_depth: int = 10,
) -> Any:
    """Recursively mask sensitive data in a data structure.

    Args:
        data: The data structure to mask (dict, list, or scalar)
        additional_fields: Additional field names to mask
        mask_pattern: Pattern to replace sensitive values with

    Returns:
        Copy of data with sensitive values masked
    """
    if _depth > _max_depth:
        return data

    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            if is_sensitive_key(str(key)):
                result[key] = mask_pattern
            elif additional_fields and key in additional_fields:
                result[key] = mask_pattern
            else:
                result[key] = mask_sensitive_data(
                    value,
                    additional_fields,
                    mask_pattern,
                    _depth + 1,
                    _max_depth,
                )
        return result

    elif isinstance(data, (list, tuple)):
        return type(data)(
            mask_sensitive_data(
                item,
                additional_fields,
                mask_pattern,
                _depth + 1,
                _max_depth,
            )
            for item in data
        )

    elif isinstance(data, str):
        return _mask_inline_patterns(data)

    return data


def _mask_inline_patterns(text: str) -> str:
    """Mask bearer tokens, JWTs and URL credentials embedded in text."""
    if len(text) > LoggingConfig.MAX_LOG_MESSAGE_LENGTH:
        text = text[: LoggingConfig.MAX_LOG_MESSAGE_LENGTH] + "...[truncated]"

    patterns = [
        (r'(Bearer\s+)[a-zA-Z0-9._-]+', r'\1***'),
        (r'(Basic\s+)[a-zA-Z0-9+/=]+', r'\1***'),
        (r'(https?://)[^:/\s]+:[^@/\s]+@', r'\1***:***@'),
        (r'\beyJ[a-zA-Z0-9_-]+\.eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+\b', '***JWT***'),
        (r'\b(password|client_secret|refresh_token)=([^&\s]+)', r'\1=***'),
    ]

    for pattern, replacement in patterns:
        text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)

    return text


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Mask sensitive HTTP headers."""
    sensitive_headers = {"authorization", "cookie", "set-cookie"}
    return {
        key: LoggingConfig.MASK_PATTERN if key.lower() in sensitive_headers else value
        for key, value in headers.items()
    }


# =============================================================================
# Formatting helpers
# =============================================================================

def short_id(contract_id: Optional[str], width: int = 8) -> str:
    """Shorten a contract id for log lines: ``abcdefgh...12345678``."""
    if not contract_id:
        return "<none>"
    if len(contract_id) <= width * 2 + 3:
        return contract_id
    return f"{contract_id[:width]}...{contract_id[-width:]}"


def truncate_body(body: Union[str, bytes, None], limit: int = LoggingConfig.MAX_RESPONSE_BODY_LOG_LENGTH) -> str:
    """Render a response body for logging, masked and truncated."""
    if body is None:
        return ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    body = _mask_inline_patterns(body)
    if len(body) > limit:
        return body[:limit] + f"...[{len(body) - limit} more bytes]"
    return body


# =============================================================================
# Configuration
# =============================================================================

class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Formats log records as JSON for easy parsing by log aggregators.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _mask_inline_patterns(record.getMessage()),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (int or name)
        json_format: Whether to use JSON formatting
        log_file: Optional file path for logging
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    if json_format:
        console_handler.setFormatter(JsonFormatter())
    else:
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
        )

    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(JsonFormatter())  # Always JSON for files
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True,
    )

    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


__all__ = [
    "mask_value",
    "is_sensitive_key",
    "mask_sensitive_data",
    "mask_headers",
    "short_id",
    "truncate_body",
    "JsonFormatter",
    "configure_logging",
]

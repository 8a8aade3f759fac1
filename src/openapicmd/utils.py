"""Utility functions for openapicmd"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def canonicalify(p: Path | str) -> Path:
    return Path(p).expanduser().resolve()


def ensure_path(p: Path | str) -> Path:
    path = canonicalify(p)
    path.mkdir(parents=True, exist_ok=True)
    return path


def sanitize(sensitive: str | None, keep_chars: int = 2) -> str:
    """Mask sensitive information for logging.

    Args:
        sensitive: The sensitive string to mask (e.g., token, password, URL)
        keep_chars: Number of leading and trailing characters to keep

    Returns:
        Masked string with middle characters replaced by asterisks.

    Examples:
        >>> sanitize("Bearer abc123def456xyz789")
        'Be***89'
        >>> sanitize(None)
        '***'
    """
    if not sensitive:
        return "***"

    if len(sensitive) <= keep_chars * 2:
        return "***"

    return f"{sensitive[:keep_chars]}***{sensitive[-keep_chars:]}"


def to_text(value: Any) -> str:
    """Render a JSON value as the string form kept in field value maps.

    Strings pass through unchanged, ``None`` becomes ``"null"``, booleans use
    JSON spelling and containers use compact JSON text.
    """
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "…"


def get_now() -> datetime:
    """Get current local time without timezone info"""
    return datetime.now().replace(microsecond=0)


def relative_time(timestamp: float, now: float | None = None) -> str:
    """Render a past epoch timestamp (seconds) relative to now.

    Examples:
        >>> relative_time(100.0, now=130.0)
        'just now'
        >>> relative_time(0.0, now=7200.0)
        '2h ago'
    """
    if now is None:
        now = datetime.now().timestamp()
    diff_sec = int(now - timestamp)
    if diff_sec < 60:
        return "just now"
    diff_min = diff_sec // 60
    if diff_min < 60:
        return f"{diff_min}m ago"
    diff_h = diff_min // 60
    if diff_h < 24:
        return f"{diff_h}h ago"
    return f"{diff_h // 24}d ago"

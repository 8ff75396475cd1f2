"""
Parsing helpers shared by the upstream adapters.
Lenient numeric conversion, image URL synthesis and timestamp normalization.
"""
import math
from datetime import datetime, timezone
from typing import Any, Optional


def safe_float(value: Any, default: float = 0.0) -> float:
    """Convert numbers and numeric strings to float, returning `default` on failure.

    Several upstreams encode numerics as JSON strings (and send null or "" for
    unknown values), so every numeric field goes through here.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def safe_int(value: Any, default: int = 0) -> int:
    """Integer variant of safe_float; truncates fractional values."""
    return int(safe_float(value, float(default)))


def synthesize_image_url(cdn: str, symbol: str, suffix: str = ".png") -> str:
    """Build `{cdn}/{symbol-lowercased}.png` for providers without direct image URLs."""
    if not cdn or not symbol:
        return ""
    return f"{cdn.rstrip('/')}/{symbol.lower()}{suffix}"


def parse_timestamp(value: Any) -> Optional[float]:
    """Parse an ISO-8601 string or epoch number into epoch seconds.

    Returns None when the value cannot be interpreted. Epoch values above 1e12
    are treated as milliseconds.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.isdigit():
            seconds = float(text)
        else:
            try:
                parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.timestamp()
    else:
        return None
    if seconds > 1e12:
        seconds /= 1000.0
    return seconds


def epoch_to_iso(value: Any) -> str:
    """Render an epoch (seconds or milliseconds) as ISO-8601 UTC, empty on failure.

    Strings that already hold an ISO-8601 timestamp are returned unchanged.
    """
    if isinstance(value, str) and not value.strip().isdigit():
        return value.strip() if parse_timestamp(value) is not None else ""
    seconds = parse_timestamp(value)
    if seconds is None:
        return ""
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat().replace('+00:00', 'Z')
    except (OverflowError, OSError, ValueError):
        return ""

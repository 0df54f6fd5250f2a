"""
Time helpers for step scheduling and document timestamps.

Step waits are measured on the event loop's monotonic clock so that
wall-clock adjustments never stretch or shrink a running sequence.
UTC datetimes are only used for sequence documents and log output.
"""

import math
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO8601 document timestamp.

    Accepts the trailing ``Z`` form produced by JavaScript's
    ``Date.toISOString()``. Naive values are assumed to be UTC.

    Args:
        value: ISO8601 string, or None

    Returns:
        Aware UTC datetime, or None if value is empty
    """
    if not value:
        return None

    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """Format a datetime as an ISO8601 string with a ``Z`` suffix."""
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def ms_to_seconds(duration_ms: float) -> float:
    """Convert milliseconds to seconds, never returning a negative value."""
    return max(duration_ms, 0.0) / 1000.0


def seconds_to_ms(duration_s: float) -> float:
    """Convert seconds to milliseconds."""
    return duration_s * 1000.0


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into the closed range [lower, upper]."""
    return max(lower, min(upper, value))


def is_finite_number(value: object) -> bool:
    """True for int/float values that are neither NaN nor infinite (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)

"""
Utility functions for timestamp conversions.
All record timestamps travel as ISO-8601 UTC strings with millisecond precision.
"""
from datetime import datetime, timezone


def utcnow_iso() -> str:
    """
    Get current UTC timestamp as ISO format string.

    Returns:
        ISO format timestamp string (e.g., "2024-01-01T12:00:00.000Z")
    """
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

"""Lenient query-string parsing shared by the admin routes."""

from typing import Optional


def positive_int(raw: Optional[str], default: int) -> int:
    """Parse `raw` as a positive int; anything else yields `default`."""
    try:
        value = int(raw) if raw else default
    except ValueError:
        return default
    return value if value > 0 else default

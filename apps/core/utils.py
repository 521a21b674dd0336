"""
Utility functions for the CA Directory Backend
"""


def isoformat_or_none(value) -> str | None:
    """Serialize a date/datetime column value, passing through None."""
    return value.isoformat() if value else None

"""Date manipulation utilities"""

from datetime import datetime, timezone
from typing import Optional


def parse_iso_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    A trailing "Z" is accepted; naive values are taken as UTC.
    Returns None for missing or unparseable input.
    """
    if not value or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def first_timestamp(*values: Optional[str]) -> Optional[datetime]:
    """Return the first value that parses as a timestamp"""
    for value in values:
        parsed = parse_iso_timestamp(value)
        if parsed is not None:
            return parsed
    return None

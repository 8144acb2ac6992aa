"""Date decoding for Emby responses.

The server emits dates in several incompatible encodings depending on the
endpoint and server version:

- ISO 8601 with fractional seconds, often with seven digits of precision
  (``2025-12-12T05:13:30.8479860Z``),
- ISO 8601 without fractional seconds (``2025-12-12T05:13:30Z``),
- a numeric string holding Unix epoch milliseconds (``"1734000000000"``),
- a raw JSON number holding Unix epoch seconds (``1734000000``).
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

from .exceptions import EmbyMalformedDateError

_ISO_PATTERN = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}:?\d{2})?$"
)


def _parse_iso(value: str) -> datetime | None:
    """Parse an ISO 8601 timestamp, with or without fractional seconds.

    Fractions longer than microseconds are truncated. A missing offset is
    read as UTC.
    """
    match = _ISO_PATTERN.match(value.strip())
    if match is None:
        return None

    normalized = match["base"]
    if match["fraction"]:
        normalized += "." + match["fraction"][:6].ljust(6, "0")
    tz = match["tz"]
    if tz is None or tz == "Z":
        normalized += "+00:00"
    elif ":" not in tz:
        normalized += f"{tz[:3]}:{tz[3:]}"
    else:
        normalized += tz

    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _from_timestamp(seconds: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def parse_emby_date(value: object, path: str = "") -> datetime:
    """Decode a date in any of the server's encodings.

    Strings are tried as ISO 8601 with fractional seconds, then without,
    then as epoch milliseconds. Raw numbers are epoch seconds.

    Args:
        value: The raw JSON value.
        path: Coding path of the field, carried by the error.

    Returns:
        A timezone-aware datetime in UTC or the offset given.

    Raises:
        EmbyMalformedDateError: No encoding matched.
    """
    result: datetime | None = None

    if isinstance(value, str):
        result = _parse_iso(value)
        if result is None:
            try:
                millis = float(value)
            except ValueError:
                millis = None
            if millis is not None:
                result = _from_timestamp(millis / 1000)
    elif isinstance(value, int | float) and not isinstance(value, bool):
        result = _from_timestamp(float(value))

    if result is None:
        raise EmbyMalformedDateError(path or "<root>", value)
    return result


def parse_optional_date(data: object, key: str, path: str) -> datetime | None:
    """Decode ``data[key]`` if present and not null.

    Args:
        data: The enclosing JSON object.
        key: Field name.
        path: Coding path of the enclosing object.

    Returns:
        The decoded datetime, or None when absent.
    """
    if not isinstance(data, dict):
        return None
    raw = data.get(key)
    if raw is None:
        return None
    field_path = f"{path}.{key}" if path else key
    return parse_emby_date(raw, field_path)


__all__ = ["parse_emby_date", "parse_optional_date"]

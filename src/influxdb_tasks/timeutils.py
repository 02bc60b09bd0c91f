"""Coercion of heterogeneous time values to UTC instants.

Instants are ``pd.Timestamp`` objects localized to UTC, which keep nanosecond
precision where ``datetime`` stops at microseconds.

String inputs are tried against an ordered list of formats, first match wins:

1. ``ISO_INSTANT``            ``2020-01-01T00:00:00Z``, ``...T00:00:00.123456789Z``
2. ``ISO_OFFSET_DATE_TIME``   ``2020-01-01T00:00:00+02:00``
3. ``ISO_ZONED_DATE_TIME``    ``2020-01-01T00:00:00+01:00[Europe/Paris]``
4. ``yyyy-MM-dd'T'HH:mm[:ss][.SSS][XXX][VV]``
5. ``yyyy-MM-dd HH:mm[:ss][.SSS][XXX][VV]``
6. ``ISO_LOCAL_DATE_TIME``    ``2020-01-01T00:00:00``
7. ``ISO_LOCAL_DATE``         ``2020-01-01``

Values without a zone are read as UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from numbers import Real
from typing import Any, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import calendar
import re
import time

import numpy as np
import pandas as pd
from pandas.errors import OutOfBoundsDatetime

from .exceptions import TimeParseError

EPOCH_MILLIS_THRESHOLD = 10_000_000_000

_NUMERIC = re.compile(r"^\d+$")
_HAS_ZONE_MARKER = re.compile(r"[Z+-]")

_DATE = r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
_TIME = r"(?P<hour>\d{2}):(?P<minute>\d{2})"
_SECONDS = r":(?P<second>\d{2})"
_FRACTION = r"\.(?P<fraction>\d{1,9})"
_OFFSET = r"(?P<offset>Z|[+-]\d{2}:\d{2}(?::\d{2})?)"
_REGION = r"\[(?P<region>[A-Za-z0-9_+\-/]+)\]"
_PATTERN_FRACTION = r"\.(?P<fraction>\d{3})"
_PATTERN_OFFSET = r"(?P<offset>Z|[+-]\d{2}(?::?\d{2})?)"
_PATTERN_REGION = r"\[?(?P<region>UTC|[A-Za-z]+/[A-Za-z0-9_+\-/]+)\]?"

_FORMATS: List[Tuple[str, "re.Pattern[str]"]] = [
    ("ISO_INSTANT", re.compile(rf"^{_DATE}T{_TIME}(?:{_SECONDS}(?:{_FRACTION})?)?(?P<offset>Z)$")),
    ("ISO_OFFSET_DATE_TIME", re.compile(rf"^{_DATE}T{_TIME}(?:{_SECONDS}(?:{_FRACTION})?)?{_OFFSET}$")),
    ("ISO_ZONED_DATE_TIME", re.compile(rf"^{_DATE}T{_TIME}(?:{_SECONDS}(?:{_FRACTION})?)?{_OFFSET}?{_REGION}$")),
    (
        "yyyy-MM-dd'T'HH:mm[:ss][.SSS][XXX][VV]",
        re.compile(
            rf"^{_DATE}T{_TIME}(?:{_SECONDS})?(?:{_PATTERN_FRACTION})?"
            rf"(?:{_PATTERN_OFFSET})?(?:{_PATTERN_REGION})?$"
        ),
    ),
    (
        "yyyy-MM-dd HH:mm[:ss][.SSS][XXX][VV]",
        re.compile(
            rf"^{_DATE} {_TIME}(?:{_SECONDS})?(?:{_PATTERN_FRACTION})?"
            rf"(?:{_PATTERN_OFFSET})?(?:{_PATTERN_REGION})?$"
        ),
    ),
    ("ISO_LOCAL_DATE_TIME", re.compile(rf"^{_DATE}T{_TIME}(?:{_SECONDS}(?:{_FRACTION})?)?$")),
    ("ISO_LOCAL_DATE", re.compile(rf"^{_DATE}$")),
]


def to_instant(value: Any) -> Optional[pd.Timestamp]:
    """Coerce ``value`` to a UTC ``pd.Timestamp``.

    Returns None for None. Raises TimeParseError for unsupported types,
    unparseable strings and instants outside the nanosecond range.
    """
    if value is None:
        return None
    try:
        instant = _to_timestamp(value)
        if pd.isna(instant):
            raise TimeParseError(f"Not a time value: {value!r}")
        return instant.as_unit("ns")
    except TimeParseError:
        raise
    except (OutOfBoundsDatetime, OverflowError, ValueError) as exc:
        raise TimeParseError(f"Time value out of range: {value!r}") from exc


def _to_timestamp(value: Any) -> pd.Timestamp:
    if isinstance(value, pd.Timestamp):
        return _as_utc(value)
    if isinstance(value, datetime):
        return _as_utc(pd.Timestamp(value))
    if isinstance(value, date):
        return pd.Timestamp(year=value.year, month=value.month, day=value.day, tz="UTC")
    if isinstance(value, np.datetime64):
        return _as_utc(pd.Timestamp(value))
    if isinstance(value, time.struct_time):
        return from_epoch(calendar.timegm(value))
    if isinstance(value, bool):
        raise TimeParseError(f"Unsupported date type: {type(value).__name__}")
    if isinstance(value, Real):
        return from_epoch(int(value))
    if isinstance(value, str):
        return parse_time_string(value)
    raise TimeParseError(f"Unsupported date type: {type(value).__name__}")


def from_epoch(epoch: int) -> pd.Timestamp:
    """Epoch seconds below 10**10, epoch milliseconds otherwise."""
    unit = "s" if epoch < EPOCH_MILLIS_THRESHOLD else "ms"
    return pd.Timestamp(epoch, unit=unit, tz="UTC")


def parse_time_string(text: str) -> pd.Timestamp:
    value = text.strip()
    if not value:
        raise TimeParseError("Empty date string")
    if _NUMERIC.match(value):
        return from_epoch(int(value))

    instant = _try_format(_FORMATS[0][1], value)
    if instant is not None:
        return instant
    if not _HAS_ZONE_MARKER.search(value):
        instant = _try_format(_FORMATS[0][1], value + "Z")
        if instant is not None:
            return instant

    for _name, pattern in _FORMATS:
        instant = _try_format(pattern, value)
        if instant is not None:
            return instant
    raise TimeParseError(f"Unparseable date string: {text}")


def _try_format(pattern: "re.Pattern[str]", value: str) -> Optional[pd.Timestamp]:
    match = pattern.match(value)
    if match is None:
        return None
    try:
        return _from_match(match.groupdict())
    except (ValueError, ZoneInfoNotFoundError):
        return None


def _from_match(parts: dict) -> pd.Timestamp:
    fraction = (parts.get("fraction") or "").ljust(9, "0")
    nanos = int(fraction) if fraction else 0
    local = pd.Timestamp(
        year=int(parts["year"]),
        month=int(parts["month"]),
        day=int(parts["day"]),
        hour=int(parts.get("hour") or 0),
        minute=int(parts.get("minute") or 0),
        second=int(parts.get("second") or 0),
        microsecond=nanos // 1000,
        nanosecond=nanos % 1000,
    )
    offset = parts.get("offset")
    region = parts.get("region")
    if offset:
        return local.tz_localize(_parse_offset(offset)).tz_convert("UTC")
    if region:
        return local.tz_localize(ZoneInfo(region)).tz_convert("UTC")
    return local.tz_localize("UTC")


def _parse_offset(offset: str) -> timezone:
    if offset == "Z":
        return timezone.utc
    sign = -1 if offset[0] == "-" else 1
    digits = offset[1:].replace(":", "")
    hours = int(digits[0:2])
    minutes = int(digits[2:4] or 0)
    seconds = int(digits[4:6] or 0)
    return timezone(sign * timedelta(hours=hours, minutes=minutes, seconds=seconds))


def _as_utc(ts: pd.Timestamp) -> pd.Timestamp:
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


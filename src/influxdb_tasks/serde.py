"""Record stream serialization.

Records are written one JSON document per line. Timestamps are written as
ISO-8601 strings and read back as strings.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Iterator, TextIO
import json
import logging

import numpy as np
import pandas as pd

from .exceptions import RecordStreamError

logger = logging.getLogger(__name__)

BUFFER_SIZE = 32 * 1024


def read_all(reader: TextIO) -> Iterator[Any]:
    """Lazily yield every record of the stream, skipping blank lines."""
    for line_number, line in enumerate(reader, start=1):
        if not line.strip():
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError as exc:
            raise RecordStreamError(f"Invalid record at line {line_number}: {exc.msg}") from exc


def write_all(writer: TextIO, records: Iterable[Any]) -> int:
    """Write records lazily, return how many were written."""
    count = 0
    for record in records:
        writer.write(json.dumps(record, default=_json_default, ensure_ascii=False))
        writer.write("\n")
        count += 1
    logger.debug("Wrote %d records to stream", count)
    return count


def _json_default(value: Any) -> Any:
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (set, frozenset)):
        return list(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")

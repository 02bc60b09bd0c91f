"""Streaming load of record files into InfluxDB."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from itertools import islice
from typing import Any, Collection, Iterable, Iterator, List, Optional, TextIO
import io
import math
import re

from influxdb_client import Point, WritePrecision

from .base import Task
from .exceptions import ConfigurationError, RecordStreamError
from .models import Counter, LoadOutput
from .runtime import RunContext
from .serde import BUFFER_SIZE, read_all
from .timeutils import to_instant

DEFAULT_CHUNK = 1000
IMPLICIT_TIME_KEY = "time"

_DECIMAL = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


@dataclass
class AbstractLoad(Task, ABC):
    """Read a record file from storage and write it to InfluxDB in batches."""

    from_: Any = None
    chunk: Any = DEFAULT_CHUNK

    @abstractmethod
    def source(self, run_context: RunContext, reader: TextIO) -> Iterator[Point]:
        """Lazily turn the records read from ``reader`` into points."""

    def run(self, run_context: RunContext) -> LoadOutput:
        logger = run_context.logger()
        uri = self._render_required(run_context, self.from_, "from")
        bucket = self._render_required(run_context, self.bucket, "bucket")
        org = self._render_required(run_context, self.org, "org")
        chunk = run_context.render(self.chunk, int, DEFAULT_CHUNK)
        if chunk < 1:
            raise ConfigurationError("chunk must be greater than zero", property_name="chunk")

        counts = {"records": 0, "batches": 0}

        with self._connection().client(run_context) as client, run_context.storage.get_file(uri) as raw:
            reader = io.TextIOWrapper(io.BufferedReader(raw, buffer_size=BUFFER_SIZE), encoding="utf-8")
            points = _counted(self.source(run_context, reader), counts)
            for batch in batched(points, chunk):
                client.write_points(bucket, org, batch)
                counts["batches"] += 1
                logger.debug("Wrote batch of %d points", len(batch))

        run_context.metric(Counter("batches.count", counts["batches"]))
        run_context.metric(Counter("records", counts["records"]))
        logger.info(
            "Successfully sent %d batches for %d records", counts["batches"], counts["records"]
        )
        return LoadOutput(record_count=counts["records"])


@dataclass
class Load(AbstractLoad):
    """Load a record file into a measurement.

    Keys listed in ``tags`` become tags, the rest become fields. When
    ``time_field`` is set its value becomes the point timestamp (nanosecond
    precision); otherwise a ``time`` key is skipped and the server assigns
    the time at ingestion.
    """

    measurement: Any = None
    tags: Any = None
    time_field: Any = None

    def source(self, run_context: RunContext, reader: TextIO) -> Iterator[Point]:
        measurement = self._render_required(run_context, self.measurement, "measurement")
        time_field = run_context.render(self.time_field, str)
        tags = frozenset(run_context.render(self.tags, list) or [])

        for record in read_all(reader):
            yield record_to_point(record, measurement, tags, time_field)


def record_to_point(
    record: Any,
    measurement: str,
    tags: Collection[str] = (),
    time_field: Optional[str] = None,
) -> Point:
    """Build a point from a map-shaped record."""
    if not isinstance(record, Mapping):
        raise RecordStreamError(f"Expected a map record, got {type(record).__name__}")

    point = Point(measurement)
    for key, value in record.items():
        if _is_time_key(key, time_field):
            continue
        if key in tags:
            point.tag(key, None if value is None else _to_string(value))
        else:
            point.field(key, field_value(value))

    if time_field is not None and time_field in record:
        instant = to_instant(record[time_field])
        if instant is not None:
            point.time(instant.value, WritePrecision.NS)
    return point


def field_value(value: Any) -> float | bool | str:
    """Strict decimal strings become floats, booleans stay, the rest is stringified."""
    if isinstance(value, str):
        parsed = _parse_decimal(value)
        return value if parsed is None else parsed
    if isinstance(value, bool):
        return value
    return _to_string(value)


def batched(iterable: Iterable[Any], size: int) -> Iterator[List[Any]]:
    """Yield lists of ``size`` items, the last one possibly shorter."""
    iterator = iter(iterable)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


def _counted(points: Iterable[Point], counts: dict) -> Iterator[Point]:
    for point in points:
        counts["records"] += 1
        yield point


def _is_time_key(key: str, time_field: Optional[str]) -> bool:
    if time_field is not None:
        return key == time_field
    return key.lower() == IMPLICIT_TIME_KEY


def _parse_decimal(text: str) -> Optional[float]:
    candidate = text.strip()
    if not _DECIMAL.match(candidate):
        return None
    parsed = float(candidate)
    return parsed if math.isfinite(parsed) else None


def _to_string(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)

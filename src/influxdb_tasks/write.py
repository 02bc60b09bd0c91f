"""Raw line protocol writes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from influxdb_client import WritePrecision

from .base import Task
from .exceptions import ConfigurationError
from .models import Counter, WriteOutput
from .runtime import RunContext

PRECISIONS = {
    "NS": WritePrecision.NS,
    "US": WritePrecision.US,
    "MS": WritePrecision.MS,
    "S": WritePrecision.S,
}


def parse_precision(value: Any) -> str:
    key = str(value).strip().upper()
    if key not in PRECISIONS:
        allowed = ", ".join(PRECISIONS)
        raise ConfigurationError(f"Unknown precision '{value}'. Allowed: {allowed}", property_name="precision")
    return PRECISIONS[key]


def count_lines(source: str) -> int:
    """Number of non-blank lines in a line protocol payload."""
    return sum(1 for line in source.split("\n") if line.strip())


@dataclass
class Write(Task):
    """Send a multiline line protocol payload in a single request."""

    source: Any = None
    precision: Any = "NS"

    def run(self, run_context: RunContext) -> WriteOutput:
        logger = run_context.logger()
        source = self._render_required(run_context, self.source, "source")
        bucket = self._render_required(run_context, self.bucket, "bucket")
        org = self._render_required(run_context, self.org, "org")
        precision = parse_precision(run_context.render(self.precision, str, "NS"))

        with self._connection().client(run_context) as client:
            client.write_record(bucket, org, precision, source)

        line_count = count_lines(source)
        logger.info("Wrote %d lines of line protocol data to InfluxDB", line_count)
        run_context.metric(Counter("records", line_count))
        return WriteOutput(record_count=line_count)

"""Flux and InfluxQL query tasks."""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from typing import Any, List

from .base import Task
from .models import Counter, FetchType, QueryOutput, Row
from .results import build_output, flux_tables_to_rows, influxql_result_to_rows
from .runtime import RunContext
from .serde import BUFFER_SIZE, write_all


@dataclass
class AbstractQuery(Task, ABC):
    """Shared rendering and fetch handling of query tasks."""

    query: Any = None
    fetch_type: Any = FetchType.NONE

    def store_results(self, run_context: RunContext, rows: List[Row]) -> str:
        """Write rows to a temp record file and hand it to storage."""
        temp_file = run_context.working_dir.create_temp_file(".jsonl")
        with open(temp_file, "w", encoding="utf-8", buffering=BUFFER_SIZE) as output:
            write_all(output, iter(rows))
        return run_context.storage.put_file(temp_file)

    def handle_fetch_type(self, run_context: RunContext, rows: List[Row]) -> QueryOutput:
        fetch_type = run_context.render(self.fetch_type, FetchType, FetchType.NONE)
        return build_output(rows, fetch_type, store=lambda r: self.store_results(run_context, r))


@dataclass
class FluxQuery(AbstractQuery):
    """Run a Flux query. The bucket is part of the query text and is ignored here."""

    def run(self, run_context: RunContext) -> QueryOutput:
        logger = run_context.logger()
        query = self._render_required(run_context, self.query, "query")
        org = self._render_required(run_context, self.org, "org")

        with self._connection().client(run_context) as client:
            logger.debug("Starting query: %s", query)
            if self.bucket is not None:
                logger.warning("Bucket is ignored for FluxQuery as it's embedded in the query string.")

            tables = client.query_flux(query, org)
            rows = flux_tables_to_rows(tables)

        run_context.metric(Counter("records", len(rows)))
        return self.handle_fetch_type(run_context, rows)


@dataclass
class InfluxQLQuery(AbstractQuery):
    """Run an InfluxQL query against a bucket."""

    def run(self, run_context: RunContext) -> QueryOutput:
        logger = run_context.logger()
        query = self._render_required(run_context, self.query, "query")
        bucket = self._render_required(run_context, self.bucket, "bucket")

        with self._connection().client(run_context) as client:
            logger.debug("Starting query: %s", query)
            result = client.query_influxql(query, bucket)
            rows = influxql_result_to_rows(result)

        run_context.metric(Counter("records", len(rows)))
        return self.handle_fetch_type(run_context, rows)

"""Polling trigger firing when a Flux query returns rows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Optional
import logging
import time

from .client import InfluxDBConnection
from .config import parse_duration
from .models import Execution, FetchType
from .query import FluxQuery
from .runtime import RunContext

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = timedelta(seconds=60)


@dataclass
class FluxTrigger:
    """Run a Flux query every ``interval`` and emit an execution when it returns rows."""

    connection: Optional[InfluxDBConnection] = None
    org: Any = None
    query: Any = None
    bucket: Any = None
    fetch_type: Any = FetchType.FETCH
    interval: Any = DEFAULT_INTERVAL
    id: Optional[str] = None

    def evaluate(self, run_context: RunContext) -> Optional[Execution]:
        # bucket is part of the Flux text; not forwarded to the query
        flux_query = FluxQuery(
            id=self.id,
            connection=self.connection,
            org=self.org,
            query=self.query,
            fetch_type=self.fetch_type,
        )
        output = flux_query.run(run_context)
        run_context.logger().debug("Found '%s' rows", output.size)

        if not output.size:
            return None
        return Execution(trigger_id=self.id, variables=output.to_dict())

    def poll(
        self,
        run_context: RunContext,
        emit: Callable[[Execution], None],
        max_evaluations: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Evaluate repeatedly, sleeping ``interval`` between evaluations.

        Returns the number of executions emitted once ``max_evaluations`` is
        reached. Errors raised by an evaluation propagate.
        """
        interval = parse_duration(self.interval) or DEFAULT_INTERVAL
        evaluations = 0
        emitted = 0
        while True:
            execution = self.evaluate(run_context)
            evaluations += 1
            if execution is not None:
                emit(execution)
                emitted += 1
            if max_evaluations is not None and evaluations >= max_evaluations:
                break
            sleep(interval.total_seconds())
        logger.debug("Trigger %s stopped after %d evaluations", self.id, evaluations)
        return emitted

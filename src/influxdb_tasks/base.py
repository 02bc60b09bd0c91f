"""Abstract base task for influxdb_tasks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from .client import InfluxDBConnection
from .exceptions import ConfigurationError
from .runtime import RunContext


@dataclass
class Task(ABC):
    """A unit of work run against InfluxDB inside a host flow.

    Every property may be a literal, a ``Property`` or a ``{{ ... }}``
    expression; they are rendered against the ``RunContext`` when the task
    runs.
    """

    connection: Optional[InfluxDBConnection] = None
    org: Any = None
    bucket: Any = None
    id: Optional[str] = None

    @abstractmethod
    def run(self, run_context: RunContext) -> Any:
        """Execute the task."""

    # -------------------- Rendering helpers --------------------

    def _connection(self) -> InfluxDBConnection:
        if self.connection is None:
            raise ConfigurationError("connection is required", property_name="connection")
        return self.connection

    def _render_required(
        self, run_context: RunContext, value: Any, name: str, as_type: Any = str
    ) -> Any:
        if value is None:
            raise ConfigurationError(f"{name} is required", property_name=name)
        rendered = run_context.render(value, as_type)
        if rendered is None or rendered == "":
            raise ConfigurationError(f"{name} is required", property_name=name)
        return rendered

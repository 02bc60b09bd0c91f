"""influxdb_tasks package."""

from .client import InfluxDBClientFactory, InfluxDBConnection
from .config import ConnectionConfig, connection_from_env, load_env
from .exceptions import (
    ConfigurationError,
    InfluxDBAuthenticationError,
    InfluxDBConnectionError,
    InfluxDBError,
    InfluxDBQueryError,
    InfluxDBTimeoutError,
    InfluxDBWriteError,
    RecordStreamError,
    RenderingError,
    TimeParseError,
    is_timeout_error,
)
from .load import Load, record_to_point
from .models import Counter, Execution, FetchType, LoadOutput, QueryOutput, WriteOutput
from .query import FluxQuery, InfluxQLQuery
from .runtime import LocalStorage, Property, RunContext, WorkingDir
from .timeutils import to_instant
from .trigger import FluxTrigger
from .write import Write

__all__ = [
    "InfluxDBClientFactory",
    "InfluxDBConnection",
    "ConnectionConfig",
    "connection_from_env",
    "load_env",
    "ConfigurationError",
    "InfluxDBAuthenticationError",
    "InfluxDBConnectionError",
    "InfluxDBError",
    "InfluxDBQueryError",
    "InfluxDBTimeoutError",
    "InfluxDBWriteError",
    "RecordStreamError",
    "RenderingError",
    "TimeParseError",
    "is_timeout_error",
    "Load",
    "record_to_point",
    "Counter",
    "Execution",
    "FetchType",
    "LoadOutput",
    "QueryOutput",
    "WriteOutput",
    "FluxQuery",
    "InfluxQLQuery",
    "LocalStorage",
    "Property",
    "RunContext",
    "WorkingDir",
    "to_instant",
    "FluxTrigger",
    "Write",
]

"""Exceptions for influxdb_tasks."""

from __future__ import annotations

import socket
from typing import Optional

from requests.exceptions import Timeout as RequestsTimeout
from urllib3.exceptions import TimeoutError as Urllib3TimeoutError


class InfluxDBError(Exception):
    """Base exception for influxdb_tasks."""


class ConfigurationError(InfluxDBError):
    """A mandatory property is missing or holds an invalid value."""

    def __init__(self, message: str, property_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.property_name = property_name


class RenderingError(InfluxDBError):
    """A deferred property could not be resolved."""


class TimeParseError(InfluxDBError, ValueError):
    """A value could not be coerced to an instant."""


class RecordStreamError(InfluxDBError):
    """The record stream is malformed or holds a non-map record."""


class InfluxDBConnectionError(InfluxDBError):
    """Connection to InfluxDB failed."""


class InfluxDBAuthenticationError(InfluxDBError):
    """Authentication failed."""


class InfluxDBTimeoutError(InfluxDBConnectionError):
    """Connect or read timeout exhausted."""


class InfluxDBQueryError(InfluxDBError):
    """Query execution failed."""


class InfluxDBWriteError(InfluxDBError):
    """Write request was rejected."""


_TIMEOUT_TYPES = (socket.timeout, TimeoutError, Urllib3TimeoutError, RequestsTimeout)


def is_timeout_error(exc: Optional[BaseException]) -> bool:
    """Return True if any exception in the cause chain is a timeout.

    Walks ``__cause__`` and ``__context__`` links; a link counts when it is a
    socket/urllib3/requests timeout or its message mentions a timeout.
    """
    seen = set()
    current = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, _TIMEOUT_TYPES):
            return True
        message = str(current).lower()
        if "timeout" in message or "timed out" in message:
            return True
        current = current.__cause__ or current.__context__
    return False

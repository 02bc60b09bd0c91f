"""Connection properties and client factory for influxdb_tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping
import logging

from .config import DEFAULT_TIMEOUT, ConnectionConfig, resolve_connection_config
from .exceptions import ConfigurationError
from .runtime import RunContext
from .v2.client import InfluxDBClientV2

logger = logging.getLogger(__name__)


class InfluxDBClientFactory:
    """Factory for transport clients."""

    @staticmethod
    def create(config: ConnectionConfig | Mapping[str, Any]) -> InfluxDBClientV2:
        cfg = resolve_connection_config(config)
        logger.debug(
            "Creating InfluxDB client for %s (connect_timeout=%s, read_timeout=%s)",
            cfg.url,
            cfg.connect_timeout,
            cfg.read_timeout,
        )
        return InfluxDBClientV2(cfg)


@dataclass
class InfluxDBConnection:
    """Connection properties of a task, rendered at task start.

    ``connect_timeout`` and ``read_timeout`` accept a ``timedelta``, seconds,
    or a duration string such as ``PT10S`` or ``200ms``.
    """

    url: Any = None
    token: Any = field(default=None, repr=False)
    connect_timeout: Any = DEFAULT_TIMEOUT
    read_timeout: Any = DEFAULT_TIMEOUT

    def render(self, run_context: RunContext) -> ConnectionConfig:
        url = run_context.render(self.url, str)
        if not url:
            raise ConfigurationError("url is required", property_name="url")
        token = run_context.render(self.token, str)
        if not token:
            raise ConfigurationError("token is required", property_name="token")
        return ConnectionConfig(
            url=url,
            token=token,
            connect_timeout=run_context.render(self.connect_timeout, timedelta, DEFAULT_TIMEOUT),
            read_timeout=run_context.render(self.read_timeout, timedelta, DEFAULT_TIMEOUT),
        )

    def client(self, run_context: RunContext) -> InfluxDBClientV2:
        """Build a client; use it as a context manager so it is always closed."""
        return InfluxDBClientFactory.create(self.render(run_context))

    @classmethod
    def from_config(cls, config: ConnectionConfig | Mapping[str, Any]) -> "InfluxDBConnection":
        cfg = resolve_connection_config(config)
        return cls(
            url=cfg.url,
            token=cfg.token,
            connect_timeout=cfg.connect_timeout,
            read_timeout=cfg.read_timeout,
        )

"""Configuration loading for influxdb_tasks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping, Optional, Union
import os
import re

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_TIMEOUT = timedelta(seconds=10)

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+(?:\.\d+)?)D)?"
    r"(?:T(?:(?P<hours>\d+(?:\.\d+)?)H)?(?:(?P<minutes>\d+(?:\.\d+)?)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$",
    re.IGNORECASE,
)
_SHORT_DURATION = re.compile(r"^(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>ms|s|m|h|d)$", re.IGNORECASE)
_SHORT_UNITS = {"ms": "milliseconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def load_env() -> None:
    """Load environment variables from a .env file if present."""
    load_dotenv()


def _get_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_duration(value: Union[timedelta, int, float, str, None]) -> Optional[timedelta]:
    """Parse a duration given as timedelta, seconds, ISO-8601 (``PT10S``) or ``200ms``."""
    if value is None or isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return timedelta(seconds=float(text))
    except ValueError:
        pass
    match = _SHORT_DURATION.match(text)
    if match:
        unit = _SHORT_UNITS[match.group("unit").lower()]
        return timedelta(**{unit: float(match.group("amount"))})
    match = _ISO_DURATION.match(text)
    if match and text.upper() not in {"P", "PT"}:
        parts = {k: float(v) for k, v in match.groupdict().items() if v is not None}
        return timedelta(**parts)
    raise ConfigurationError(f"Invalid duration: {value!r}")


@dataclass(frozen=True)
class ConnectionConfig:
    url: str
    token: str
    connect_timeout: Optional[timedelta] = DEFAULT_TIMEOUT
    read_timeout: Optional[timedelta] = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigurationError("url is required", property_name="url")
        if not self.token:
            raise ConfigurationError("token is required", property_name="token")
        for name in ("connect_timeout", "read_timeout"):
            value = getattr(self, name)
            if value is not None and value <= timedelta(0):
                raise ConfigurationError(f"{name} must be strictly positive", property_name=name)

    def timeout_millis(self) -> Optional[tuple[int, int]]:
        """Return ``(connect, read)`` in milliseconds as expected by influxdb_client.

        None when both timeouts are None. influxdb_client divides both members
        of the pair, so a single None side falls back to ``DEFAULT_TIMEOUT``.
        """
        if self.connect_timeout is None and self.read_timeout is None:
            return None
        connect = self.connect_timeout or DEFAULT_TIMEOUT
        read = self.read_timeout or DEFAULT_TIMEOUT
        return int(connect.total_seconds() * 1000), int(read.total_seconds() * 1000)

    def timeout_seconds(self) -> Optional[tuple[float, float]]:
        """Return ``(connect, read)`` in seconds as expected by requests."""
        millis = self.timeout_millis()
        if millis is None:
            return None
        return millis[0] / 1000, millis[1] / 1000


def connection_from_env() -> ConnectionConfig:
    load_env()
    return ConnectionConfig(
        url=os.getenv("INFLUXDB_V2_URL", os.getenv("INFLUXDB_URL", "")),
        token=os.getenv("INFLUXDB_V2_TOKEN", os.getenv("INFLUXDB_TOKEN", "")),
        connect_timeout=parse_duration(os.getenv("INFLUXDB_CONNECT_TIMEOUT")) or DEFAULT_TIMEOUT,
        read_timeout=parse_duration(os.getenv("INFLUXDB_READ_TIMEOUT")) or DEFAULT_TIMEOUT,
    )


def _dict_get(d: Mapping[str, Any], key: str, fallback: Any = None) -> Any:
    if key in d:
        return d[key]
    return fallback


def resolve_connection_config(config: ConnectionConfig | Mapping[str, Any]) -> ConnectionConfig:
    if isinstance(config, ConnectionConfig):
        return config
    return ConnectionConfig(
        url=_dict_get(config, "url"),
        token=_dict_get(config, "token"),
        connect_timeout=parse_duration(_dict_get(config, "connect_timeout", DEFAULT_TIMEOUT)),
        read_timeout=parse_duration(_dict_get(config, "read_timeout", DEFAULT_TIMEOUT)),
    )

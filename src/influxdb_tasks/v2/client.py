"""InfluxDB v2 transport (writes, Flux and InfluxQL queries)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging
import requests

from influxdb_client import InfluxDBClient, Point
from influxdb_client.client.flux_table import TableList
from influxdb_client.client.write_api import SYNCHRONOUS
from influxdb_client.rest import ApiException
from urllib3.exceptions import MaxRetryError, NewConnectionError

from ..config import ConnectionConfig
from ..exceptions import (
    InfluxDBAuthenticationError,
    InfluxDBConnectionError,
    InfluxDBError,
    InfluxDBQueryError,
    InfluxDBTimeoutError,
    InfluxDBWriteError,
    is_timeout_error,
)

logger = logging.getLogger(__name__)


class InfluxDBClientV2:
    """Blocking InfluxDB v2 client owned by a single task invocation."""

    def __init__(
        self,
        config: ConnectionConfig,
        client: Optional[object] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.connected = False
        if client is None:
            self._client = InfluxDBClient(
                url=config.url,
                token=config.token,
                timeout=config.timeout_millis(),
            )
        else:
            self._client = client
        self._session = session or requests.Session()
        self._url = config.url.rstrip("/")
        self._token = config.token
        self._write_api = None

    # -------------------- Connection management --------------------

    def __enter__(self) -> "InfluxDBClientV2":
        self.connected = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def connect(self) -> None:
        try:
            ok = self.ping()
            if not ok:
                raise InfluxDBConnectionError("Ping failed")
            self.connected = True
        except Exception as exc:
            self.connected = False
            raise InfluxDBConnectionError(str(exc)) from exc

    def close(self) -> None:
        if self._write_api is not None and hasattr(self._write_api, "close"):
            self._write_api.close()
        self._write_api = None
        if hasattr(self._client, "close"):
            self._client.close()
        self._session.close()
        self.connected = False

    def ping(self) -> bool:
        if hasattr(self._client, "ping"):
            return bool(self._client.ping())
        return True

    # -------------------- Writes --------------------

    def write_points(self, bucket: str, org: str, points: List[Point]) -> None:
        """Write a batch of points, blocking until the server acknowledges it."""
        try:
            self._blocking_write_api().write(bucket=bucket, org=org, record=points)
        except InfluxDBError:
            raise
        except Exception as exc:
            raise _translate(exc, InfluxDBWriteError, "write") from exc

    def write_record(self, bucket: str, org: str, precision: str, record: str) -> None:
        """Write a raw line protocol payload in a single request."""
        try:
            self._blocking_write_api().write(
                bucket=bucket, org=org, record=record, write_precision=precision
            )
        except InfluxDBError:
            raise
        except Exception as exc:
            raise _translate(exc, InfluxDBWriteError, "write") from exc

    def _blocking_write_api(self):
        if self._write_api is None:
            self._write_api = self._client.write_api(write_options=SYNCHRONOUS)
        return self._write_api

    # -------------------- Queries --------------------

    def query_flux(self, query: str, org: str) -> TableList:
        logger.debug("Flux query: %s", query)
        try:
            return self._client.query_api().query(query, org=org)
        except InfluxDBError:
            raise
        except Exception as exc:
            raise _translate(exc, InfluxDBQueryError, "query") from exc

    def query_influxql(self, query: str, bucket: str) -> Dict[str, Any]:
        """Run InfluxQL through the v2 ``/query`` compatibility endpoint."""
        logger.debug("InfluxQL query on %s: %s", bucket, query)
        headers = {
            "Authorization": f"Token {self._token}",
            "Accept": "application/json",
        }
        params = {"q": query, "db": bucket}
        try:
            response = self._session.get(
                f"{self._url}/query",
                headers=headers,
                params=params,
                timeout=self.config.timeout_seconds(),
            )
        except requests.RequestException as exc:
            raise _translate(exc, InfluxDBQueryError, "query") from exc
        if response.status_code in (401, 403):
            raise InfluxDBAuthenticationError(
                f"InfluxQL query unauthorized: {response.status_code} - {response.text}"
            )
        if response.status_code != 200:
            raise InfluxDBQueryError(f"InfluxQL query failed: {response.status_code} - {response.text}")
        result = response.json()
        for entry in result.get("results") or []:
            if entry and "error" in entry:
                raise InfluxDBQueryError(entry["error"])
        return result

    def __repr__(self) -> str:
        status = "connected" if self.connected else "disconnected"
        return f"InfluxDBClientV2({self._url}, {status})"


def _translate(exc: Exception, default: type, action: str) -> InfluxDBError:
    if is_timeout_error(exc):
        return InfluxDBTimeoutError(f"InfluxDB {action} timeout: {exc}")
    status = getattr(exc, "status", None)
    if isinstance(exc, ApiException) and status in (401, 403):
        return InfluxDBAuthenticationError(f"InfluxDB {action} unauthorized: {exc}")
    if isinstance(exc, (requests.ConnectionError, ConnectionError, NewConnectionError, MaxRetryError)):
        return InfluxDBConnectionError(f"InfluxDB {action} failed to connect: {exc}")
    return default(f"InfluxDB {action} failed: {exc}")

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import pytest

from influxdb_tasks.client import InfluxDBClientFactory, InfluxDBConnection
from influxdb_tasks.config import resolve_connection_config
from influxdb_tasks.runtime import LocalStorage, RunContext, WorkingDir
from influxdb_tasks.serde import write_all
from influxdb_tasks.v2.client import InfluxDBClientV2


class FakeWriteApi:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_on_call: int | None = None
        self.error: Exception = RuntimeError("write rejected")

    def write(self, bucket, org, record, write_precision=None):
        if self.fail_on_call is not None and len(self.calls) + 1 == self.fail_on_call:
            raise self.error
        self.calls.append({"bucket": bucket, "org": org, "record": record, "write_precision": write_precision})

    def close(self):
        pass


class FakeRecord:
    def __init__(self, values: dict[str, Any]) -> None:
        self.values = values


class FakeTable:
    def __init__(self, records: Iterable[dict[str, Any]]) -> None:
        self.records = [FakeRecord(values) for values in records]


class FakeQueryApi:
    def __init__(self) -> None:
        self.tables: list[FakeTable] = []
        self.calls: list[dict[str, Any]] = []
        self.error: Exception | None = None

    def query(self, query, org=None):
        self.calls.append({"query": query, "org": org})
        if self.error is not None:
            raise self.error
        return self.tables


class FakeInfluxDBClient:
    def __init__(self) -> None:
        self._write_api = FakeWriteApi()
        self._query_api = FakeQueryApi()
        self.write_options = []
        self.closed = False

    def write_api(self, write_options=None):
        self.write_options.append(write_options)
        return self._write_api

    def query_api(self):
        return self._query_api

    def close(self):
        self.closed = True


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload if payload is not None else {"results": []}
        self.text = text

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self) -> None:
        self.response = FakeResponse()
        self.error: Exception | None = None
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


@pytest.fixture
def fake_influx(monkeypatch) -> FakeInfluxDBClient:
    """Route every client built by the factory to in-memory fakes."""
    fake = FakeInfluxDBClient()
    fake.session = FakeSession()
    fake.created = []

    def _create(config):
        client = InfluxDBClientV2(resolve_connection_config(config), client=fake, session=fake.session)
        fake.created.append(client)
        return client

    monkeypatch.setattr(InfluxDBClientFactory, "create", staticmethod(_create))
    return fake


@pytest.fixture
def run_context(tmp_path: Path) -> RunContext:
    return RunContext(
        variables={"inputs": {"org": "my-org"}},
        storage=LocalStorage(tmp_path / "storage"),
        working_dir=WorkingDir(tmp_path / "work"),
        task_id="test",
    )


@pytest.fixture
def connection() -> InfluxDBConnection:
    return InfluxDBConnection(url="http://localhost:8086", token="my-token")


@pytest.fixture
def store_records(run_context: RunContext):
    """Write records to a JSON lines file in storage and return its URI."""

    def _store(records: Iterable[Any]) -> str:
        path = run_context.working_dir.create_temp_file(".jsonl")
        with open(path, "w", encoding="utf-8") as output:
            write_all(output, records)
        return run_context.storage.put_file(path)

    return _store

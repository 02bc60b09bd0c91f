from __future__ import annotations

import logging

from influxdb_tasks.models import FetchType
from influxdb_tasks.trigger import FluxTrigger

from conftest import FakeTable

FLUX = 'from(bucket: "alerts") |> range(start: -1m)'


def test_evaluate_without_rows_returns_none(fake_influx, run_context, connection) -> None:
    trigger = FluxTrigger(id="watch", connection=connection, org="o", query=FLUX)

    assert trigger.evaluate(run_context) is None


def test_evaluate_with_rows_returns_execution(fake_influx, run_context, connection) -> None:
    fake_influx._query_api.tables = [FakeTable([{"_value": 99.0}])]
    trigger = FluxTrigger(id="watch", connection=connection, org="o", query=FLUX)

    execution = trigger.evaluate(run_context)

    assert execution.trigger_id == "watch"
    assert execution.variables == {"size": 1, "total": 1, "rows": [{"_value": 99.0}]}


def test_evaluate_fetch_one(fake_influx, run_context, connection) -> None:
    fake_influx._query_api.tables = [FakeTable([{"_value": 1.0}, {"_value": 2.0}])]
    trigger = FluxTrigger(connection=connection, org="o", query=FLUX, fetch_type=FetchType.FETCH_ONE)

    execution = trigger.evaluate(run_context)

    assert execution.variables == {"size": 1, "total": 2, "row": {"_value": 1.0}}


def test_poll_sleeps_between_evaluations(fake_influx, run_context, connection) -> None:
    fake_influx._query_api.tables = [FakeTable([{"_value": 1.0}])]
    trigger = FluxTrigger(id="watch", connection=connection, org="o", query=FLUX, interval="PT5M")
    emitted = []
    sleeps = []

    count = trigger.poll(run_context, emitted.append, max_evaluations=3, sleep=sleeps.append)

    assert count == 3
    assert len(emitted) == 3
    assert sleeps == [300.0, 300.0]
    assert len(fake_influx._query_api.calls) == 3


def test_poll_default_interval(fake_influx, run_context, connection) -> None:
    trigger = FluxTrigger(connection=connection, org="o", query=FLUX)
    sleeps = []

    count = trigger.poll(run_context, lambda execution: None, max_evaluations=2, sleep=sleeps.append)

    assert count == 0
    assert sleeps == [60.0]


def test_bucket_is_accepted_but_not_forwarded(fake_influx, run_context, connection, caplog) -> None:
    fake_influx._query_api.tables = [FakeTable([{"_value": 1.0}])]
    trigger = FluxTrigger(id="watch", connection=connection, org="o", query=FLUX, bucket="alerts")
    caplog.set_level(logging.WARNING)

    execution = trigger.evaluate(run_context)

    assert trigger.bucket == "alerts"
    assert execution.variables["size"] == 1
    assert fake_influx._query_api.calls == [{"query": FLUX, "org": "o"}]
    assert "Bucket is ignored" not in caplog.text

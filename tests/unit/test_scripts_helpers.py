from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest

from influxdb_tasks import InfluxDBConnection, Load, LoadOutput, QueryOutput, Write


def _load_script(module_name: str, relative_path: str):
    root = Path(__file__).resolve().parents[2]
    script_path = root / relative_path
    spec = importlib.util.spec_from_file_location(module_name, script_path)
    module = importlib.util.module_from_spec(spec)
    assert spec is not None and spec.loader is not None
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def run_task():
    return _load_script("run_task_for_test", "scripts/run_task.py")


def test_org_is_required(run_task, monkeypatch) -> None:
    monkeypatch.delenv("INFLUXDB_V2_ORG", raising=False)
    monkeypatch.delenv("INFLUXDB_ORG", raising=False)

    with pytest.raises(ValueError, match="INFLUXDB_V2_ORG"):
        run_task._org_from_env()


def test_build_load_task(run_task, monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("INFLUXDB_ORG", "o")
    records = tmp_path / "records.jsonl"
    records.write_text('{"v": 1}\n', encoding="utf-8")
    args = run_task._parser().parse_args(
        ["load", str(records), "--bucket", "b", "--measurement", "m", "--tags", "sensor,location", "--chunk", "50"]
    )
    connection = InfluxDBConnection(url="http://localhost:8086", token="t")

    task = run_task._build_task(args, connection)

    assert isinstance(task, Load)
    assert task.from_ == records.resolve().as_uri()
    assert task.tags == "sensor,location"
    assert task.chunk == 50
    assert task.org == "o"


def test_build_write_task_reads_file(run_task, monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("INFLUXDB_ORG", "o")
    lines = tmp_path / "data.lp"
    lines.write_text("m f=1\n", encoding="utf-8")
    args = run_task._parser().parse_args(["write", str(lines), "--bucket", "b", "--precision", "S"])

    task = run_task._build_task(args, InfluxDBConnection(url="http://localhost:8086", token="t"))

    assert isinstance(task, Write)
    assert task.source == "m f=1\n"
    assert task.precision == "S"


def test_run_prints_task_output(run_task, monkeypatch, capsys) -> None:
    monkeypatch.setenv("INFLUXDB_URL", "http://localhost:8086")
    monkeypatch.setenv("INFLUXDB_TOKEN", "t")
    monkeypatch.setenv("INFLUXDB_ORG", "o")
    monkeypatch.setattr(run_task.FluxQuery, "run", lambda self, ctx: QueryOutput(size=1, total=1, rows=[{"v": 1}]))

    args = run_task._parser().parse_args(["flux", 'from(bucket: "b")'])
    assert run_task.run(args) == 0
    assert json.loads(capsys.readouterr().out) == {"size": 1, "total": 1, "rows": [{"v": 1}]}

    monkeypatch.setattr(run_task.Load, "run", lambda self, ctx: LoadOutput(record_count=3))
    args = run_task._parser().parse_args(["load", "x.jsonl", "--bucket", "b", "--measurement", "m"])
    assert run_task.run(args) == 0
    assert json.loads(capsys.readouterr().out) == {"record_count": 3}


def test_main_reports_failures(run_task, monkeypatch, capsys) -> None:
    monkeypatch.delenv("INFLUXDB_V2_URL", raising=False)
    monkeypatch.delenv("INFLUXDB_URL", raising=False)

    assert run_task.main(["ping"]) == 1
    assert "Task failed" in capsys.readouterr().err


def test_run_removes_scratch_directory(run_task, monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.setenv("INFLUXDB_URL", "http://localhost:8086")
    monkeypatch.setenv("INFLUXDB_TOKEN", "t")
    monkeypatch.setenv("INFLUXDB_ORG", "o")
    contexts = []

    def _run(self, ctx):
        contexts.append(ctx)
        return QueryOutput(size=0, total=0)

    monkeypatch.setattr(run_task.FluxQuery, "run", _run)

    assert run_task.run(run_task._parser().parse_args(["flux", "q"])) == 0
    assert not contexts[0].working_dir.path.exists()
    assert not contexts[0].storage.root.exists()

    kept = tmp_path / "kept"
    assert run_task.run(run_task._parser().parse_args(["--storage-dir", str(kept), "flux", "q"])) == 0
    assert contexts[1].storage.root == kept
    assert kept.is_dir()
    assert not contexts[1].working_dir.path.exists()
    capsys.readouterr()

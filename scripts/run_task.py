"""Run influxdb-tasks against a server configured through the environment.

Usage:
    py scripts/run_task.py ping
    py scripts/run_task.py flux 'from(bucket: "b") |> range(start: -1h)' --fetch-type FETCH
    py scripts/run_task.py influxql "SELECT * FROM cpu LIMIT 5" --bucket b
    py scripts/run_task.py write data.lp --bucket b --precision S
    py scripts/run_task.py load records.jsonl --bucket b --measurement sensor_data --tags sensor,location
    py scripts/run_task.py --storage-dir results flux "..." --fetch-type STORE

Connection settings come from INFLUXDB_URL / INFLUXDB_TOKEN (or the
INFLUXDB_V2_* variants), INFLUXDB_CONNECT_TIMEOUT, INFLUXDB_READ_TIMEOUT and
INFLUXDB_ORG, optionally from a .env file.
"""

from __future__ import annotations

import argparse
from dataclasses import asdict
from pathlib import Path
import json
import logging
import os
import sys
import tempfile

from influxdb_tasks import (
    FluxQuery,
    InfluxDBClientFactory,
    InfluxDBConnection,
    InfluxQLQuery,
    Load,
    LocalStorage,
    QueryOutput,
    RunContext,
    WorkingDir,
    Write,
    connection_from_env,
)


def _org_from_env() -> str:
    org = os.getenv("INFLUXDB_V2_ORG", os.getenv("INFLUXDB_ORG", ""))
    if not org:
        raise ValueError("INFLUXDB_V2_ORG (or INFLUXDB_ORG) is required")
    return org


def _build_task(args: argparse.Namespace, connection: InfluxDBConnection):
    if args.command == "flux":
        return FluxQuery(connection=connection, org=_org_from_env(), query=args.query, fetch_type=args.fetch_type)
    if args.command == "influxql":
        return InfluxQLQuery(
            connection=connection,
            org=_org_from_env(),
            bucket=args.bucket,
            query=args.query,
            fetch_type=args.fetch_type,
        )
    if args.command == "write":
        return Write(
            connection=connection,
            org=_org_from_env(),
            bucket=args.bucket,
            source=Path(args.file).read_text(encoding="utf-8"),
            precision=args.precision,
        )
    if args.command == "load":
        return Load(
            connection=connection,
            org=_org_from_env(),
            bucket=args.bucket,
            from_=Path(args.file).resolve().as_uri(),
            measurement=args.measurement,
            tags=args.tags,
            time_field=args.time_field,
            chunk=args.chunk,
        )
    raise ValueError(f"Unknown command: {args.command}")


def _ping() -> int:
    client = InfluxDBClientFactory.create(connection_from_env())
    with client:
        client.connect()
        print(f"ping ok: {client.config.url}")
    return 0


def run(args: argparse.Namespace) -> int:
    if args.command == "ping":
        return _ping()
    connection = InfluxDBConnection.from_config(connection_from_env())
    task = _build_task(args, connection)
    with tempfile.TemporaryDirectory(prefix="influxdb_tasks_") as scratch:
        storage = LocalStorage(args.storage_dir or Path(scratch) / "storage")
        run_context = RunContext(storage=storage, working_dir=WorkingDir(Path(scratch) / "work"), task_id=args.command)
        output = task.run(run_context)
    data = output.to_dict() if isinstance(output, QueryOutput) else asdict(output)
    print(json.dumps(data, default=str, indent=2))
    return 0


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run influxdb-tasks against an environment-configured server")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--storage-dir", default=None, help="Keep STORE results in this directory")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="Check that the server answers")

    flux = sub.add_parser("flux", help="Run a Flux query")
    flux.add_argument("query")
    flux.add_argument("--fetch-type", default="FETCH", choices=["FETCH", "FETCH_ONE", "STORE", "NONE"])

    influxql = sub.add_parser("influxql", help="Run an InfluxQL query")
    influxql.add_argument("query")
    influxql.add_argument("--bucket", required=True)
    influxql.add_argument("--fetch-type", default="FETCH", choices=["FETCH", "FETCH_ONE", "STORE", "NONE"])

    write = sub.add_parser("write", help="Write a line protocol file")
    write.add_argument("file")
    write.add_argument("--bucket", required=True)
    write.add_argument("--precision", default="NS", choices=["NS", "US", "MS", "S"])

    load = sub.add_parser("load", help="Load a JSON lines record file")
    load.add_argument("file")
    load.add_argument("--bucket", required=True)
    load.add_argument("--measurement", required=True)
    load.add_argument("--tags", default=None, help="Comma separated keys stored as tags")
    load.add_argument("--time-field", default=None)
    load.add_argument("--chunk", type=int, default=1000)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        return run(args)
    except Exception as exc:
        print(f"Task failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import pytest

from influxdb_tasks.models import FetchType, QueryOutput
from influxdb_tasks.results import build_output, flux_tables_to_rows, influxql_result_to_rows

from conftest import FakeTable


def test_flux_tables_are_concatenated_without_nulls() -> None:
    tables = [
        FakeTable([{"_measurement": "cpu", "_value": 1.0, "host": None}]),
        FakeTable([{"_measurement": "mem", "_value": 2.0}, {"_measurement": "mem", "_value": None}]),
    ]

    assert flux_tables_to_rows(tables) == [
        {"_measurement": "cpu", "_value": 1.0},
        {"_measurement": "mem", "_value": 2.0},
        {"_measurement": "mem"},
    ]
    assert flux_tables_to_rows(None) == []


def test_influxql_series_are_flattened() -> None:
    result = {
        "results": [
            {
                "statement_id": 0,
                "series": [
                    {
                        "name": "cpu",
                        "columns": ["time", "host", "value"],
                        "values": [
                            ["2020-01-01T00:00:00Z", "a", 1.5],
                            ["2020-01-01T00:01:00Z", None, 2.5, "extra"],
                            [None, None, None],
                        ],
                    },
                    {"name": "empty", "columns": [], "values": [["x"]]},
                ],
            },
            {"statement_id": 1},
        ]
    }

    assert influxql_result_to_rows(result) == [
        {"time": "2020-01-01T00:00:00Z", "host": "a", "value": 1.5},
        {"time": "2020-01-01T00:01:00Z", "value": 2.5},
    ]
    assert influxql_result_to_rows({}) == []
    assert influxql_result_to_rows(None) == []


ROWS = [{"v": 1}, {"v": 2}, {"v": 3}]


def test_fetch_returns_all_rows() -> None:
    output = build_output(ROWS, FetchType.FETCH)

    assert (output.size, output.total, output.rows) == (3, 3, ROWS)
    assert output.row is None and output.uri is None


def test_fetch_one_returns_first_row() -> None:
    output = build_output(ROWS, "fetch_one")

    assert (output.size, output.total, output.row) == (1, 3, {"v": 1})
    assert output.rows is None

    empty = build_output([], FetchType.FETCH_ONE)
    assert (empty.size, empty.total, empty.row) == (0, 0, None)


def test_store_hands_rows_to_callback() -> None:
    stored = []

    def _store(rows):
        stored.append(rows)
        return "storage:///rows.jsonl"

    output = build_output(ROWS, FetchType.STORE, store=_store)

    assert (output.size, output.total, output.uri) == (3, 3, "storage:///rows.jsonl")
    assert stored == [ROWS]

    with pytest.raises(ValueError, match="store callback"):
        build_output(ROWS, FetchType.STORE)


def test_none_only_counts() -> None:
    output = build_output(ROWS, FetchType.NONE)

    assert (output.size, output.total) == (3, 3)
    assert output.to_dict() == {"size": 3, "total": 3}


def test_query_output_allows_a_single_payload() -> None:
    with pytest.raises(ValueError, match="Only one of"):
        QueryOutput(size=1, total=1, rows=[{"v": 1}], uri="storage:///x")


def test_query_output_to_dataframe() -> None:
    assert list(build_output(ROWS, FetchType.FETCH).to_dataframe()["v"]) == [1, 2, 3]
    assert build_output(ROWS, FetchType.FETCH_ONE).to_dataframe().shape == (1, 1)
    assert build_output(ROWS, FetchType.NONE).to_dataframe().empty


def test_unknown_fetch_type() -> None:
    with pytest.raises(ValueError, match="Unknown fetch type"):
        build_output(ROWS, "FETCH_ALL")

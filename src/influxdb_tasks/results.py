"""Normalisation of Flux and InfluxQL results into rows, and fetch handling."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .models import FetchType, QueryOutput, Row

StoreRows = Callable[[List[Row]], str]


def flux_tables_to_rows(tables: Optional[Iterable[Any]]) -> List[Row]:
    """Concatenate the records of every Flux table, dropping None values."""
    rows: List[Row] = []
    for table in tables or []:
        for record in getattr(table, "records", None) or []:
            values = getattr(record, "values", None) or {}
            rows.append({k: v for k, v in values.items() if v is not None})
    return rows


def influxql_result_to_rows(result: Optional[Mapping[str, Any]]) -> List[Row]:
    """Flatten an InfluxQL ``results -> series -> values`` payload into rows.

    Columns are matched to values by position. Series without columns, None
    values and rows left empty are skipped.
    """
    rows: List[Row] = []
    for entry in (result or {}).get("results") or []:
        if not entry:
            continue
        for series in entry.get("series") or []:
            if not series:
                continue
            index_to_column: Dict[int, str] = dict(enumerate(series.get("columns") or []))
            if not index_to_column:
                continue
            for values in series.get("values") or []:
                if values is None:
                    continue
                row = {
                    index_to_column[i]: value
                    for i, value in enumerate(values)
                    if value is not None and i in index_to_column
                }
                if row:
                    rows.append(row)
    return rows


def build_output(
    rows: List[Row],
    fetch_type: FetchType | str,
    store: Optional[StoreRows] = None,
) -> QueryOutput:
    """Shape query rows according to the fetch type.

    ========== ========== ======= ============= ============ ===========
    fetch type size       total   rows          row          uri
    ========== ========== ======= ============= ============ ===========
    FETCH      len(rows)  len     rows          -            -
    FETCH_ONE  0 or 1     len     -             rows[0]      -
    STORE      len(rows)  len     -             -            store(rows)
    NONE       len(rows)  len     -             -            -
    ========== ========== ======= ============= ============ ===========
    """
    fetch_type = FetchType.parse(fetch_type)
    total = len(rows)
    if fetch_type is FetchType.FETCH:
        return QueryOutput(size=total, total=total, rows=rows)
    if fetch_type is FetchType.FETCH_ONE:
        first = rows[0] if rows else None
        return QueryOutput(size=1 if first is not None else 0, total=total, row=first)
    if fetch_type is FetchType.STORE:
        if store is None:
            raise ValueError("store callback is required for fetch type STORE")
        return QueryOutput(size=total, total=total, uri=store(rows))
    return QueryOutput(size=total, total=total)

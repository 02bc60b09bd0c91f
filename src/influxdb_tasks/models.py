"""Data models for influxdb_tasks."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import pandas as pd

Row = Dict[str, Any]


class FetchType(str, Enum):
    """How query rows are handed back to the caller."""

    FETCH = "FETCH"
    FETCH_ONE = "FETCH_ONE"
    STORE = "STORE"
    NONE = "NONE"

    @classmethod
    def parse(cls, value: "FetchType | str") -> "FetchType":
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown fetch type '{value}'. Allowed: {allowed}") from None


@dataclass(frozen=True)
class Counter:
    """Counter metric published to the host runtime."""

    name: str
    value: int
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LoadOutput:
    """Result of a Load task."""

    record_count: int


@dataclass(frozen=True)
class WriteOutput:
    """Result of a Write task."""

    record_count: int


@dataclass(frozen=True)
class QueryOutput:
    """Result of a Flux or InfluxQL query.

    At most one of ``rows``, ``row`` and ``uri`` is populated, depending on
    the fetch type the query ran with.
    """

    size: int
    total: int
    rows: Optional[List[Row]] = None
    row: Optional[Row] = None
    uri: Optional[str] = None

    def __post_init__(self) -> None:
        populated = [name for name in ("rows", "row", "uri") if getattr(self, name) is not None]
        if len(populated) > 1:
            raise ValueError(f"Only one of rows, row, uri may be set, got: {', '.join(populated)}")

    def to_dataframe(self) -> pd.DataFrame:
        if self.rows is not None:
            return pd.DataFrame(self.rows)
        if self.row is not None:
            return pd.DataFrame([self.row])
        return pd.DataFrame()

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class Execution:
    """Flow execution emitted by a trigger."""

    trigger_id: Optional[str]
    variables: Dict[str, Any]
    created: datetime = field(default_factory=lambda: datetime.now(UTC))

"""Pydantic models for report results.

results are produced fresh on every execution and never persisted.
"""

from typing import Any

from pydantic import BaseModel, Field

from reportforge.models.field import ReportWarning
from reportforge.models.report import Filter


class ReportResult(BaseModel):
    """Result of executing a report definition.

    grouped results have a different shape than raw ones - columns become
    the group key plus one column per aggregation. callers check `grouped`
    (or the definition's group_by) to know which shape they got.
    """

    columns: list[str]
    rows: list[dict[str, Any]]  # list of dicts in column order, same as the store hands back
    row_count: int
    grouped: bool = False
    rejected_filters: list[Filter] = Field(default_factory=list)
    dropped_columns: list[str] = Field(default_factory=list)
    warnings: list[ReportWarning] = Field(default_factory=list)
    execution_time_ms: float = 0.0


class QueryResult(BaseModel):
    """Raw result of a sql statement run by the duckdb store.

    keeping the sql alongside the data is handy when a pushdown filter
    doesn't do what you expect.
    """

    sql: str
    columns: list[str]
    data: list[dict[str, Any]]
    row_count: int
    execution_time_ms: float

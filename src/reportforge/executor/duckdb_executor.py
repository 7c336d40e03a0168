"""DuckDB-backed entity data store.

duckdb is a good fit for the reference store - embedded, fast, and it speaks
sql, so pushdown filters actually get pushed down. the in-memory mode is what
the tests use.
"""

import logging
import time
from collections.abc import Collection
from datetime import date, datetime
from pathlib import Path
from typing import Any

import duckdb

from reportforge.compiler.sql_builder import FetchCompiler
from reportforge.filters import ALL_OPERATORS
from reportforge.models.report import FilterOperator, PushdownClause
from reportforge.models.result import QueryResult

logger = logging.getLogger(__name__)


def _infer_type(values: Any) -> str:
    """Pick a duckdb column type from the first non-null python value."""
    for value in values:
        if value is None:
            continue
        if isinstance(value, bool):
            return "BOOLEAN"
        if isinstance(value, int):
            return "BIGINT"
        if isinstance(value, float):
            return "DOUBLE"
        if isinstance(value, datetime):
            return "TIMESTAMP"
        if isinstance(value, date):
            return "DATE"
        return "VARCHAR"
    return "VARCHAR"


class DuckDBEntityStore:
    """Entity data store over a duckdb database.

    each entity is a table (name mapping via `tables`), custom field values
    live in a json `custom_fields` column. the connection is shared with the
    report repository and custom field registry when built via
    ReportEngine.from_duckdb.
    """

    supported_operators: Collection[FilterOperator] = ALL_OPERATORS

    def __init__(
        self,
        database_path: str | None = None,
        tables: dict[str, str] | None = None,
        page_size: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            database_path: Path to DuckDB file, or None for in-memory.
            tables: Entity name to table name overrides.
            page_size: Maximum rows returned by a single fetch, None for no limit.
        """
        self.database_path = database_path
        self.page_size = page_size
        self.compiler = FetchCompiler(tables)
        self._conn: duckdb.DuckDBPyConnection | None = None  # lazy init

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        """Get or create the DuckDB connection.

        lazy so we don't open a file until something actually needs it.
        """
        if self._conn is None:
            self._conn = duckdb.connect(self.database_path or ":memory:")
        return self._conn

    def fetch(
        self, entity: str, columns: list[str], pushdown: list[PushdownClause]
    ) -> list[dict[str, Any]]:
        """Fetch rows for an entity with pushdown filters applied in sql."""
        sql = self.compiler.compile(entity, columns, pushdown)
        if self.page_size:
            sql = f"{sql} LIMIT {int(self.page_size)}"
        return self.execute(sql).data

    def execute(self, sql: str, parameters: list[Any] | None = None) -> QueryResult:
        """Execute SQL and return structured results.

        times the execution - handy when a report feels slow and you want to
        know whether it's the store or the aggregation.
        """
        start = time.perf_counter()

        result = self.conn.execute(sql, parameters) if parameters else self.conn.execute(sql)
        columns = [desc[0] for desc in result.description] if result.description else []
        rows = result.fetchall() if columns else []

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("Executed in %.2fms, %d rows", elapsed_ms, len(rows))

        data = [dict(zip(columns, row)) for row in rows]

        return QueryResult(
            sql=sql,
            columns=columns,
            data=data,
            row_count=len(data),
            execution_time_ms=round(elapsed_ms, 2),
        )

    def load_parquet(self, table_name: str, path: str | Path) -> None:
        """Load a Parquet file as a table. CREATE OR REPLACE keeps reloads idempotent."""
        path = Path(path)
        self.conn.execute(f"""
            CREATE OR REPLACE TABLE "{table_name}" AS
            SELECT * FROM read_parquet('{path}')
        """)

    def load_csv(self, table_name: str, path: str | Path) -> None:
        """Load a CSV file as a table.

        read_csv_auto figures out delimiters and types on its own, works well
        enough for exports coming out of the crm.
        """
        path = Path(path)
        self.conn.execute(f"""
            CREATE OR REPLACE TABLE "{table_name}" AS
            SELECT * FROM read_csv_auto('{path}')
        """)

    def create_table_from_data(
        self, table_name: str, columns: list[str], data: list[tuple[Any, ...]]
    ) -> None:
        """Create a table from in-memory data.

        useful for tests and small fixtures, duckdb infers the types.
        """
        if not data:
            raise ValueError("Cannot create table from empty data")

        placeholders = ", ".join(["?"] * len(columns))
        col_defs = ", ".join(
            f'"{col}" {_infer_type(row[i] for row in data)}' for i, col in enumerate(columns)
        )

        self.conn.execute(f'CREATE OR REPLACE TABLE "{table_name}" ({col_defs})')
        self.conn.executemany(
            f'INSERT INTO "{table_name}" VALUES ({placeholders})',
            data,
        )

    def table_exists(self, table_name: str) -> bool:
        result = self.conn.execute(
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
            [table_name],
        )
        return result.fetchone()[0] > 0

    def get_table_schema(self, table_name: str) -> list[tuple[str, str]]:
        """Get column names and types for a table."""
        result = self.conn.execute(f'DESCRIBE "{table_name}"')
        return [(row[0], row[1]) for row in result.fetchall()]

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DuckDBEntityStore":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

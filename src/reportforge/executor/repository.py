"""DuckDB adapters for saved reports and custom fields.

both share the entity store's connection, so a single duckdb file holds the
entity tables, the custom field definitions and the saved reports.
"""

import json
import logging
import uuid
from datetime import datetime, timezone

import duckdb

from reportforge.models.field import FieldDefinition, FieldKind, FieldType
from reportforge.models.report import ReportDefinition, SavedReport

logger = logging.getLogger(__name__)


class DuckDBReportRepository:
    """Report persistence store over a duckdb table.

    only the declarative definition is stored, as json - never result rows.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection, table: str = "saved_reports") -> None:
        self.conn = conn
        self.table = table
        self._ensure_table()

    def _ensure_table(self) -> None:
        self.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS "{self.table}" (
                id VARCHAR PRIMARY KEY,
                name VARCHAR NOT NULL,
                definition VARCHAR NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
        """)

    def insert(self, definition: ReportDefinition, report_id: str | None = None) -> SavedReport:
        """Store a definition, overwriting the whole record if the id exists."""
        saved = SavedReport(
            **definition.model_dump(),
            id=report_id or str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc).replace(tzinfo=None),
        )
        payload = definition.model_dump_json()

        # saving again is a full overwrite, never a partial update. one statement,
        # so a failed overwrite leaves the old record in place
        self.conn.execute(
            f'INSERT OR REPLACE INTO "{self.table}" VALUES (?, ?, ?, ?)',
            [saved.id, saved.name, payload, saved.created_at],
        )
        logger.debug("Saved report %s (%s)", saved.id, saved.name)
        return saved

    def select_all(self) -> list[SavedReport]:
        """All saved reports, newest first."""
        rows = self.conn.execute(
            f'SELECT id, definition, created_at FROM "{self.table}" ORDER BY created_at DESC, id'
        ).fetchall()
        return [self._to_saved(row) for row in rows]

    def select_one(self, report_id: str) -> SavedReport | None:
        row = self.conn.execute(
            f'SELECT id, definition, created_at FROM "{self.table}" WHERE id = ?',
            [report_id],
        ).fetchone()
        return self._to_saved(row) if row else None

    def delete(self, report_id: str) -> bool:
        """Delete a report. Returns False if there was nothing to delete."""
        if self.select_one(report_id) is None:
            return False
        self.conn.execute(f'DELETE FROM "{self.table}" WHERE id = ?', [report_id])
        return True

    def _to_saved(self, row: tuple) -> SavedReport:
        report_id, payload, created_at = row
        return SavedReport(**json.loads(payload), id=report_id, created_at=created_at)


class DuckDBCustomFieldRegistry:
    """Custom field registry backed by the `custom_fields` table.

    expected columns: entity_type, field_key, name, field_type, sort_order.
    a missing table raises like any other registry failure - the resolver
    turns that into a partial catalog.
    """

    # custom field types from the crm, mapped onto our coarser data types
    TYPE_MAP = {
        "number": FieldType.NUMBER,
        "currency": FieldType.NUMBER,
        "date": FieldType.DATE,
        "datetime": FieldType.DATE,
        "boolean": FieldType.BOOLEAN,
        "checkbox": FieldType.BOOLEAN,
    }

    def __init__(self, conn: duckdb.DuckDBPyConnection, table: str = "custom_fields") -> None:
        self.conn = conn
        self.table = table

    def list_fields(self, entity: str) -> list[FieldDefinition]:
        rows = self.conn.execute(
            f'SELECT field_key, name, field_type FROM "{self.table}" '
            "WHERE entity_type = ? ORDER BY sort_order, field_key",
            [entity],
        ).fetchall()
        return [
            FieldDefinition(
                key=field_key,
                label=name or field_key,
                kind=FieldKind.CUSTOM,
                data_type=self.TYPE_MAP.get((field_type or "").lower(), FieldType.TEXT),
            )
            for field_key, name, field_type in rows
        ]

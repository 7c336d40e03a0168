"""Delimited-text export of report results.

strings are always quoted (embedded quotes doubled), numbers are written
as-is and None becomes an empty, unquoted field. that's exactly
csv.QUOTE_STRINGS, so the csv module does the escaping and anything that
speaks csv reads the values back unchanged.
"""

import csv
import io
from collections.abc import Iterable
from decimal import Decimal
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel


class ExportFile(BaseModel):
    """A text export ready to hand to whatever saves files."""

    filename: str
    content: str
    media_type: str = "text/csv"

    @property
    def data(self) -> bytes:
        return self.content.encode("utf-8")


def _cell(value: Any) -> Any:
    # numbers stay numbers (unquoted), everything else is text (quoted)
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float | Decimal):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def to_delimited_text(
    rows: Iterable[dict[str, Any]], columns: list[str], delimiter: str = ","
) -> str:
    """Serialize rows to delimited text, header first.

    rows are read by column key, so extra keys are ignored and missing
    ones come out empty.
    """
    buffer = io.StringIO()

    # header is just the column keys joined, quoted only if it has to be
    header = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    header.writerow(columns)

    writer = csv.writer(
        buffer,
        delimiter=delimiter,
        lineterminator="\n",
        quoting=csv.QUOTE_STRINGS,
    )
    for row in rows:
        writer.writerow([_cell(row.get(col)) for col in columns])

    return buffer.getvalue()


def build_export(
    rows: Iterable[dict[str, Any]],
    columns: list[str],
    filename: str,
    delimiter: str = ",",
) -> ExportFile:
    """Build a downloadable export. The filename always ends up with .csv."""
    name = PurePath(filename).name or "report"
    if not name.lower().endswith(".csv"):
        name = f"{name}.csv"
    return ExportFile(filename=name, content=to_delimited_text(rows, columns, delimiter))

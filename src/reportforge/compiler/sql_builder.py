"""SQL compiler for entity fetches.

turns (entity, columns, pushdown clauses) into a single SELECT for duckdb.
no joins, no aggregation, no ordering - grouping happens client-side and
rows come back in whatever order the table gives them.

everything goes through sqlglot's expression builders rather than string
formatting, so identifiers get quoted and filter values get escaped without
any hand-rolled escaping. the comparison semantics match
reportforge.filters.matches exactly - a filter has to mean the same thing
whether it runs in the store or locally.
"""

import logging
import re

from sqlglot import exp

from reportforge.filters import to_number
from reportforge.models.field import CUSTOM_FIELD_PREFIX, strip_custom_prefix
from reportforge.models.report import FilterOperator, PushdownClause

logger = logging.getLogger(__name__)

# registry keys that can go into a json path unquoted
_PLAIN_JSON_KEY = re.compile(r"[A-Za-z0-9_]+")


def json_path(key: str) -> str:
    """Json path for a top-level key.

    keys with anything beyond letters, digits and underscores get quoted, a bare
    dot would otherwise be read as a nested lookup.
    """
    if _PLAIN_JSON_KEY.fullmatch(key):
        return f"$.{key}"
    escaped = key.replace("\\", "\\\\").replace('"', '\\"')
    return f'$."{escaped}"'


class FetchCompiler:
    """Compiles entity fetches into SQL.

    stateless - the table map and custom field column are fixed at
    construction time.
    """

    def __init__(
        self,
        tables: dict[str, str] | None = None,
        custom_fields_column: str = "custom_fields",
        dialect: str = "duckdb",
    ) -> None:
        self.tables = tables or {}  # entity -> table, entity name is the default
        # custom field values live in a json column on each entity table
        self.custom_fields_column = custom_fields_column
        self.dialect = dialect

    def compile(
        self,
        entity: str,
        columns: list[str],
        pushdown: list[PushdownClause] | None = None,
        pretty: bool = False,
    ) -> str:
        """Build the SELECT for a fetch."""
        if not columns:
            raise ValueError("Cannot compile a fetch without columns")

        table = self.tables.get(entity, entity)
        select = exp.select(
            *[exp.alias_(self.column_expr(col), col, quoted=True) for col in columns]
        ).from_(exp.table_(table, quoted=True))

        # where() ANDs with whatever is already there
        for clause in pushdown or []:
            select = select.where(self.condition(clause))

        sql = select.sql(dialect=self.dialect, pretty=pretty)
        logger.debug("Compiled fetch for %s: %s", entity, sql)
        return sql

    def column_expr(self, key: str) -> exp.Expression:
        """Expression that reads a field.

        built-ins are plain quoted columns. custom fields are pulled out of the
        json column - json_extract_string gives NULL for missing keys, which
        is exactly what we want for records that never set the field.
        """
        if key.startswith(CUSTOM_FIELD_PREFIX):
            return exp.Anonymous(
                this="json_extract_string",
                expressions=[
                    exp.column(self.custom_fields_column, quoted=True),
                    exp.Literal.string(json_path(strip_custom_prefix(key))),
                ],
            )
        return exp.column(key, quoted=True)

    def condition(self, clause: PushdownClause) -> exp.Expression:
        """Translate one pushdown clause into a boolean expression."""
        column = self.column_expr(clause.field)
        as_text = exp.cast(column.copy(), "VARCHAR")
        value = exp.Literal.string(clause.value)

        if clause.operator == FilterOperator.CONTAINS:
            # contains() sidesteps LIKE wildcards in user input
            return exp.Anonymous(
                this="contains",
                expressions=[exp.Lower(this=as_text), exp.Lower(this=value)],
            )

        if clause.operator == FilterOperator.EQUALS:
            comparison = exp.EQ
        elif clause.operator == FilterOperator.GREATER_THAN:
            comparison = exp.GT
        elif clause.operator == FilterOperator.LESS_THAN:
            comparison = exp.LT
        else:
            raise ValueError(f"Unsupported operator: {clause.operator}")

        textual = comparison(this=as_text.copy(), expression=value.copy())
        number = to_number(clause.value)
        if number is None:
            return textual

        # numeric compare when the text form parses as a number, string compare
        # otherwise. TRY_CAST gives NULL for junk so COALESCE falls through
        numeric = comparison(
            this=exp.TryCast(this=as_text.copy(), to=exp.DataType.build("DOUBLE")),
            expression=exp.Literal.number(number),
        )
        return exp.Coalesce(this=numeric, expressions=[textual])

"""Filter validation, pushdown planning and local evaluation.

every filter ends up in exactly one place: pushed down to the store, applied
locally on the fetched rows, rejected (unknown field), or ignored (empty
value). that's what lets the two evaluation paths be ANDed together safely.

comparison semantics are shared with the sql compiler so a filter means the
same thing whichever path it takes:
  - equals: numeric equality if both sides look like numbers, otherwise an
    exact match on the text form
  - contains: case-insensitive substring
  - greater_than / less_than: numeric if both sides look like numbers,
    otherwise plain string comparison (iso dates sort correctly that way)
"""

import logging
import math
from collections.abc import Collection, Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from reportforge.models.field import FieldCatalog, FieldDefinition
from reportforge.models.report import Filter, FilterOperator, FilterPlan, PushdownClause

logger = logging.getLogger(__name__)

ALL_OPERATORS: frozenset[FilterOperator] = frozenset(FilterOperator)


def to_number(value: Any) -> int | float | None:
    """Coerce a value to a number, None if it isn't numeric.

    ints stay ints so sums of whole numbers don't turn into floats. nan and
    inf are treated as non-numeric - they'd poison every aggregate.
    bools are not numbers here, even though python thinks they are.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def to_text(value: Any) -> str:
    """Text form of a cell value, matching what duckdb's CAST AS VARCHAR gives."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime | date):
        return value.isoformat(sep=" ") if isinstance(value, datetime) else value.isoformat()
    return str(value)


def matches(cell: Any, operator: FilterOperator, value: str) -> bool:
    """Evaluate a single predicate against a cell. Null cells never match."""
    if cell is None:
        return False

    text = to_text(cell)

    if operator == FilterOperator.CONTAINS:
        return value.lower() in text.lower()

    # numbers first, fall back to the text form
    left: Any = to_number(cell)
    right: Any = to_number(value)
    if left is None or right is None:
        left, right = text, value

    if operator == FilterOperator.EQUALS:
        return left == right
    if operator == FilterOperator.GREATER_THAN:
        return left > right
    if operator == FilterOperator.LESS_THAN:
        return left < right

    raise ValueError(f"Unsupported operator: {operator}")


class FilterEvaluator:
    """Splits filters into pushdown/local/rejected and applies local ones.

    stateless - safe to share between concurrent executions.
    """

    def __init__(self, supported_operators: Collection[FilterOperator] | None = None) -> None:
        # operators the data store can evaluate itself, everything else runs locally
        self.supported_operators = (
            frozenset(supported_operators) if supported_operators is not None else ALL_OPERATORS
        )

    def build_pushdown(
        self, filters: Iterable[Filter], catalog: FieldCatalog | Iterable[FieldDefinition]
    ) -> FilterPlan:
        """Validate filters against the catalog and plan where each one runs."""
        known = {f.key for f in catalog}
        plan = FilterPlan()

        for flt in filters:
            if flt.is_inert:
                continue  # still being built in the ui

            if flt.field not in known:
                logger.warning("Rejecting filter on unknown field %s", flt.field)
                plan.rejected.append(flt)
                continue

            if flt.operator in self.supported_operators:
                plan.pushdown.append(
                    PushdownClause(field=flt.field, operator=flt.operator, value=flt.value)
                )
            else:
                plan.local.append(flt)

        return plan

    def apply_local(
        self, filters: Iterable[Filter], rows: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Keep rows matching every non-inert filter. Order is preserved.

        a filter on a key the rows don't carry can't match anything, so
        callers must have fetched every field they filter on.
        """
        active = [f for f in filters if not f.is_inert]
        if not active:
            return rows

        return [
            row
            for row in rows
            if all(matches(row.get(f.field), f.operator, f.value) for f in active)
        ]

"""Client-side grouping and aggregation.

the store only ever hands back raw rows - grouping happens here, in memory.
fine for the page sizes we fetch, and it means this module is pure and can
be tested without any store at all.
"""

from collections.abc import Iterable
from typing import Any

from reportforge.filters import to_number, to_text
from reportforge.models.report import Aggregation, AggregationFunction

UNKNOWN_GROUP = "Unknown"


def group_key(value: Any, unknown_label: str = UNKNOWN_GROUP) -> str:
    """Stringified group key. Missing values get their own bucket, never dropped."""
    if value is None:
        return unknown_label
    text = to_text(value)
    return text if text.strip() else unknown_label


def output_columns(group_by: str, aggregations: Iterable[Aggregation]) -> list[str]:
    """Columns of the grouped output - group key first, then one per aggregation.

    asking for the same function on the same field twice gives one column.
    """
    columns = [group_by]
    for agg in aggregations:
        if agg.output_key not in columns:
            columns.append(agg.output_key)
    return columns


def reduce_values(function: AggregationFunction, values: list[Any]) -> int | float:
    """Apply one aggregate function to the values of one group.

    count counts rows, not values. everything else only looks at values
    that coerce to numbers - junk is skipped rather than counted as zero.
    an empty numeric set always gives 0, never nan or inf.
    """
    if function == AggregationFunction.COUNT:
        return len(values)

    numbers = [n for n in (to_number(v) for v in values) if n is not None]
    if not numbers:
        return 0

    if function == AggregationFunction.SUM:
        return sum(numbers)
    if function == AggregationFunction.AVG:
        return sum(numbers) / len(numbers)
    if function == AggregationFunction.MAX:
        return max(numbers)
    if function == AggregationFunction.MIN:
        return min(numbers)

    raise ValueError(f"Unsupported aggregation function: {function}")


def aggregate(
    rows: Iterable[dict[str, Any]],
    group_by: str,
    aggregations: Iterable[Aggregation],
    unknown_label: str = UNKNOWN_GROUP,
) -> list[dict[str, Any]]:
    """Group rows by a column and compute aggregations per group.

    output has one row per distinct group key, in the order each key was
    first seen in the input. no re-sorting - tests rely on that.

    >>> aggregate([{"g": "A", "v": 1}, {"g": "A", "v": 3}, {"g": "B", "v": 5}],
    ...           "g", [Aggregation(function="sum", field="v")])
    [{'g': 'A', 'sum_v': 4}, {'g': 'B', 'sum_v': 5}]
    """
    aggregations = list(aggregations)

    # dicts keep insertion order, which gives us first-seen group order for free
    groups: dict[str, list[dict[str, Any]]] = {}
    for row in rows:
        key = group_key(row.get(group_by), unknown_label)
        groups.setdefault(key, []).append(row)

    result = []
    for key, members in groups.items():
        out: dict[str, Any] = {group_by: key}
        for agg in aggregations:
            if agg.output_key in out:
                continue  # duplicate aggregation, same answer
            values = [member.get(agg.field) for member in members]
            out[agg.output_key] = reduce_values(agg.function, values)
        result.append(out)

    return result

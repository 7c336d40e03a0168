"""Pydantic models for report definitions.

a report definition is purely declarative - entity, columns, filters,
grouping, aggregations and a visualization hint. nothing in here knows how
to fetch data, so definitions can be persisted and reloaded as-is.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class FilterOperator(str, Enum):
    """Supported filter operators.

    anything a data store can't evaluate itself is
    applied locally on the fetched rows instead.
    """

    EQUALS = "equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class AggregationFunction(str, Enum):
    """Aggregate functions available when a report is grouped."""

    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MAX = "max"
    MIN = "min"


class Visualization(str, Enum):
    """How the presentation layer should render the result."""

    TABLE = "table"
    BAR = "bar"
    PIE = "pie"
    LINE = "line"


class Filter(BaseModel):
    """A single predicate on a field.

    an empty value means the user hasn't finished building the filter yet -
    those are ignored at execution time rather than treated as errors.
    """

    field: str
    operator: FilterOperator = FilterOperator.EQUALS
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, value: object) -> object:
        # yaml happily turns `value: 100` into an int, keep everything textual
        if value is None:
            return ""
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, int | float):
            return str(value)
        return value

    @property
    def is_inert(self) -> bool:
        return not self.value.strip()


class Aggregation(BaseModel):
    """An aggregate function applied to one field within each group."""

    function: AggregationFunction
    field: str

    @property
    def output_key(self) -> str:
        """Column key in the grouped output, e.g. sum_revenue."""
        return f"{self.function.value}_{self.field}"


class PushdownClause(BaseModel):
    """A filter translated for the data store to evaluate remotely."""

    field: str
    operator: FilterOperator
    value: str


class FilterPlan(BaseModel):
    """How a list of filters gets split between the store and local evaluation.

    every non-inert filter lands in exactly one of the three lists, so
    pushdown and local predicates can be ANDed without double counting.
    """

    pushdown: list[PushdownClause] = Field(default_factory=list)
    local: list[Filter] = Field(default_factory=list)
    rejected: list[Filter] = Field(default_factory=list)


class ReportDefinition(BaseModel):
    """The declarative shape of a report.

    validation here is loose - a saved report may reference
    fields that were later removed, and the builder ui saves half-finished
    definitions. the engine validates preconditions when it executes.
    """

    entity: str = ""
    columns: list[str] = Field(default_factory=list)
    filters: list[Filter] = Field(default_factory=list)
    group_by: str | None = None
    aggregations: list[Aggregation] = Field(default_factory=list)
    visualization: Visualization = Visualization.TABLE
    name: str = ""

    @field_validator("group_by", mode="before")
    @classmethod
    def blank_group_by_is_none(cls, value: object) -> object:
        # the builder stores "no grouping" as an empty string
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_grouped(self) -> bool:
        return self.group_by is not None


class SavedReport(ReportDefinition):
    """A report definition as owned by the persistence store."""

    id: str
    created_at: datetime

    def to_definition(self) -> ReportDefinition:
        """Drop the persistence metadata."""
        return ReportDefinition.model_validate(
            self.model_dump(exclude={"id", "created_at"})
        )

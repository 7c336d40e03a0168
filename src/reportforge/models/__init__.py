"""Pydantic models for ReportForge."""

from reportforge.models.field import (
    CUSTOM_FIELD_PREFIX,
    FieldCatalog,
    FieldDefinition,
    FieldKind,
    FieldType,
    ReportWarning,
    custom_field_key,
    strip_custom_prefix,
)
from reportforge.models.report import (
    Aggregation,
    AggregationFunction,
    Filter,
    FilterOperator,
    FilterPlan,
    PushdownClause,
    ReportDefinition,
    SavedReport,
    Visualization,
)
from reportforge.models.result import QueryResult, ReportResult

__all__ = [
    "CUSTOM_FIELD_PREFIX",
    "Aggregation",
    "AggregationFunction",
    "FieldCatalog",
    "FieldDefinition",
    "FieldKind",
    "FieldType",
    "Filter",
    "FilterOperator",
    "FilterPlan",
    "PushdownClause",
    "QueryResult",
    "ReportDefinition",
    "ReportResult",
    "ReportWarning",
    "SavedReport",
    "Visualization",
    "custom_field_key",
    "strip_custom_prefix",
]

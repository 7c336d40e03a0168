"""ReportForge - declarative report queries and client-side aggregation."""

from reportforge.aggregation import aggregate
from reportforge.catalog import FieldCatalogResolver
from reportforge.config import EngineConfig
from reportforge.definitions import ReportDefinitionStore
from reportforge.engine import ReportEngine
from reportforge.errors import (
    DataSourceError,
    ErrorKind,
    InvalidDefinitionError,
    MissingNameError,
    NoValidColumnsError,
    ReportError,
    ReportNotFoundError,
    UnknownEntityError,
)
from reportforge.export import build_export, to_delimited_text
from reportforge.filters import FilterEvaluator
from reportforge.models import (
    Aggregation,
    AggregationFunction,
    FieldCatalog,
    FieldDefinition,
    Filter,
    FilterOperator,
    ReportDefinition,
    ReportResult,
    SavedReport,
    Visualization,
)
from reportforge.parser.loader import EntityRegistry, load_definition

__all__ = [
    "Aggregation",
    "AggregationFunction",
    "DataSourceError",
    "EngineConfig",
    "EntityRegistry",
    "ErrorKind",
    "FieldCatalog",
    "FieldCatalogResolver",
    "FieldDefinition",
    "Filter",
    "FilterEvaluator",
    "FilterOperator",
    "InvalidDefinitionError",
    "MissingNameError",
    "NoValidColumnsError",
    "ReportDefinition",
    "ReportDefinitionStore",
    "ReportEngine",
    "ReportError",
    "ReportNotFoundError",
    "ReportResult",
    "SavedReport",
    "UnknownEntityError",
    "Visualization",
    "aggregate",
    "build_export",
    "load_definition",
    "to_delimited_text",
]

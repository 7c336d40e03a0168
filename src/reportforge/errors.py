"""Error types for ReportForge.

every fatal error carries a `kind` so the ui layer can map it to a message
without string matching. non-fatal conditions (partial catalog, rejected
filters) are not exceptions - they travel back as ReportWarnings.
"""

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_DEFINITION = "InvalidDefinition"
    UNKNOWN_ENTITY = "UnknownEntity"
    PARTIAL_CATALOG = "PartialCatalog"  # warning only, never raised
    NO_VALID_COLUMNS = "NoValidColumns"
    DATA_SOURCE_ERROR = "DataSourceError"
    MISSING_NAME = "MissingName"
    REPORT_NOT_FOUND = "ReportNotFound"


class ReportError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class InvalidDefinitionError(ReportError):
    """The definition can't run as-is - missing entity, no columns, bad shape."""

    kind = ErrorKind.INVALID_DEFINITION


class UnknownEntityError(ReportError):
    kind = ErrorKind.UNKNOWN_ENTITY

    def __init__(self, entity: str) -> None:
        super().__init__(f"Unknown entity '{entity}'")
        self.entity = entity


class NoValidColumnsError(ReportError):
    """None of the requested columns exist in the entity's catalog."""

    kind = ErrorKind.NO_VALID_COLUMNS

    def __init__(self, entity: str, columns: list[str]) -> None:
        super().__init__(
            f"None of the requested columns exist for '{entity}': {', '.join(columns)}"
        )
        self.entity = entity
        self.columns = columns


class DataSourceError(ReportError):
    """The entity data store failed or timed out. No partial results."""

    kind = ErrorKind.DATA_SOURCE_ERROR


class MissingNameError(ReportError):
    kind = ErrorKind.MISSING_NAME

    def __init__(self) -> None:
        super().__init__("A report needs a name before it can be saved")


class ReportNotFoundError(ReportError):
    kind = ErrorKind.REPORT_NOT_FOUND

    def __init__(self, report_id: str) -> None:
        super().__init__(f"No saved report with id '{report_id}'")
        self.report_id = report_id

"""Collaborator interfaces the engine is constructed with.

each method may return its value directly or an awaitable - the engine
awaits whatever it gets back, so a sync duckdb adapter and an async http
client both plug in without wrappers.
"""

import inspect
from collections.abc import Awaitable, Collection
from typing import Any, Protocol, runtime_checkable

from reportforge.models.field import FieldDefinition
from reportforge.models.report import FilterOperator, PushdownClause, ReportDefinition, SavedReport

Row = dict[str, Any]


@runtime_checkable
class EntityDataStore(Protocol):
    """Queryable tabular store keyed by entity name.

    `supported_operators` lists the filter operators the store can evaluate
    itself. stores that don't declare it are assumed to handle all of them.
    """

    supported_operators: Collection[FilterOperator]

    def fetch(
        self, entity: str, columns: list[str], pushdown: list[PushdownClause]
    ) -> list[Row] | Awaitable[list[Row]]: ...


@runtime_checkable
class CustomFieldRegistry(Protocol):
    def list_fields(self, entity: str) -> list[FieldDefinition] | Awaitable[list[FieldDefinition]]: ...


@runtime_checkable
class ReportPersistenceStore(Protocol):
    def insert(
        self, definition: ReportDefinition, report_id: str | None = None
    ) -> SavedReport | Awaitable[SavedReport]: ...

    def select_all(self) -> list[SavedReport] | Awaitable[list[SavedReport]]: ...

    def select_one(self, report_id: str) -> SavedReport | None | Awaitable[SavedReport | None]: ...

    def delete(self, report_id: str) -> bool | Awaitable[bool]: ...


async def maybe_await(value: Any) -> Any:
    """Await value if it's awaitable, otherwise hand it back as-is."""
    if inspect.isawaitable(value):
        return await value
    return value

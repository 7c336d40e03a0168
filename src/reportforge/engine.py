"""Main ReportEngine interface for ReportForge.

the engine is the only piece that does i/o. catalog resolution, filter
planning and aggregation are pure, the engine just strings them together:

  validate -> resolve catalog -> build filters -> fetch rows -> aggregate | finalize

there's no state shared between executions, so concurrent execute() calls
don't interfere. if a newer run supersedes an older one the caller just
ignores the stale result.
"""

import asyncio
import inspect
import logging
import time
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from reportforge.aggregation import aggregate, output_columns
from reportforge.catalog import FieldCatalogResolver
from reportforge.config import EngineConfig
from reportforge.definitions import ReportDefinitionStore
from reportforge.errors import (
    DataSourceError,
    ErrorKind,
    InvalidDefinitionError,
    NoValidColumnsError,
    ReportError,
)
from reportforge.executor.duckdb_executor import DuckDBEntityStore
from reportforge.executor.repository import DuckDBCustomFieldRegistry, DuckDBReportRepository
from reportforge.export import ExportFile, build_export, to_delimited_text
from reportforge.filters import FilterEvaluator
from reportforge.models.field import FieldCatalog, ReportWarning
from reportforge.models.report import (
    Aggregation,
    AggregationFunction,
    FilterPlan,
    ReportDefinition,
    SavedReport,
)
from reportforge.models.result import ReportResult
from reportforge.parser.loader import EntityRegistry
from reportforge.protocols import CustomFieldRegistry, EntityDataStore, ReportPersistenceStore

logger = logging.getLogger(__name__)


def _unique(items: list[str]) -> list[str]:
    # dict.fromkeys keeps first-seen order
    return list(dict.fromkeys(items))


class ReportEngine:
    """Runs report definitions against an entity data store.

    constructed explicitly with its collaborators - no module level
    singletons, so tests can hand in fakes and two engines never share state.
    """

    def __init__(
        self,
        data_store: EntityDataStore,
        field_registry: CustomFieldRegistry | None = None,
        persistence: ReportPersistenceStore | None = None,
        entities: EntityRegistry | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            data_store: Where rows come from. The only i/o boundary of execute().
            field_registry: Source of custom fields, None for built-ins only.
            persistence: Where saved reports live, None disables saving.
            entities: Supported entities, defaults to the config's catalog
                file or the built-in crm entities.
            config: Engine settings.
        """
        self.config = config or EngineConfig()
        if entities is None:
            entities = (
                EntityRegistry.from_file(self.config.entity_catalog)
                if self.config.entity_catalog
                else EntityRegistry.default()
            )
        self.entities = entities
        self.data_store = data_store
        self.resolver = FieldCatalogResolver(entities, field_registry)
        # stores that don't say what they support are trusted with everything
        self.filters = FilterEvaluator(getattr(data_store, "supported_operators", None))
        self.definitions = ReportDefinitionStore(persistence) if persistence is not None else None

    @classmethod
    def from_duckdb(
        cls,
        database_path: str | Path | None = None,
        config: EngineConfig | None = None,
        entities: EntityRegistry | None = None,
    ) -> "ReportEngine":
        """Engine with all three collaborators backed by one duckdb database."""
        config = config or EngineConfig()
        if entities is None and config.entity_catalog:
            entities = EntityRegistry.from_file(config.entity_catalog)
        entities = entities or EntityRegistry.default()

        store = DuckDBEntityStore(
            str(database_path) if database_path else None,
            tables=entities.table_map(),
        )
        return cls(
            data_store=store,
            field_registry=DuckDBCustomFieldRegistry(store.conn),
            persistence=DuckDBReportRepository(store.conn),
            entities=entities,
            config=config,
        )

    # --- catalog ---

    async def resolve_fields(self, entity: str) -> FieldCatalog:
        """Selectable fields for an entity, built-ins first."""
        return await self.resolver.resolve_async(entity)

    # --- execution ---

    async def execute(self, definition: ReportDefinition | dict[str, Any]) -> ReportResult:
        """Execute a report definition.

        raises InvalidDefinitionError / UnknownEntityError / NoValidColumnsError
        before any fetch, DataSourceError if the fetch itself fails. unknown
        filter fields and columns are dropped and reported on the result
        instead of failing the report.
        """
        start = time.perf_counter()

        # validate - nothing here touches the store
        definition = self._validate(definition)

        # resolve catalog
        catalog = await self.resolver.resolve_async(definition.entity)
        warnings: list[ReportWarning] = list(catalog.warnings)
        columns, dropped = self._resolve_columns(definition, catalog)

        aggregations: list[Aggregation] = []
        if definition.is_grouped:
            aggregations = self._resolve_grouping(definition, catalog, warnings)

        # build filters
        plan = self.filters.build_pushdown(definition.filters, catalog)

        # fetch - the validated columns plus whatever grouping and local
        # filters need to see
        fetch_columns = list(columns)
        if definition.group_by:
            fetch_columns.append(definition.group_by)
        fetch_columns.extend(
            agg.field for agg in aggregations if agg.function != AggregationFunction.COUNT
        )
        fetch_columns.extend(f.field for f in plan.local)
        rows = await self._fetch(definition.entity, _unique(fetch_columns), plan)

        rows = self.filters.apply_local(plan.local, rows)

        if definition.group_by:
            out_columns = output_columns(definition.group_by, aggregations)
            out_rows = aggregate(
                rows,
                definition.group_by,
                aggregations,
                unknown_label=self.config.unknown_group_label,
            )
        else:
            # finalize - project onto the validated columns, keep store order
            out_columns = columns
            out_rows = [{col: row.get(col) for col in columns} for row in rows]

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Report on %s returned %d rows in %.1fms", definition.entity, len(out_rows), elapsed_ms
        )

        return ReportResult(
            columns=out_columns,
            rows=out_rows,
            row_count=len(out_rows),
            grouped=definition.is_grouped,
            rejected_filters=plan.rejected,
            dropped_columns=dropped,
            warnings=warnings,
            execution_time_ms=round(elapsed_ms, 2),
        )

    def run(self, definition: ReportDefinition | dict[str, Any]) -> ReportResult:
        """Blocking wrapper around execute() for scripts and the cli."""
        return asyncio.run(self.execute(definition))

    async def execute_saved(self, report_id: str) -> ReportResult:
        """Load a saved report and run it against live data."""
        return await self.execute(await self.load(report_id))

    def _validate(self, definition: ReportDefinition | dict[str, Any]) -> ReportDefinition:
        if not isinstance(definition, ReportDefinition):
            try:
                definition = ReportDefinition.model_validate(definition)
            except ValidationError as e:
                raise InvalidDefinitionError(f"Malformed report definition: {e}") from e

        if not definition.entity.strip():
            raise InvalidDefinitionError("Select an entity")
        if not definition.columns:
            raise InvalidDefinitionError("Select at least one column")
        return definition

    def _resolve_columns(
        self, definition: ReportDefinition, catalog: FieldCatalog
    ) -> tuple[list[str], list[str]]:
        """Split requested columns into (valid, dropped).

        unknown columns are dropped rather than failing - saved reports go
        stale when custom fields are deleted. only an empty result is fatal.
        """
        requested = _unique(definition.columns)
        valid = [col for col in requested if col in catalog]
        dropped = [col for col in requested if col not in catalog]

        if dropped:
            logger.warning("Dropping unknown columns on %s: %s", definition.entity, dropped)
        if not valid:
            raise NoValidColumnsError(definition.entity, requested)
        return valid, dropped

    def _resolve_grouping(
        self, definition: ReportDefinition, catalog: FieldCatalog, warnings: list[ReportWarning]
    ) -> list[Aggregation]:
        """Check the group-by field and keep the aggregations we can compute.

        count doesn't look at its field so it's always kept. the others need
        a real field to read, unknown ones are dropped with a warning.
        """
        if definition.group_by not in catalog:
            raise InvalidDefinitionError(
                f"Cannot group by unknown field '{definition.group_by}'"
            )

        kept = []
        for agg in definition.aggregations:
            if agg.function == AggregationFunction.COUNT or agg.field in catalog:
                kept.append(agg)
                continue
            logger.warning("Dropping %s on unknown field %s", agg.function.value, agg.field)
            warnings.append(
                ReportWarning(
                    kind=ErrorKind.INVALID_DEFINITION.value,
                    message=f"Ignored {agg.function.value} on unknown field '{agg.field}'",
                )
            )
        return kept

    async def _fetch(self, entity: str, columns: list[str], plan: FilterPlan) -> list[dict[str, Any]]:
        """The single read from the data store. Any failure aborts the run."""
        logger.debug(
            "Fetching %s columns=%s pushdown=%d local=%d",
            entity,
            columns,
            len(plan.pushdown),
            len(plan.local),
        )
        try:
            result = self.data_store.fetch(entity, columns, plan.pushdown)
            if inspect.isawaitable(result):
                if self.config.fetch_timeout:
                    result = await asyncio.wait_for(result, self.config.fetch_timeout)
                else:
                    result = await result
            return [dict(row) for row in result]
        except ReportError:
            raise
        except TimeoutError as e:
            raise DataSourceError(
                f"Fetching {entity} timed out after {self.config.fetch_timeout}s"
            ) from e
        except Exception as e:
            raise DataSourceError(f"Fetching {entity} failed: {e}") from e

    # --- saved reports ---

    def _require_definitions(self) -> ReportDefinitionStore:
        if self.definitions is None:
            raise RuntimeError("This engine was built without a report persistence store")
        return self.definitions

    async def save(
        self, definition: ReportDefinition, report_id: str | None = None
    ) -> SavedReport:
        return await self._require_definitions().save(definition, report_id)

    async def list_reports(self) -> list[SavedReport]:
        return await self._require_definitions().list_reports()

    async def load(self, report_id: str) -> ReportDefinition:
        return await self._require_definitions().load(report_id)

    async def delete(self, report_id: str) -> None:
        await self._require_definitions().delete(report_id)

    # --- export ---

    def to_text(self, result: ReportResult) -> str:
        return to_delimited_text(result.rows, result.columns, self.config.delimiter)

    def export(self, result: ReportResult, filename: str) -> ExportFile:
        return build_export(result.rows, result.columns, filename, self.config.delimiter)

    def close(self) -> None:
        """Close the data store if it holds resources."""
        close = getattr(self.data_store, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "ReportEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

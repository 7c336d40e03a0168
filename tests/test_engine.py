"""Tests for the ReportEngine end to end."""

import asyncio

import pytest

from reportforge.config import EngineConfig
from reportforge.engine import ReportEngine
from reportforge.errors import (
    DataSourceError,
    ErrorKind,
    InvalidDefinitionError,
    NoValidColumnsError,
    ReportNotFoundError,
    UnknownEntityError,
)
from reportforge.models.report import FilterOperator, ReportDefinition
from tests.fakes import AsyncFakeEntityStore, FakeEntityStore, FakeFieldRegistry


def definition(**kwargs) -> ReportDefinition:
    kwargs.setdefault("entity", "companies")
    kwargs.setdefault("columns", ["name", "industry"])
    return ReportDefinition(**kwargs)


class TestExecute:
    @pytest.mark.asyncio
    async def test_simple_report(self, engine, fake_store):
        result = await engine.execute(
            definition(filters=[{"field": "industry", "operator": "equals", "value": "Tech"}])
        )

        assert result.columns == ["name", "industry"]
        assert [r["name"] for r in result.rows] == ["Acme", "Initech", "Hooli"]
        assert result.row_count == 3
        assert not result.grouped
        assert result.execution_time_ms >= 0

        # one fetch, filter pushed down
        assert len(fake_store.calls) == 1
        entity, _, pushdown = fake_store.calls[0]
        assert entity == "companies"
        assert [(c.field, c.operator, c.value) for c in pushdown] == [
            ("industry", FilterOperator.EQUALS, "Tech")
        ]

    @pytest.mark.asyncio
    async def test_rows_projected_onto_columns(self, engine):
        result = await engine.execute(definition(columns=["name"]))
        assert all(list(row) == ["name"] for row in result.rows)
        assert len(result.rows) == 6

    @pytest.mark.asyncio
    async def test_accepts_plain_dict(self, engine):
        result = await engine.execute({"entity": "companies", "columns": ["name"]})
        assert result.row_count == 6

    @pytest.mark.asyncio
    async def test_duplicate_columns_collapse(self, engine):
        result = await engine.execute(definition(columns=["name", "name", "size"]))
        assert result.columns == ["name", "size"]

    @pytest.mark.asyncio
    async def test_unknown_columns_dropped(self, engine):
        result = await engine.execute(definition(columns=["name", "ghost"]))
        assert result.columns == ["name"]
        assert result.dropped_columns == ["ghost"]

    @pytest.mark.asyncio
    async def test_no_valid_columns(self, engine, fake_store):
        with pytest.raises(NoValidColumnsError):
            await engine.execute(definition(columns=["ghost", "phantom"]))
        assert fake_store.calls == []

    @pytest.mark.asyncio
    async def test_custom_field_columns(self, engine):
        result = await engine.execute(definition(columns=["name", "custom.tier"]))
        assert result.columns == ["name", "custom.tier"]
        assert result.dropped_columns == []

    @pytest.mark.asyncio
    async def test_rejected_filters_reported(self, engine):
        result = await engine.execute(definition(filters=[{"field": "ghost", "value": "x"}]))
        assert [f.field for f in result.rejected_filters] == ["ghost"]
        # rejected filters don't restrict anything
        assert result.row_count == 6

    @pytest.mark.asyncio
    async def test_inert_filters_ignored(self, engine, fake_store):
        result = await engine.execute(definition(filters=[{"field": "industry", "value": ""}]))
        assert result.row_count == 6
        assert result.rejected_filters == []
        assert fake_store.calls[0][2] == []


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "bad",
        [
            {"entity": "", "columns": ["name"]},
            {"entity": "   ", "columns": ["name"]},
            {"entity": "companies", "columns": []},
            {"entity": "companies", "columns": "name"},
            {"entity": "companies", "columns": ["name"], "filters": [{"field": "x", "operator": "like"}]},
        ],
    )
    async def test_invalid_definition_before_io(self, engine, fake_store, fake_registry, bad):
        with pytest.raises(InvalidDefinitionError):
            await engine.execute(bad)
        assert fake_store.calls == []
        assert fake_registry.calls == []

    @pytest.mark.asyncio
    async def test_unknown_entity(self, engine, fake_store):
        with pytest.raises(UnknownEntityError):
            await engine.execute(definition(entity="spaceships"))
        assert fake_store.calls == []

    @pytest.mark.asyncio
    async def test_unknown_group_by(self, engine, fake_store):
        with pytest.raises(InvalidDefinitionError, match="group by"):
            await engine.execute(definition(group_by="ghost"))
        assert fake_store.calls == []

    def test_error_kind_in_message(self):
        err = InvalidDefinitionError("Select an entity")
        assert err.kind == ErrorKind.INVALID_DEFINITION
        assert str(err) == "InvalidDefinition: Select an entity"


class TestGrouping:
    @pytest.mark.asyncio
    async def test_count_by_industry(self, engine):
        result = await engine.execute(
            definition(group_by="industry", aggregations=[{"function": "count", "field": "id"}])
        )

        assert result.grouped
        assert result.columns == ["industry", "count_id"]
        assert result.rows == [
            {"industry": "Tech", "count_id": 3},
            {"industry": "Finance", "count_id": 1},
            {"industry": "Pharma", "count_id": 1},
            {"industry": "Unknown", "count_id": 1},
        ]

    @pytest.mark.asyncio
    async def test_grouping_fetches_what_it_needs(self, engine, fake_store):
        await engine.execute(
            definition(
                columns=["name"],
                group_by="industry",
                aggregations=[
                    {"function": "sum", "field": "size"},
                    {"function": "count", "field": "id"},
                ],
            )
        )
        _, columns, _ = fake_store.calls[0]
        assert columns == ["name", "industry", "size"]

    @pytest.mark.asyncio
    async def test_sum_skips_junk(self, engine):
        result = await engine.execute(
            definition(
                group_by="industry",
                aggregations=[{"function": "sum", "field": "size"}],
                filters=[{"field": "industry", "operator": "equals", "value": "Pharma"}],
            )
        )
        # "n/a" isn't a number
        assert result.rows == [{"industry": "Pharma", "sum_size": 0}]

    @pytest.mark.asyncio
    async def test_unknown_label_from_config(self, fake_store):
        engine = ReportEngine(fake_store, config=EngineConfig(unknown_group_label="(blank)"))
        result = await engine.execute(
            definition(group_by="industry", aggregations=[{"function": "count", "field": "id"}])
        )
        assert result.rows[-1]["industry"] == "(blank)"

    @pytest.mark.asyncio
    async def test_aggregation_on_unknown_field_dropped(self, engine):
        result = await engine.execute(
            definition(
                group_by="industry",
                aggregations=[
                    {"function": "avg", "field": "ghost"},
                    {"function": "count", "field": "ghost"},
                ],
            )
        )
        assert result.columns == ["industry", "count_ghost"]
        assert any("ghost" in w.message for w in result.warnings)

    @pytest.mark.asyncio
    async def test_group_without_aggregations(self, engine):
        result = await engine.execute(definition(group_by="industry"))
        assert result.columns == ["industry"]
        assert [r["industry"] for r in result.rows] == ["Tech", "Finance", "Pharma", "Unknown"]

    @pytest.mark.asyncio
    async def test_empty_fetch(self, engine):
        result = await engine.execute(
            definition(
                group_by="industry",
                aggregations=[{"function": "count", "field": "id"}],
                filters=[{"field": "industry", "value": "Mining"}],
            )
        )
        assert result.rows == []
        assert result.columns == ["industry", "count_id"]


class TestLocalFilters:
    @pytest.mark.asyncio
    async def test_unsupported_operators_run_locally(self, companies_rows):
        store = FakeEntityStore(
            {"companies": companies_rows}, supported_operators={FilterOperator.EQUALS}
        )
        engine = ReportEngine(store)

        result = await engine.execute(
            definition(
                columns=["industry"],
                filters=[
                    {"field": "industry", "value": "Tech"},
                    {"field": "name", "operator": "contains", "value": "OO"},
                ],
            )
        )

        # local filter field fetched but not returned
        _, columns, pushdown = store.calls[0]
        assert columns == ["industry", "name"]
        assert [c.field for c in pushdown] == ["industry"]
        assert result.rows == [{"industry": "Tech"}]

    @pytest.mark.asyncio
    async def test_same_answer_either_path(self, companies_rows):
        filters = [
            {"field": "size", "operator": "greater_than", "value": "50"},
            {"field": "name", "operator": "contains", "value": "e"},
        ]
        pushed = ReportEngine(FakeEntityStore({"companies": companies_rows}))
        local = ReportEngine(FakeEntityStore({"companies": companies_rows}, supported_operators=()))

        a = await pushed.execute(definition(columns=["name"], filters=filters))
        b = await local.execute(definition(columns=["name"], filters=filters))
        assert a.rows == b.rows


class TestFailures:
    @pytest.mark.asyncio
    async def test_store_failure(self, companies_rows):
        store = FakeEntityStore({"companies": companies_rows}, error=ConnectionError("db down"))
        with pytest.raises(DataSourceError) as exc_info:
            await ReportEngine(store).execute(definition())
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert "db down" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_fetch_timeout(self, companies_rows):
        store = AsyncFakeEntityStore({"companies": companies_rows}, delay=1.0)
        engine = ReportEngine(store, config=EngineConfig(fetch_timeout=0.05))
        with pytest.raises(DataSourceError, match="timed out"):
            await engine.execute(definition())

    @pytest.mark.asyncio
    async def test_partial_catalog(self, fake_store):
        engine = ReportEngine(fake_store, FakeFieldRegistry(error=RuntimeError("registry down")))
        result = await engine.execute(definition(columns=["name", "custom.tier"]))

        assert result.columns == ["name"]
        assert result.dropped_columns == ["custom.tier"]
        assert result.warnings[0].kind == ErrorKind.PARTIAL_CATALOG.value


class TestAsync:
    @pytest.mark.asyncio
    async def test_async_store(self, companies_rows):
        engine = ReportEngine(AsyncFakeEntityStore({"companies": companies_rows}))
        result = await engine.execute(definition(filters=[{"field": "industry", "value": "Tech"}]))
        assert result.row_count == 3

    @pytest.mark.asyncio
    async def test_concurrent_executions_are_independent(self, companies_rows):
        engine = ReportEngine(AsyncFakeEntityStore({"companies": companies_rows}, delay=0.01))
        tech, finance = await asyncio.gather(
            engine.execute(definition(filters=[{"field": "industry", "value": "Tech"}])),
            engine.execute(definition(filters=[{"field": "industry", "value": "Finance"}])),
        )
        assert tech.row_count == 3
        assert [r["name"] for r in finance.rows] == ["Globex"]

    def test_run_blocks(self, engine):
        result = engine.run(definition(columns=["name"]))
        assert result.row_count == 6


class TestSavedReports:
    @pytest.mark.asyncio
    async def test_save_then_execute_saved(self, engine):
        saved = await engine.save(
            definition(name="Tech", filters=[{"field": "industry", "value": "Tech"}])
        )
        result = await engine.execute_saved(saved.id)
        assert result.row_count == 3

    @pytest.mark.asyncio
    async def test_list_and_delete(self, engine):
        saved = await engine.save(definition(name="All"))
        assert [r.id for r in await engine.list_reports()] == [saved.id]

        await engine.delete(saved.id)
        with pytest.raises(ReportNotFoundError):
            await engine.load(saved.id)

    @pytest.mark.asyncio
    async def test_without_persistence(self, fake_store):
        with pytest.raises(RuntimeError):
            await ReportEngine(fake_store).list_reports()


class TestExport:
    @pytest.mark.asyncio
    async def test_to_text(self, engine):
        result = await engine.execute(
            definition(group_by="industry", aggregations=[{"function": "count", "field": "id"}])
        )
        assert engine.to_text(result).splitlines()[:2] == ["industry,count_id", '"Tech",3']

    @pytest.mark.asyncio
    async def test_export_uses_configured_delimiter(self, fake_store):
        engine = ReportEngine(fake_store, config=EngineConfig(delimiter=";"))
        result = await engine.execute(definition(columns=["name", "size"]))
        export = engine.export(result, "companies")
        assert export.filename == "companies.csv"
        assert export.content.startswith('name;size\n"Acme";"120"\n')


class TestDuckDBEngine:
    @pytest.mark.asyncio
    async def test_custom_field_filter(self, duckdb_engine):
        result = await duckdb_engine.execute(
            definition(
                columns=["name", "custom.tier"],
                filters=[{"field": "custom.tier", "value": "gold"}],
            )
        )
        assert sorted(r["name"] for r in result.rows) == ["Acme", "Initech"]
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_group_by_custom_field(self, duckdb_engine):
        result = await duckdb_engine.execute(
            definition(
                columns=["name"],
                group_by="custom.tier",
                aggregations=[
                    {"function": "sum", "field": "custom.revenue"},
                    {"function": "count", "field": "id"},
                ],
            )
        )
        by_tier = {r["custom.tier"]: r for r in result.rows}
        assert by_tier["gold"] == {"custom.tier": "gold", "sum_custom.revenue": 1000, "count_id": 2}
        assert by_tier["silver"]["sum_custom.revenue"] == 250
        # Umbrella never set a tier, and its revenue is junk
        assert by_tier["Unknown"]["sum_custom.revenue"] == 0

    @pytest.mark.asyncio
    async def test_missing_table_is_data_source_error(self, duckdb_engine):
        with pytest.raises(DataSourceError):
            await duckdb_engine.execute(definition(entity="people", columns=["name"]))

    @pytest.mark.asyncio
    async def test_saved_report_round_trip(self, duckdb_engine):
        saved = await duckdb_engine.save(
            definition(name="Tech", filters=[{"field": "industry", "value": "Tech"}])
        )
        result = await duckdb_engine.execute_saved(saved.id)
        assert result.row_count == 3

    @pytest.mark.asyncio
    async def test_custom_field_registry_used(self, duckdb_engine):
        catalog = await duckdb_engine.resolve_fields("people")
        assert "custom.linkedin" in catalog

    @pytest.mark.asyncio
    async def test_equals_on_double_column(self, duckdb_engine):
        duckdb_engine.data_store.create_table_from_data(
            "talents", ["name", "experience"], [("Ann", 5.0), ("Bob", 7.5)]
        )
        report = definition(
            entity="talents",
            columns=["name"],
            filters=[{"field": "experience", "operator": "equals", "value": "5"}],
        )
        pushed = await duckdb_engine.execute(report)

        rows = duckdb_engine.data_store.fetch("talents", ["name", "experience"], [])
        local = await ReportEngine(
            FakeEntityStore({"talents": rows}, supported_operators=())
        ).execute(report)

        assert pushed.rows == [{"name": "Ann"}]
        assert local.rows == pushed.rows

    @pytest.mark.asyncio
    async def test_dotted_custom_field_key(self, duckdb_engine):
        conn = duckdb_engine.data_store.conn
        conn.execute(
            "INSERT INTO custom_fields VALUES ('companies', 'annual.bonus', 'Annual Bonus', 'number', 3)"
        )
        conn.execute("""UPDATE companies SET custom_fields = '{"annual.bonus": "7"}' WHERE name = 'Hooli'""")

        result = await duckdb_engine.execute(
            definition(
                columns=["name", "custom.annual.bonus"],
                filters=[{"field": "custom.annual.bonus", "value": "7"}],
            )
        )
        assert result.rows == [{"name": "Hooli", "custom.annual.bonus": "7"}]
        assert result.dropped_columns == []

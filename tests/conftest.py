"""Pytest fixtures for ReportForge tests."""

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from reportforge.engine import ReportEngine
from reportforge.executor.duckdb_executor import DuckDBEntityStore
from reportforge.models.field import FieldDefinition, FieldKind, FieldType
from reportforge.parser.loader import EntityRegistry
from tests.fakes import FakeEntityStore, FakeFieldRegistry, FakePersistence


@pytest.fixture
def companies_rows() -> list[dict[str, Any]]:
    """Sample company records, in store order."""
    return [
        {"id": 1, "name": "Acme", "industry": "Tech", "size": "120", "website": "acme.io"},
        {"id": 2, "name": "Globex", "industry": "Finance", "size": "80", "website": None},
        {"id": 3, "name": "Initech", "industry": "Tech", "size": "35", "website": "initech.com"},
        {"id": 4, "name": "Umbrella", "industry": "Pharma", "size": "n/a", "website": None},
        {"id": 5, "name": "Hooli", "industry": "Tech", "size": "900", "website": "hooli.xyz"},
        {"id": 6, "name": "Vandelay", "industry": None, "size": "12", "website": None},
    ]


@pytest.fixture
def custom_fields() -> dict[str, list[FieldDefinition]]:
    return {
        "companies": [
            FieldDefinition(
                key="tier", label="Tier", kind=FieldKind.CUSTOM, data_type=FieldType.TEXT
            ),
            FieldDefinition(
                key="revenue", label="Revenue", kind=FieldKind.CUSTOM, data_type=FieldType.NUMBER
            ),
        ]
    }


@pytest.fixture
def entities() -> EntityRegistry:
    return EntityRegistry.default()


@pytest.fixture
def fake_store(companies_rows) -> FakeEntityStore:
    return FakeEntityStore({"companies": companies_rows})


@pytest.fixture
def fake_registry(custom_fields) -> FakeFieldRegistry:
    return FakeFieldRegistry(custom_fields)


@pytest.fixture
def fake_persistence() -> FakePersistence:
    return FakePersistence()


@pytest.fixture
def engine(fake_store, fake_registry, fake_persistence) -> ReportEngine:
    return ReportEngine(
        data_store=fake_store,
        field_registry=fake_registry,
        persistence=fake_persistence,
    )


def _seed_duckdb(store: DuckDBEntityStore) -> None:
    store.conn.execute("""
        CREATE TABLE companies (
            id INTEGER,
            name VARCHAR,
            website VARCHAR,
            industry VARCHAR,
            size VARCHAR,
            created_at DATE,
            updated_at DATE,
            custom_fields VARCHAR
        )
    """)
    store.conn.executemany(
        "INSERT INTO companies VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        [
            (1, "Acme", "acme.io", "Tech", "120", "2024-01-15", "2024-02-01",
             '{"tier": "gold", "revenue": "1000"}'),
            (2, "Globex", None, "Finance", "80", "2024-02-10", "2024-02-11",
             '{"tier": "silver", "revenue": "250"}'),
            (3, "Initech", "initech.com", "Tech", "35", "2024-03-05", "2024-03-06",
             '{"tier": "gold"}'),
            (4, "Umbrella", None, "Pharma", "n/a", "2024-03-20", "2024-03-21",
             '{"revenue": "oops"}'),
            (5, "Hooli", "hooli.xyz", "Tech", "900", "2024-04-01", "2024-04-02",
             '{"tier": "bronze", "revenue": "4000"}'),
        ],
    )
    store.conn.execute("""
        CREATE TABLE custom_fields (
            entity_type VARCHAR,
            field_key VARCHAR,
            name VARCHAR,
            field_type VARCHAR,
            sort_order INTEGER
        )
    """)
    store.conn.executemany(
        "INSERT INTO custom_fields VALUES (?, ?, ?, ?, ?)",
        [
            ("companies", "tier", "Tier", "text", 1),
            ("companies", "revenue", "Revenue", "number", 2),
            ("people", "linkedin", "LinkedIn", "text", 1),
        ],
    )


@pytest.fixture
def duckdb_store() -> Generator[DuckDBEntityStore, None, None]:
    store = DuckDBEntityStore()
    _seed_duckdb(store)
    yield store
    store.close()


@pytest.fixture
def duckdb_engine() -> Generator[ReportEngine, None, None]:
    """ReportEngine over an in-memory duckdb with companies and custom fields."""
    engine = ReportEngine.from_duckdb()
    _seed_duckdb(engine.data_store)
    yield engine
    engine.close()


@pytest.fixture
def db_file(tmp_path: Path) -> Path:
    """A duckdb file with seeded data, for the cli."""
    path = tmp_path / "reports.duckdb"
    store = DuckDBEntityStore(str(path))
    _seed_duckdb(store)
    store.close()
    return path


@pytest.fixture
def definition_file(tmp_path: Path) -> Path:
    path = tmp_path / "tech_companies.yaml"
    path.write_text(
        """
report:
  name: Tech companies
  entity: companies
  columns: [name, industry]
  filters:
    - field: industry
      operator: equals
      value: Tech
  visualization: table
"""
    )
    return path

"""Generate sample CRM data for ReportForge."""

import json
import random
from datetime import date, timedelta
from pathlib import Path

import duckdb

INDUSTRIES = ["Tech", "Tech", "Finance", "Healthcare", "Retail", "Manufacturing", ""]
SIZES = ["1-10", "11-50", "51-200", "201-500", "500+"]
TIERS = ["gold", "silver", "silver", "bronze", "bronze", "bronze"]
POSITIONS = ["Engineer", "Manager", "Director", "Recruiter", "Sales", "CTO"]
SKILLS = ["python", "sql", "go", "react", "kubernetes", "ml", "design"]
EDUCATION = ["BSc", "MSc", "PhD", "Bootcamp", None]

# custom fields per entity: (entity_type, field_key, name, field_type, sort_order)
CUSTOM_FIELDS = [
    ("companies", "tier", "Tier", "text", 1),
    ("companies", "annual_revenue", "Annual Revenue", "currency", 2),
    ("people", "linkedin", "LinkedIn", "text", 1),
    ("talents", "expected_salary", "Expected Salary", "number", 1),
    ("talents", "remote", "Remote", "checkbox", 2),
]


def generate_sample_data(db_path: str | Path | None = None) -> duckdb.DuckDBPyConnection:
    """Generate sample CRM data.

    Args:
        db_path: DuckDB file to write, or None for in-memory only.

    Returns:
        DuckDB connection with loaded data.
    """
    random.seed(42)  # Reproducible data

    conn = duckdb.connect(str(db_path) if db_path else ":memory:")

    conn.execute("""
        CREATE OR REPLACE TABLE companies (
            id INTEGER PRIMARY KEY,
            name VARCHAR,
            website VARCHAR,
            industry VARCHAR,
            size VARCHAR,
            created_at DATE,
            updated_at DATE,
            custom_fields VARCHAR
        )
    """)
    conn.executemany(
        "INSERT INTO companies VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        generate_companies(120),
    )

    conn.execute("""
        CREATE OR REPLACE TABLE people (
            id INTEGER PRIMARY KEY,
            name VARCHAR,
            email VARCHAR,
            phone VARCHAR,
            position VARCHAR,
            created_at DATE,
            updated_at DATE,
            custom_fields VARCHAR
        )
    """)
    conn.executemany(
        "INSERT INTO people VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        generate_people(400),
    )

    conn.execute("""
        CREATE OR REPLACE TABLE talents (
            id INTEGER PRIMARY KEY,
            name VARCHAR,
            skills VARCHAR,
            experience INTEGER,
            education VARCHAR,
            created_at DATE,
            updated_at DATE,
            custom_fields VARCHAR
        )
    """)
    conn.executemany(
        "INSERT INTO talents VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        generate_talents(250),
    )

    conn.execute("""
        CREATE OR REPLACE TABLE custom_fields (
            entity_type VARCHAR,
            field_key VARCHAR,
            name VARCHAR,
            field_type VARCHAR,
            sort_order INTEGER
        )
    """)
    conn.executemany("INSERT INTO custom_fields VALUES (?, ?, ?, ?, ?)", CUSTOM_FIELDS)

    if db_path:
        print(f"Database written to {db_path}")

    return conn


def _dates() -> tuple[date, date]:
    start_date = date(2023, 1, 1)
    created = start_date + timedelta(days=random.randint(0, 600))
    return created, created + timedelta(days=random.randint(0, 90))


def generate_companies(count: int) -> list[tuple]:
    """Generate company records."""
    companies = []
    for i in range(1, count + 1):
        created, updated = _dates()
        custom = {"tier": random.choice(TIERS)}
        # not every company has revenue filled in, some have junk
        if random.random() < 0.8:
            custom["annual_revenue"] = str(random.randint(50, 5000) * 1000)
        elif random.random() < 0.5:
            custom["annual_revenue"] = "unknown"

        companies.append(
            (
                i,
                f"Company {i}",
                f"company{i}.example.com" if random.random() < 0.7 else None,
                random.choice(INDUSTRIES) or None,
                random.choice(SIZES),
                created,
                updated,
                json.dumps(custom),
            )
        )

    return companies


def generate_people(count: int) -> list[tuple]:
    """Generate people records."""
    people = []
    for i in range(1, count + 1):
        created, updated = _dates()
        custom = {}
        if random.random() < 0.6:
            custom["linkedin"] = f"linkedin.com/in/person{i}"

        people.append(
            (
                i,
                f"Person {i}",
                f"person{i}@example.com",
                f"+1-555-{random.randint(1000, 9999)}" if random.random() < 0.5 else None,
                random.choice(POSITIONS),
                created,
                updated,
                json.dumps(custom),
            )
        )

    return people


def generate_talents(count: int) -> list[tuple]:
    """Generate talent records."""
    talents = []
    for i in range(1, count + 1):
        created, updated = _dates()
        custom = {
            "expected_salary": str(random.randint(40, 220) * 1000),
            "remote": random.choice(["true", "false"]),
        }

        talents.append(
            (
                i,
                f"Talent {i}",
                ", ".join(random.sample(SKILLS, k=random.randint(1, 3))),
                random.randint(0, 20),
                random.choice(EDUCATION),
                created,
                updated,
                json.dumps(custom),
            )
        )

    return talents


if __name__ == "__main__":
    import sys

    db_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(__file__).parent / "crm.duckdb"
    conn = generate_sample_data(db_path)

    # Print summary
    for table in ("companies", "people", "talents"):
        count = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        print(f"Generated {count} {table}")

    conn.close()

"""Basic usage example for ReportForge."""

import sys
from pathlib import Path

# Add parent to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent / "data"))

from generate_sample_data import generate_sample_data

from reportforge import ReportEngine


def main():
    """Demonstrate ReportForge capabilities."""
    db_path = Path(__file__).parent.parent / "data" / "crm.duckdb"
    if not db_path.exists():
        generate_sample_data(db_path).close()

    engine = ReportEngine.from_duckdb(db_path)

    print("=" * 60)
    print("ReportForge CRM Reporting Demo")
    print("=" * 60)

    # 1. Field catalog
    print("\n1. Fields available on companies:")
    catalog = engine.resolver.resolve("companies")
    for field in catalog:
        print(f"   {field.key:<22} {field.label} ({field.kind.value})")

    # 2. Simple filtered report
    print("\n2. Tech companies (first 5):")
    result = engine.run(
        {
            "entity": "companies",
            "columns": ["name", "industry", "custom.tier"],
            "filters": [{"field": "industry", "operator": "equals", "value": "Tech"}],
        }
    )
    for row in result.rows[:5]:
        print(f"   {row['name']}: {row['custom.tier']}")
    print(f"   ... {result.row_count} rows in {result.execution_time_ms}ms")

    # 3. Grouped report
    print("\n3. Companies and revenue by tier:")
    result = engine.run(
        {
            "entity": "companies",
            "columns": ["name"],
            "group_by": "custom.tier",
            "aggregations": [
                {"function": "count", "field": "id"},
                {"function": "sum", "field": "custom.annual_revenue"},
            ],
            "visualization": "bar",
        }
    )
    for row in result.rows:
        print(
            f"   {row['custom.tier']}: {row['count_id']} companies, "
            f"${row['sum_custom.annual_revenue']:,} revenue"
        )

    # 4. Numeric comparison on a custom field
    print("\n4. Senior talents expecting more than 150k:")
    result = engine.run(
        {
            "entity": "talents",
            "columns": ["name", "experience", "custom.expected_salary"],
            "filters": [
                {"field": "experience", "operator": "greater_than", "value": "10"},
                {"field": "custom.expected_salary", "operator": "greater_than", "value": "150000"},
            ],
        }
    )
    print(f"   {result.row_count} talents")

    # 5. Unknown fields are dropped, not fatal
    print("\n5. Report referencing a deleted field:")
    result = engine.run(
        {
            "entity": "people",
            "columns": ["name", "custom.twitter"],
            "filters": [{"field": "custom.twitter", "value": "@someone"}],
        }
    )
    print(f"   Dropped columns: {result.dropped_columns}")
    print(f"   Ignored filters: {[f.field for f in result.rejected_filters]}")

    # 6. Export
    print("\n6. CSV export of the tier breakdown:")
    result = engine.run(
        {
            "entity": "companies",
            "columns": ["name"],
            "group_by": "custom.tier",
            "aggregations": [{"function": "avg", "field": "custom.annual_revenue"}],
        }
    )
    print(engine.to_text(result))

    print("=" * 60)
    print("Demo complete!")
    print("=" * 60)

    engine.close()


if __name__ == "__main__":
    main()

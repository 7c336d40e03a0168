"""CLI for ReportForge."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from reportforge.config import EngineConfig
from reportforge.engine import ReportEngine
from reportforge.errors import ReportError
from reportforge.export import to_delimited_text
from reportforge.models.result import ReportResult
from reportforge.parser.loader import load_definition

app = typer.Typer(
    name="rf",
    help="ReportForge - dynamic report builder CLI",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

DbOption = Annotated[str | None, typer.Option("--db", help="DuckDB database path")]
ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Engine config YAML")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logs")] = False,
) -> None:
    """ReportForge - dynamic report builder CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _error(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]")


def get_engine(db_path: str | None, config_path: Path | None = None) -> ReportEngine:
    config = EngineConfig.from_yaml(config_path) if config_path else EngineConfig()
    return ReportEngine.from_duckdb(db_path, config=config)


def _open_engine(db_path: str | None, config_path: Path | None) -> ReportEngine:
    try:
        return get_engine(db_path, config_path)
    except Exception as e:
        _error(f"Error opening database: {e}")
        raise typer.Exit(1)


@app.command()
def fields(
    entity: Annotated[str, typer.Argument(help="Entity name, e.g. companies")],
    db_path: DbOption = None,
    config_path: ConfigOption = None,
) -> None:
    """List the selectable fields of an entity."""
    engine = _open_engine(db_path, config_path)
    try:
        catalog = asyncio.run(engine.resolve_fields(entity))
    except ReportError as e:
        _error(str(e))
        raise typer.Exit(1)
    finally:
        engine.close()

    table = Table(title=f"Fields of {entity}")
    table.add_column("Key", style="cyan")
    table.add_column("Label")
    table.add_column("Kind", style="green")
    table.add_column("Type", style="yellow")

    for field in catalog:
        table.add_row(field.key, field.label, field.kind.value, field.data_type.value)

    console.print(table)
    for warning in catalog.warnings:
        err_console.print(f"[yellow]{warning.kind}: {escape(warning.message)}[/yellow]")


@app.command()
def run(
    definition_file: Annotated[Path, typer.Argument(help="Report definition (YAML or JSON)")],
    db_path: DbOption = None,
    config_path: ConfigOption = None,
    output: Annotated[
        str, typer.Option("--output", "-o", help="Output format: table, json, csv")
    ] = "table",
    export_path: Annotated[
        Path | None, typer.Option("--export", "-e", help="Also write the result as CSV")
    ] = None,
) -> None:
    """Run a report definition file."""
    try:
        definition = load_definition(definition_file)
    except Exception as e:
        _error(f"Error loading report definition: {e}")
        raise typer.Exit(1)

    engine = _open_engine(db_path, config_path)
    try:
        result = asyncio.run(engine.execute(definition))
        _write_export(engine, result, export_path)
    except ReportError as e:
        _error(str(e))
        raise typer.Exit(1)
    finally:
        engine.close()

    _output_result(result, output, engine.config.delimiter)


@app.command("run-saved")
def run_saved(
    report_id: Annotated[str, typer.Argument(help="Saved report id")],
    db_path: DbOption = None,
    config_path: ConfigOption = None,
    output: Annotated[
        str, typer.Option("--output", "-o", help="Output format: table, json, csv")
    ] = "table",
    export_path: Annotated[
        Path | None, typer.Option("--export", "-e", help="Also write the result as CSV")
    ] = None,
) -> None:
    """Run a saved report against live data."""
    engine = _open_engine(db_path, config_path)
    try:
        result = asyncio.run(engine.execute_saved(report_id))
        _write_export(engine, result, export_path)
    except ReportError as e:
        _error(str(e))
        raise typer.Exit(1)
    finally:
        engine.close()

    _output_result(result, output, engine.config.delimiter)


@app.command()
def save(
    definition_file: Annotated[Path, typer.Argument(help="Report definition (YAML or JSON)")],
    db_path: DbOption = None,
    name: Annotated[str | None, typer.Option("--name", "-n", help="Report name")] = None,
    report_id: Annotated[
        str | None, typer.Option("--id", help="Overwrite the saved report with this id")
    ] = None,
) -> None:
    """Save a report definition for reuse."""
    try:
        definition = load_definition(definition_file)
    except Exception as e:
        _error(f"Error loading report definition: {e}")
        raise typer.Exit(1)

    if name:
        definition = definition.model_copy(update={"name": name})

    engine = _open_engine(db_path, None)
    try:
        saved = asyncio.run(engine.save(definition, report_id))
    except ReportError as e:
        _error(str(e))
        raise typer.Exit(1)
    finally:
        engine.close()

    console.print(f"[green]Saved '{saved.name}' as {saved.id}[/green]")


@app.command("list")
def list_reports(db_path: DbOption = None) -> None:
    """List saved reports, newest first."""
    engine = _open_engine(db_path, None)
    try:
        reports = asyncio.run(engine.list_reports())
    finally:
        engine.close()

    if not reports:
        console.print("[yellow]No saved reports[/yellow]")
        return

    table = Table(title="Saved Reports")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Entity", style="yellow")
    table.add_column("Visualization")
    table.add_column("Created")

    for report in reports:
        table.add_row(
            report.id,
            report.name,
            report.entity,
            report.visualization.value,
            report.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command()
def show(
    report_id: Annotated[str, typer.Argument(help="Saved report id")],
    db_path: DbOption = None,
) -> None:
    """Print a saved report's definition as JSON."""
    engine = _open_engine(db_path, None)
    try:
        definition = asyncio.run(engine.load(report_id))
    except ReportError as e:
        _error(str(e))
        raise typer.Exit(1)
    finally:
        engine.close()

    console.print(definition.model_dump_json(indent=2), markup=False, highlight=False)


@app.command()
def delete(
    report_id: Annotated[str, typer.Argument(help="Saved report id")],
    db_path: DbOption = None,
) -> None:
    """Delete a saved report."""
    engine = _open_engine(db_path, None)
    try:
        asyncio.run(engine.delete(report_id))
    except ReportError as e:
        _error(str(e))
        raise typer.Exit(1)
    finally:
        engine.close()

    console.print(f"[green]Deleted {report_id}[/green]")


def _write_export(engine: ReportEngine, result: ReportResult, path: Path | None) -> None:
    if path is None:
        return
    export = engine.export(result, path.name)
    target = path.with_name(export.filename)
    target.write_bytes(export.data)
    err_console.print(f"[green]Exported {result.row_count} rows to {target}[/green]")


def _output_result(result: ReportResult, output_format: str, delimiter: str = ",") -> None:
    """Output a report result in the specified format."""
    for warning in result.warnings:
        err_console.print(f"[yellow]{warning.kind}: {escape(warning.message)}[/yellow]")
    for flt in result.rejected_filters:
        err_console.print(f"[yellow]Ignored filter on unknown field '{flt.field}'[/yellow]")
    if result.dropped_columns:
        dropped = escape(", ".join(result.dropped_columns))
        err_console.print(f"[yellow]Dropped unknown columns: {dropped}[/yellow]")

    if output_format == "json":
        console.print(
            json.dumps(result.rows, indent=2, default=str),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
    elif output_format == "csv":
        # no markup, brackets and quotes in values have to survive
        console.print(
            to_delimited_text(result.rows, result.columns, delimiter),
            end="",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
    else:
        table = Table(
            title=f"Report Results ({result.row_count} rows, {result.execution_time_ms}ms)"
        )
        for col in result.columns:
            table.add_column(col)

        for row in result.rows:
            values = ["" if row.get(c) is None else str(row.get(c)) for c in result.columns]
            table.add_row(*values)

        console.print(table)


if __name__ == "__main__":
    app()

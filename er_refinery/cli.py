"""Command Line Interface for the ER-Refinery visit pipeline.

This module provides a CLI using Typer for running the standardization and
enrichment pipeline, profiling raw exports and reading the operational
summaries back from the analytics database.
"""

from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from er_refinery.adapters.ingesters import get_adapter
from er_refinery.domain.ports import IngestionError, StoragePort
from er_refinery.domain.services import RawDataProfiler
from er_refinery.infrastructure.config_manager import ConfigManager, DatabaseConfig
from er_refinery.infrastructure.logging_config import setup_logging
from er_refinery.infrastructure.quality_report import (
    generate_quality_report,
    print_quality_report_summary,
)
from er_refinery.infrastructure.settings import APP_VERSION, settings
from er_refinery.main import create_storage_adapter, process_source

# Initialize Typer app and Rich console
app = typer.Typer(
    name="er-refinery",
    help="ER-Refinery: Emergency department visit standardization and enrichment",
    add_completion=False
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    setup_logging(use_json=settings.log_json, log_level="DEBUG" if verbose else settings.log_level)
    if verbose:
        console.print("[dim]Verbose logging enabled[/dim]")


def _load_config_manager(config: Optional[Path]) -> ConfigManager:
    if config is None:
        return settings.config_manager
    try:
        return ConfigManager.from_file(str(config))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]✗[/red] Invalid configuration: {str(e)}")
        raise typer.Exit(code=1)


def _create_storage(config_manager: ConfigManager, db_path: Optional[Path]) -> StoragePort:
    """Create storage adapter, preferring an explicit --db-path."""
    try:
        db_config = (
            DatabaseConfig(db_path=str(db_path)) if db_path
            else config_manager.get_database_config()
        )
        return create_storage_adapter(db_config)
    except ValueError as e:
        console.print(f"[red]✗[/red] Failed to create storage adapter: {str(e)}")
        raise typer.Exit(code=1)


def _frame_table(title: str, df: pd.DataFrame) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    for column in df.columns:
        table.add_column(str(column))
    for row in df.itertuples(index=False):
        table.add_row(*["" if pd.isna(value) else str(value) for value in row])
    return table


def _counts_table(title: str, counts: dict, key_header: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column(key_header, style="cyan")
    table.add_column("Count", justify="right")
    for key, count in counts.items():
        table.add_row(str(key), f"{count:,}")
    return table


@app.command()
def run(
    input_file: Path = typer.Argument(..., help="Raw visit export (CSV, TSV or JSON)", exists=True),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Worker threads for standardization"),
    db_path: Optional[Path] = typer.Option(None, "--db-path", help="DuckDB database file (overrides configuration)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    no_quality_report: bool = typer.Option(False, "--no-quality-report", help="Skip quality report generation"),
) -> None:
    """Clean, enrich and persist a raw ED visit export.

    Examples:
        er-refinery run data/er_visits.csv
        er-refinery run data/er_visits.csv --db-path data/er.duckdb --workers 4
    """
    _configure_logging(verbose)
    config_manager = _load_config_manager(config)
    worker_count = workers or settings.workers

    try:
        pipeline_config = config_manager.get_pipeline_config()
    except ValueError as e:
        console.print(f"[red]✗[/red] Invalid pipeline configuration: {str(e)}")
        raise typer.Exit(code=1)

    storage = _create_storage(config_manager, db_path)

    console.print("\n[bold blue]ER-Refinery Visit Pipeline[/bold blue]")
    console.print(f"[dim]Input file:[/dim] {input_file}")
    console.print(f"[dim]Database path:[/dim] {getattr(storage, 'db_path', ':memory:')}")
    console.print(f"[dim]Workers:[/dim] {worker_count}")
    console.print()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console
        ) as progress:
            task = progress.add_task("Processing visits...", total=None)
            run_result, run_id = process_source(
                source=str(input_file),
                storage=storage,
                config=pipeline_config,
                workers=worker_count,
                chunk_size=settings.chunk_size,
            )
            progress.update(task, completed=True)
    except IngestionError as e:
        console.print(f"\n[red]✗[/red] Input rejected: {str(e)}")
        storage.close()
        raise typer.Exit(code=1)
    except RuntimeError as e:
        console.print(f"\n[red]✗[/red] Pipeline failed: {str(e)}")
        storage.close()
        raise typer.Exit(code=1)

    stats = run_result.stats
    console.print("\n[bold]Run Summary:[/bold]")
    summary_table = Table(show_header=False, box=None, padding=(0, 2))
    summary_table.add_row("Raw rows:", f"[bold]{stats.raw_rows:,}[/bold]")
    summary_table.add_row("Duplicates removed:", f"{stats.duplicates_removed:,}")
    summary_table.add_row("Visits persisted:", f"[green]{len(run_result.analytics):,}[/green]")
    summary_table.add_row(
        "Unparseable timestamps:",
        f"[yellow]{stats.total_unparseable:,}[/yellow]" if stats.total_unparseable else "0"
    )
    summary_table.add_row("Run ID:", run_id)
    console.print(summary_table)

    if not no_quality_report:
        console.print("\n[bold]Quality Report:[/bold]")
        output_path = None
        if settings.save_quality_report:
            output_path = str(Path(settings.quality_report_dir) / f"quality_report_{run_id}.json")

        report_result = generate_quality_report(stats, output_path=output_path, run_id=run_id)
        if report_result.is_success():
            print_quality_report_summary(report_result.value)
            if report_result.value.get("saved_to"):
                console.print(f"\n[green]✓[/green] Quality report saved: {report_result.value['saved_to']}")
        else:
            console.print(f"[yellow]⚠[/yellow] Failed to generate quality report: {report_result.error}")

    storage.close()
    console.print("\n[green]✓[/green] Pipeline completed successfully")


@app.command()
def profile(
    input_file: Path = typer.Argument(..., help="Raw visit export (CSV, TSV or JSON)", exists=True),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Assess a raw export before cleaning: gaps, timestamp layouts, complaint spellings."""
    _configure_logging(verbose)

    try:
        adapter = get_adapter(str(input_file), chunk_size=settings.chunk_size)
        frames = [result.value for result in adapter.ingest(str(input_file)) if result.is_success()]
    except IngestionError as e:
        console.print(f"[red]✗[/red] Cannot read {input_file}: {str(e)}")
        raise typer.Exit(code=1)

    raw_df = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()
    assessment = RawDataProfiler().profile(raw_df)

    console.print(f"\n[bold blue]Raw Data Assessment[/bold blue] ({assessment['total_rows']:,} rows)")
    console.print(f"Ghost duplicates: {assessment['ghost_duplicates']:,}\n")
    console.print(_counts_table("Data quality gaps", assessment["quality_gaps"], "Column"))
    console.print(_counts_table("Business signals (walkouts, unassigned staff)", assessment["signal_gaps"], "Column"))
    for field_name, patterns in assessment["timestamp_patterns"].items():
        console.print(_counts_table(f"{field_name} layouts", patterns, "Pattern"))
    console.print(_counts_table("Complaint variants", assessment["complaint_variants"], "Complaint"))


@app.command()
def report(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file"),
    db_path: Optional[Path] = typer.Option(None, "--db-path", help="DuckDB database file (overrides configuration)"),
    heatmap: bool = typer.Option(False, "--heatmap", help="Include the day x hour staffing heatmap"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Print the revenue, drop-off and triage safety summaries of persisted visits."""
    _configure_logging(verbose)
    config_manager = _load_config_manager(config)
    storage = _create_storage(config_manager, db_path)

    revenue_result = storage.summarize_revenue()
    if not revenue_result.is_success():
        console.print(f"[red]✗[/red] Failed to read analytics: {revenue_result.error}")
        storage.close()
        raise typer.Exit(code=1)

    revenue = revenue_result.value
    console.print("\n[bold blue]Revenue Leakage[/bold blue]")
    revenue_table = Table(show_header=False, box=None, padding=(0, 2))
    revenue_table.add_row("Total visits:", f"{revenue['total_visits']:,}")
    revenue_table.add_row("Walkouts before physician:", f"{revenue['lost_visits']:,}")
    revenue_table.add_row("Revenue lost:", f"[red]{revenue['total_revenue_lost']:,}[/red]")
    revenue_table.add_row("Crores lost:", f"{revenue['crores_lost']:.2f}")
    console.print(revenue_table)

    frames = [
        ("Visit Status Breakdown", storage.summarize_visit_status()),
        ("Triage Safety Audit", storage.summarize_severity()),
    ]
    if heatmap:
        frames.append(("Staffing Heatmap", storage.staffing_heatmap()))

    for title, result in frames:
        if result.is_success():
            console.print(_frame_table(title, result.value))
        else:
            console.print(f"[yellow]⚠[/yellow] {title} unavailable: {result.error}")

    storage.close()


@app.command()
def info() -> None:
    """Display configuration in effect."""
    console.print("[bold blue]System Information[/bold blue]\n")

    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_row("Application:", settings.app_name)
    info_table.add_row("Database Type:", settings.db_config.db_type)
    info_table.add_row("Database Path:", settings.get_db_path())
    info_table.add_row("Chunk Size:", str(settings.chunk_size))
    info_table.add_row("Workers:", str(settings.workers))

    pipeline_config = settings.pipeline_config
    info_table.add_row(
        "Timestamp Encodings:",
        ", ".join(encoding.name for encoding in pipeline_config.timestamp_encodings)
    )
    info_table.add_row("Valid Age Range:", f"{pipeline_config.age_min}-{pipeline_config.age_max}")
    info_table.add_row("Revenue Loss / Walkout:", f"{pipeline_config.revenue_loss_per_visit:,}")

    console.print(info_table)


@app.callback()
def main_callback(
    version: bool = typer.Option(False, "--version", help="Show version information")
) -> None:
    """ER-Refinery: Emergency department visit standardization and enrichment."""
    if version:
        console.print(f"ER-Refinery v{APP_VERSION}")
        raise typer.Exit()


if __name__ == "__main__":
    app()

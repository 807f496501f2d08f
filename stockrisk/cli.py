# -*- coding: utf-8 -*-
"""
stockrisk - command line interface for workbook ingestion and analytics

Commands:
    stockrisk process FILE --category inventory
    stockrisk validate FILE --category osr
    stockrisk schema --category inventory --output inventory.json
    stockrisk metrics --inventory stock.xlsx --osr osr.xlsx --json
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from stockrisk.analytics.models import BusinessMetrics
from stockrisk.config import get_config
from stockrisk.exceptions import StockRiskException
from stockrisk.ingestion.schema_registry import get_registry
from stockrisk.models import FileCategory, ProcessingResult
from stockrisk.service import StockRiskService

app = typer.Typer(
    name="stockrisk",
    help="StockRisk workbook ingestion and business metrics",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="Logging level (defaults to STOCKRISK_LOG_LEVEL)"
    ),
):
    """StockRisk workbook ingestion and business metrics."""
    level = (log_level or get_config().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_file(path: Path) -> bytes:
    if not path.exists() or not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)
    return path.read_bytes()


def _parse_category(value: str) -> FileCategory:
    try:
        return FileCategory(value.strip().lower())
    except ValueError:
        console.print(
            f"[red]Unknown category '{value}'. Use one of: "
            f"{', '.join(c.value for c in FileCategory)}[/red]"
        )
        raise typer.Exit(2)


async def _process(
    service: StockRiskService,
    path: Path,
    category: FileCategory,
    show_progress: bool,
) -> ProcessingResult:
    content = _read_file(path)
    if not show_progress:
        return await service.process_upload(content, path.name, category)

    with Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>5.1f}%"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"Processing {path.name}", total=100)

        def on_progress(event):
            progress.update(task, completed=event.progress, description=event.message)

        return await service.process_upload(
            content, path.name, category, on_progress=on_progress,
        )


def _print_failure(result: ProcessingResult) -> None:
    console.print(f"[red]✗ {result.error.kind.value} error: {result.error.message}[/red]")
    for warning in result.warnings:
        console.print(f"[yellow]  ⚠ {warning}[/yellow]")


def _print_result(result: ProcessingResult) -> None:
    data = result.data
    console.print(
        f"[green]✓[/green] Processed [bold]{data.file_name}[/bold] "
        f"({data.category.value}, {data.file_size:,} bytes)"
    )
    table = Table(title="Normalized sheets", box=box.ROUNDED)
    table.add_column("Sheet", style="cyan")
    table.add_column("Source")
    table.add_column("Rows", justify="right")
    table.add_column("Columns", justify="right")
    table.add_column("Warnings", justify="right")
    for sheet in data.sheets:
        table.add_row(
            sheet.name,
            sheet.source_name,
            str(sheet.row_count),
            str(sheet.column_count),
            str(len(sheet.warnings)),
        )
    console.print(table)

    stats = result.stats
    console.print(
        f"rows={stats.total_rows} sheets={stats.sheets_processed} "
        f"warnings={stats.warning_count} time={stats.processing_time_ms:.1f}ms"
    )
    for warning in result.warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")


def _print_metrics(metrics: BusinessMetrics) -> None:
    if metrics.inventory is not None:
        inv = metrics.inventory
        table = Table(title="Inventory", box=box.ROUNDED)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Top 20% share", f"{inv.portfolio_concentration.top_items_percentage:.2f}%")
        table.add_row("Diversification", f"{inv.portfolio_concentration.diversification_index:.2f}")
        table.add_row("Concentration risk", inv.portfolio_concentration.concentration_risk.value)
        table.add_row("Utilization", f"{inv.plant_efficiency.utilization_rate:.2f}%")
        table.add_row("Efficiency grade", inv.plant_efficiency.efficiency_grade.value)
        table.add_row("Regions", str(inv.geographic_distribution.region_count))
        table.add_row("Risk spread", inv.geographic_distribution.risk_spread.value)
        table.add_row("Overall health", f"{inv.overall_health:.2f}")
        console.print(table)

    if metrics.osr is not None:
        osr = metrics.osr
        table = Table(title="OSR", box=box.ROUNDED)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Health", f"{osr.health_percentage:.2f}%")
        table.add_row(
            "Issues (critical/major/minor)",
            f"{osr.severity_score.critical_issues}/{osr.severity_score.major_issues}/"
            f"{osr.severity_score.minor_issues}",
        )
        table.add_row("Overall severity", osr.severity_score.overall_severity.value)
        table.add_row("Quick wins", str(osr.recovery_potential.quick_wins))
        table.add_row("Recoverability", f"{osr.recovery_potential.recoverability_score:.2f}")
        table.add_row("Immediate risks", str(osr.risk_assessment.immediate_risks))
        table.add_row("Risk trend", osr.risk_assessment.risk_trend.value)
        console.print(table)

    combined = metrics.combined
    table = Table(title="Combined", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Portfolio health", f"{combined.overall_portfolio_health:.2f}")
    table.add_row("Risk exposure", f"{combined.risk_exposure:.2f}")
    table.add_row("Operational efficiency", f"{combined.operational_efficiency:.2f}")
    table.add_row("Strategic alignment", f"{combined.strategic_alignment:.2f}")
    console.print(table)

    console.print("[bold]Recommended actions[/bold]")
    for index, action in enumerate(combined.recommended_actions, 1):
        console.print(f"  {index}. {action}")


@app.command()
def process(
    file: Path = typer.Argument(..., help="Workbook to process (.xlsx or .xls)"),
    category: str = typer.Option(..., "--category", "-c", help="inventory or osr"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Validate and normalise a workbook."""
    file_category = _parse_category(category)
    service = StockRiskService()
    try:
        result = asyncio.run(_process(service, file, file_category, not as_json))
    except StockRiskException as exc:
        console.print(f"[red]✗ {exc.message}[/red]")
        raise typer.Exit(1)
    finally:
        service.processor.shutdown()

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
    elif result.success:
        _print_result(result)
    else:
        _print_failure(result)
    if not result.success:
        raise typer.Exit(1)


@app.command()
def validate(
    file: Path = typer.Argument(..., help="Workbook to check"),
    category: str = typer.Option(..., "--category", "-c", help="inventory or osr"),
):
    """Check file size and extension without processing."""
    file_category = _parse_category(category)
    if not file.exists() or not file.is_file():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)

    service = StockRiskService()
    try:
        error = service.validate(file.name, file.stat().st_size, file_category)
    finally:
        service.processor.shutdown()

    if error is not None:
        console.print(f"[red]✗ {error.kind.value} error: {error.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {file.name} is acceptable for {file_category.value}")
    console.print(
        "Expected sheets: " + ", ".join(service.expected_sheet_names(file_category))
    )


@app.command()
def schema(
    category: str = typer.Option(..., "--category", "-c", help="inventory or osr"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the schema JSON to this file"
    ),
):
    """Print or export the schema of a category."""
    file_category = _parse_category(category)
    text = get_registry().to_json(file_category)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]✓[/green] Schema for {file_category.value} written to {output}")


@app.command()
def metrics(
    inventory: Optional[Path] = typer.Option(
        None, "--inventory", "-i", help="Inventory workbook"
    ),
    osr: Optional[Path] = typer.Option(None, "--osr", "-r", help="OSR workbook"),
    as_json: bool = typer.Option(False, "--json", help="Print metrics as JSON"),
):
    """Compute business metrics from inventory and/or OSR workbooks."""
    service = StockRiskService()
    uploads = [
        (path, category)
        for path, category in ((inventory, FileCategory.INVENTORY), (osr, FileCategory.OSR))
        if path is not None
    ]

    async def _run() -> None:
        for path, category in uploads:
            result = await _process(service, path, category, show_progress=False)
            if not result.success:
                _print_failure(result)
                raise typer.Exit(1)

    try:
        asyncio.run(_run())
        computed = service.compute_metrics()
    finally:
        service.processor.shutdown()

    if as_json:
        typer.echo(json.dumps(computed.model_dump(mode="json"), indent=2))
    else:
        _print_metrics(computed)


if __name__ == "__main__":
    app()

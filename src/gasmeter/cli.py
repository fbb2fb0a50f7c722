"""Command-line interface for gas meter tracking and analysis."""

import json
import logging
import os
import time
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import db
from .analysis import summary
from .collectors import backup, open_meteo
from .models import MeterSnapshot, Reading
from .tariffs import load_tariff_from_db, load_tariff_from_yaml, save_tariff_to_db

console = Console()


@click.group()
@click.option("--db-path", type=click.Path(), help="Path to SQLite database")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, db_path, verbose):
    """Gas meter tracking - record readings and analyse costs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["db_path"] = Path(db_path) if db_path else None


def load_snapshot(db_path: Path | None) -> MeterSnapshot:
    """Read everything the analysis needs from the database."""
    return MeterSnapshot(
        readings=tuple(db.load_readings(db_path)),
        tariff=load_tariff_from_db(db_path),
        temperatures=db.load_temperature_store(db_path=db_path),
    )


# Database commands
@cli.group()
def database():
    """Database management commands."""
    pass


@database.command("init")
@click.pass_context
def db_init(ctx):
    """Initialize the database schema."""
    db.init_db(ctx.obj["db_path"])
    console.print("[green]Database initialized successfully[/green]")

    # Offer to load the tariff
    try:
        tariff = load_tariff_from_yaml()
    except FileNotFoundError:
        return
    save_tariff_to_db(tariff, ctx.obj["db_path"])
    console.print("[green]Loaded tariff from config[/green]")


@database.command("stats")
@click.pass_context
def db_stats(ctx):
    """Show database statistics."""
    stats = db.get_stats(ctx.obj["db_path"])

    table = Table(title="Database Statistics")
    table.add_column("Category", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Range")

    readings = stats["readings"]
    table.add_row(
        "Readings",
        str(readings["count"]),
        f"{readings['earliest'] or 'N/A'} → {readings['latest'] or 'N/A'}",
    )

    temps = stats["temperatures"]
    table.add_row(
        "Temperature days",
        str(temps["count"]),
        f"{temps['earliest'] or 'N/A'} → {temps['latest'] or 'N/A'}",
    )

    table.add_row("Tariff", "configured" if stats["tariff"]["configured"] else "defaults", "")

    console.print(table)


@database.command("export")
@click.argument("file_path", type=click.Path(dir_okay=False))
@click.pass_context
def db_export(ctx, file_path):
    """Export readings and settings to a JSON backup."""
    count = backup.export_to_file(Path(file_path), ctx.obj["db_path"])
    console.print(f"[green]Exported {count} readings to {file_path}[/green]")


@database.command("import")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def db_import(ctx, file_path):
    """Restore readings and settings from a JSON backup."""
    try:
        result = backup.import_from_file(Path(file_path), ctx.obj["db_path"])
    except backup.BackupError as e:
        console.print(f"[red]{e}[/red]")
        return

    console.print(f"[green]Imported {result['imported']} readings[/green]")
    if result["skipped"]:
        console.print(f"[yellow]Skipped {result['skipped']} duplicates[/yellow]")
    if result["temperatures"]:
        console.print(f"[green]Imported {result['temperatures']} temperature days[/green]")


@database.command("reset")
@click.confirmation_option(prompt="Delete all readings?")
@click.pass_context
def db_reset(ctx):
    """Delete all readings."""
    count = db.clear_readings(ctx.obj["db_path"])
    console.print(f"[yellow]Deleted {count} readings[/yellow]")


# Reading commands
@cli.group()
def reading():
    """Meter reading commands."""
    pass


@reading.command("add")
@click.argument("value", type=float)
@click.option("--date", "when", help="Reading time (YYYY-MM-DDTHH:MM), defaults to now")
@click.pass_context
def reading_add(ctx, value, when):
    """Record a meter reading in m³."""
    if value < 0:
        console.print("[red]Readings cannot be negative[/red]")
        return

    try:
        timestamp = datetime.fromisoformat(when) if when else datetime.now().replace(microsecond=0)
    except ValueError:
        console.print(f"[red]Invalid date: {when}[/red]")
        return

    new = Reading(id=str(time.time_ns() // 1_000_000), timestamp=timestamp, value=value)
    db.save_readings([new], ctx.obj["db_path"])
    console.print(f"[green]Recorded {value:.3f} m³ at {timestamp:%Y-%m-%d %H:%M} (id {new.id})[/green]")


@reading.command("delete")
@click.argument("reading_id")
@click.pass_context
def reading_delete(ctx, reading_id):
    """Delete a reading by id."""
    if db.delete_reading(reading_id, ctx.obj["db_path"]):
        console.print(f"[green]Deleted reading {reading_id}[/green]")
    else:
        console.print(f"[yellow]No reading with id {reading_id}[/yellow]")


@reading.command("list")
@click.pass_context
def reading_list(ctx):
    """List readings with usage and cost since the previous one."""
    snapshot = load_snapshot(ctx.obj["db_path"])
    if not snapshot.readings:
        console.print("[yellow]No readings found[/yellow]")
        return

    table = Table(title="Meter Readings")
    table.add_column("Id", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Reading", justify="right")
    table.add_column("Usage (m³)", justify="right")
    table.add_column("Cost", justify="right")

    for delta in summary.reading_deltas(list(snapshot.readings), snapshot.tariff):
        table.add_row(
            delta.reading.id,
            f"{delta.reading.timestamp:%Y-%m-%d %H:%M}",
            f"{delta.reading.value:.3f}",
            f"{delta.usage:.3f}" if delta.usage is not None else "-",
            f"€{delta.cost:.2f}" if delta.cost is not None else "-",
        )

    console.print(table)


# Tariff commands
@cli.group()
def tariff():
    """Tariff management commands."""
    pass


@tariff.command("load")
@click.option("--config", type=click.Path(exists=True), help="Path to tariff.yaml")
@click.pass_context
def tariff_load(ctx, config):
    """Load the tariff from YAML config."""
    config_path = Path(config) if config else None
    try:
        settings = load_tariff_from_yaml(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        return
    save_tariff_to_db(settings, ctx.obj["db_path"])
    console.print("[green]Tariff loaded[/green]")


@tariff.command("show")
@click.pass_context
def tariff_show(ctx):
    """Show the active tariff."""
    settings = load_tariff_from_db(ctx.obj["db_path"])

    table = Table(title="Tariff")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Price (€/kWh)", f"{settings.unit_price}")
    table.add_row("Fixed charge (€/day)", f"{settings.daily_fixed_charge}")
    table.add_row("Conversion (kWh/m³)", f"{settings.conversion_factor}")
    table.add_row("Consumption tax (€/kWh)", f"{settings.tax_rate}")
    table.add_row("VAT", f"{settings.vat_rate:.0%}")

    console.print(table)


# Weather commands
@cli.group()
def weather():
    """Outside temperature commands."""
    pass


@weather.command("fetch")
@click.option("--postcode", help="Postcode to geocode (or set GASMETER_POSTCODE)")
@click.option("--country", help="Postcode country code (default: es, or set GASMETER_COUNTRY)")
@click.option("--days", default=open_meteo.HISTORY_DAYS, help="Days of history to fetch (default: 60)")
@click.pass_context
def weather_fetch(ctx, postcode, country, days):
    """Fetch observed and forecast temperatures from Open-Meteo.

    Uses GASMETER_LATITUDE/GASMETER_LONGITUDE when set, otherwise geocodes
    the postcode.
    """
    try:
        location = open_meteo.get_location()
        if location is None:
            postcode = postcode or os.environ.get("GASMETER_POSTCODE")
            if not postcode:
                console.print("[red]Please provide --postcode or set GASMETER_POSTCODE[/red]")
                return
            location = open_meteo.geocode_postcode(postcode, country)

        latitude, longitude = location
        console.print(f"[cyan]Fetching weather for ({latitude}, {longitude})...[/cyan]")
        result = open_meteo.import_weather_data(latitude, longitude, days, ctx.obj["db_path"])
        console.print(
            f"[green]Cached {result['observed']} observed and {result['forecast']} forecast days[/green]"
        )

    except open_meteo.WeatherError as e:
        console.print(f"[red]Error fetching weather: {e}[/red]")


# Analysis commands
@cli.command()
@click.option("--from-id", help="First reading of the analysis window")
@click.option("--to-id", help="Last reading of the analysis window")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def report(ctx, from_id, to_id, as_json):
    """Analyse costs, projections and the temperature forecast."""
    if bool(from_id) != bool(to_id):
        console.print("[red]Please give both --from-id and --to-id[/red]")
        return

    snapshot = load_snapshot(ctx.obj["db_path"])
    try:
        analysis = summary.analyze(snapshot, (from_id, to_id) if from_id else None)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    if as_json:
        console.print(json.dumps(summary.analysis_to_dict(analysis), indent=2))
    else:
        console.print(summary.format_analysis_text(analysis))


@cli.command("forecast")
@click.pass_context
def forecast_cmd(ctx):
    """Show predicted daily usage for the forecast days."""
    analysis = summary.analyze(load_snapshot(ctx.obj["db_path"]))
    result = analysis.forecast

    if not result.available:
        console.print("[yellow]No forecast available (need a temperature model and forecast data)[/yellow]")
        return

    table = Table(title=f"Forecast ({result.confidence} confidence)")
    table.add_column("Date", style="cyan")
    table.add_column("Temp", justify="right")
    table.add_column("Usage (m³)", justify="right")

    for day in result.days:
        table.add_row(day.day.isoformat(), f"{day.temperature:.1f}°C", f"{day.predicted_usage:.3f}")

    console.print(table)
    console.print(
        f"Total: {result.total_predicted_usage:.3f} m³, €{result.projected_cost:.2f} "
        f"(avg {result.average_temperature:.1f}°C)"
    )


if __name__ == "__main__":
    cli()

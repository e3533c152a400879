"""Click CLI for single-day visitor analysis.

Provides three commands:
- ``dates``: List the dates available in a visitor export.
- ``analyze``: Compare one day against another date or its weekday average,
  with weather context.
- ``hourly``: Print the hourly breakdown of a day or its weekday average.
"""

import asyncio
import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import click
import pandas as pd

from visitor_analytics.analytics.benchmark import BenchmarkTransitionError
from visitor_analytics.session import DayAnalysisSession, DayAnalysisView
from visitor_analytics.utils.config import AppConfig, load_config
from visitor_analytics.utils.dates import (
    format_display_date,
    hour_sort_key,
    parse_date,
    weekday_name,
)
from visitor_analytics.utils.loader import DataLoadError, load_visitor_records
from visitor_analytics.utils.logger import configure_logging
from visitor_analytics.weather.open_meteo import OpenMeteoWeatherService

logger = logging.getLogger(__name__)


class DateParam(click.ParamType):
    """Accepts ``YYYY-MM-DD`` or ``DD/MM/YYYY``."""

    name = "date"

    def convert(self, value, param, ctx) -> date:
        if isinstance(value, date):
            return value
        try:
            return parse_date(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DATE = DateParam()


def _load_app_config(config_path: Optional[str]) -> AppConfig:
    if not config_path:
        return AppConfig()
    try:
        return load_config(config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid config: {e}") from e


def _resolve_input(input_path: Optional[str], config: AppConfig) -> str:
    path = input_path or config.data.records_path
    if not path:
        raise click.UsageError("Provide --input or set data.records_path in the config")
    return path


def _load_records(path: str):
    try:
        return load_visitor_records(path)
    except DataLoadError as e:
        raise click.ClickException(str(e)) from e


async def _run_analysis(
    session: DayAnalysisSession,
    records,
    primary: Optional[date],
    benchmark_date: Optional[date],
    weekday_average: bool,
) -> DayAnalysisView:
    # Apply the whole selection first so that a single weather pass runs.
    state = session.state
    if primary is not None:
        state.select_primary_date(primary)
    session.set_data(records)
    if benchmark_date is not None:
        state.set_benchmark_date_enabled(True)
        state.select_benchmark_date(benchmark_date)
    elif weekday_average:
        state.set_weekday_average_enabled(True)
    await session.refresh_weather()
    return session.view()


@click.group()
@click.version_option(version="1.0.0")
def cli() -> None:
    """Visitor Analytics CLI - Single-day visitor traffic analysis."""


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_path",
    type=click.Path(),
    help="Visitor records CSV",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    help="Configuration YAML",
)
def dates(input_path: Optional[str], config_path: Optional[str]) -> None:
    """List the dates available for analysis.

    Example:
        visitor-analytics dates -i visitors.csv
    """
    config = _load_app_config(config_path)
    session = DayAnalysisSession()
    session.set_data(_load_records(_resolve_input(input_path, config)))

    view = session.view()
    if not view.available_dates:
        click.echo("No dates available")
        return
    for day in view.available_dates:
        click.echo(f"{format_display_date(day)}  {weekday_name(day)}")


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_path",
    type=click.Path(),
    help="Visitor records CSV",
)
@click.option(
    "--date",
    "-d",
    "primary",
    type=DATE,
    help="Primary date (defaults to the earliest available date)",
)
@click.option(
    "--benchmark-date",
    "-b",
    type=DATE,
    help="Compare against this date",
)
@click.option(
    "--weekday-average",
    "-a",
    is_flag=True,
    help="Compare against the average of the same weekday",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    help="Configuration YAML",
)
@click.option(
    "--weather/--no-weather",
    default=True,
    help="Attach historical weather",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    help="Output file path",
)
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["json", "csv"]),
    default="json",
    help="Output format",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def analyze(
    input_path: Optional[str],
    primary: Optional[date],
    benchmark_date: Optional[date],
    weekday_average: bool,
    config_path: Optional[str],
    weather: bool,
    output: Optional[str],
    fmt: str,
    verbose: bool,
) -> None:
    """Analyze one day, optionally against a benchmark.

    Example:
        visitor-analytics analyze -i visitors.csv -d 2024-03-04 --weekday-average
    """
    if benchmark_date is not None and weekday_average:
        raise click.UsageError(
            "--benchmark-date and --weekday-average are mutually exclusive"
        )

    config = _load_app_config(config_path)
    if verbose or config_path:
        configure_logging(config.logging, verbose=verbose)
    records = _load_records(_resolve_input(input_path, config))

    provider = None
    if weather and config.weather.enabled:
        provider = OpenMeteoWeatherService(config.weather)
    session = DayAnalysisSession(weather_provider=provider)

    try:
        view = asyncio.run(
            _run_analysis(session, records, primary, benchmark_date, weekday_average)
        )
    except BenchmarkTransitionError as e:
        raise click.ClickException(str(e)) from e

    if view.error:
        raise click.ClickException(view.error)
    if not view.rows:
        raise click.ClickException(
            f"No visitor data for {format_display_date(primary) if primary else 'any date'}"
        )
    if view.weather_error:
        click.echo(f"Weather unavailable: {view.weather_error}", err=True)

    if fmt == "json":
        text = json.dumps(view.to_dict(), indent=2)
    else:
        flat = []
        for row in view.rows:
            data = row.to_dict()
            row_weather = data.pop("weather") or {}
            data.update(
                {f"weather_{k}": v for k, v in row_weather.items() if k != "date"}
            )
            flat.append(data)
        text = pd.DataFrame(flat).to_csv(index=False)

    if output:
        Path(output).write_text(text)
        click.echo(f"Analysis saved to: {output}")
    else:
        click.echo(text)


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_path",
    type=click.Path(),
    help="Visitor records CSV",
)
@click.option(
    "--date",
    "-d",
    "day",
    required=True,
    type=DATE,
    help="Date to break down",
)
@click.option(
    "--weekday-average",
    "-a",
    is_flag=True,
    help="Show the weekday average profile instead of the day itself",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    help="Configuration YAML",
)
def hourly(
    input_path: Optional[str],
    day: date,
    weekday_average: bool,
    config_path: Optional[str],
) -> None:
    """Print visitors per hour for a day.

    Example:
        visitor-analytics hourly -i visitors.csv -d 04/03/2024
    """
    config = _load_app_config(config_path)
    session = DayAnalysisSession()
    session.set_data(_load_records(_resolve_input(input_path, config)))
    session.state.select_primary_date(day)

    if weekday_average:
        profile = session.weekday_averages
        by_hour = profile.by_hour() if profile else {}
        breakdown = {hour: by_hour[hour] for hour in sorted(by_hour, key=hour_sort_key)}
        title = f"{weekday_name(day)} averages"
    else:
        breakdown = session.hourly_breakdown(day)
        title = format_display_date(day)

    if not breakdown:
        raise click.ClickException(f"No hourly data for {format_display_date(day)}")

    df = pd.DataFrame(
        [{"hour": hour, **metrics.as_dict()} for hour, metrics in breakdown.items()]
    )
    click.echo(title)
    click.echo(df.to_string(index=False))


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

"""CLI helpers for date range resolution."""

from datetime import date

import click

from tillbook.utils.date_parser import get_date_range, parse_date

PERIODS = ("today", "this-week", "this-month", "this-year", "last-week", "last-month", "last-year")


def date_range_options(func):
    """Attach --start-date/--end-date/--period options to a command."""
    func = click.option(
        "--period",
        type=click.Choice(PERIODS),
        help="Named period (cannot be combined with --start-date/--end-date)",
    )(func)
    func = click.option("--end-date", help="End date, inclusive (YYYY-MM-DD or 'today')")(func)
    func = click.option("--start-date", help="Start date (YYYY-MM-DD, 'this month', ...)")(func)
    return func


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    default_range: tuple[date, date] | None = None,
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from a period name or explicit dates."""
    if period and (start_date or end_date):
        click.echo(
            "Error: --period cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if period:
        return get_date_range(period)

    start = None
    end = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    if end_date:
        try:
            end = parse_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    if start is not None and end is not None and start > end:
        click.echo("Error: Start date must not be after end date.", err=True)
        ctx.exit(1)

    if start is None and end is None and default_range is not None:
        start, end = default_range

    return start, end

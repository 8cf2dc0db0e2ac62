"""Exchange rate commands."""

import click
from tillbook.cli.error_handling import handle_domain_error
from tillbook.domain.settings import SettingsService
from tillbook.utils.amount_parser import parse_amount


@click.group()
def rates_group():
    """Show or set exchange rates (SYP per USD and per TRY)."""
    pass


@rates_group.command("show")
@click.pass_context
def show_rates(ctx):
    """Show the current exchange rates."""
    service = SettingsService(ctx.obj["db"])
    try:
        rates = service.get_exchange_rates()
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"1 USD = {rates.usd.normalize():f} SYP")
    click.echo(f"1 TRY = {rates.try_.normalize():f} SYP")


@rates_group.command("set")
@click.option("--usd", required=True, help="SYP per 1 USD")
@click.option("--try", "try_", required=True, help="SYP per 1 TRY")
@click.pass_context
def set_rates(ctx, usd: str, try_: str):
    """Set both exchange rates.

    Examples:
        tillbook rates set --usd 14500 --try 460
    """
    service = SettingsService(ctx.obj["db"])
    try:
        rates = service.set_exchange_rates(parse_amount(usd), parse_amount(try_))
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Rates updated: USD={rates.usd.normalize():f} TRY={rates.try_.normalize():f}")


def register_commands(cli):
    """Register rate commands with main CLI."""
    cli.add_command(rates_group, name="rates")

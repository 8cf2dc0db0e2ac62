"""Cash register commands: balances, movements and transfers."""

import click
from tillbook.cli.error_handling import handle_domain_error
from tillbook.cli.formatting import format_amount, format_balances
from tillbook.domain.treasury import TreasuryService
from tillbook.utils.amount_parser import parse_price
from tillbook.utils.resolvers import resolve_register


@click.group()
def register_group():
    """Manage cash registers."""
    pass


@register_group.command("add")
@click.argument("name")
@click.option("--opening", "openings", multiple=True, help="Opening balance, e.g. '500 USD' (repeatable)")
@click.pass_context
def add_register(ctx, name, openings):
    """Add a cash register."""
    service = TreasuryService(ctx.obj["db"])
    try:
        balances = {}
        for text in openings:
            price = parse_price(text)
            balances[price.currency] = balances.get(price.currency, 0) + price.amount
        register = service.add_register(name, opening_balances=balances)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added cash register '{register.name}' (ID: {register.id})")


@register_group.command("list")
@click.pass_context
def list_registers(ctx):
    """List cash registers with balances."""
    registers = TreasuryService(ctx.obj["db"]).list_registers()
    if not registers:
        click.echo("No cash registers found.")
        return
    click.echo("\nCash registers:")
    click.echo("-" * 90)
    for r in registers:
        click.echo(f"{r.id:16s} | {r.name[:20]:20s} | {format_balances(r.balances)}")


@register_group.command("log")
@click.argument("register", required=False)
@click.pass_context
def show_log(ctx, register):
    """Show the cash transaction log, optionally for one REGISTER."""
    service = TreasuryService(ctx.obj["db"])
    register_id = None
    if register:
        try:
            register_id = resolve_register(service, register).id
        except ValueError as e:
            handle_domain_error(ctx, e)

    rows = service.list_cash_transactions(register_id=register_id)
    if not rows:
        click.echo("No cash transactions found.")
        return
    for t in rows:
        click.echo(
            f"{t.date:%Y-%m-%d %H:%M} | {t.register_id:10s} | {t.type.value:16s} | "
            f"{format_amount(t.amount):>14s} {t.currency.value} | {t.description}"
        )


def _movement(ctx, kind, register, amount, description):
    service = TreasuryService(ctx.obj["db"])
    try:
        reg = resolve_register(service, register)
        price = parse_price(amount)
        service.record_movement(reg.id, kind, price.amount, price.currency, description)
        updated = service.require_register(reg.id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded {kind} on '{updated.name}': {format_balances(updated.balances)}")


@register_group.command("deposit")
@click.argument("register")
@click.argument("amount")
@click.option("--description", "-d", required=True, help="What the money is for")
@click.pass_context
def deposit(ctx, register, amount, description):
    """Put money into a register, e.g. tillbook register deposit cr-1 "100 USD" -d "Capital"."""
    _movement(ctx, "deposit", register, amount, description)


@register_group.command("withdraw")
@click.argument("register")
@click.argument("amount")
@click.option("--description", "-d", required=True, help="What the money is for")
@click.pass_context
def withdraw(ctx, register, amount, description):
    """Take money out of a register."""
    _movement(ctx, "withdrawal", register, amount, description)


@register_group.command("transfer")
@click.argument("source")
@click.argument("target")
@click.argument("amount")
@click.pass_context
def transfer(ctx, source, target, amount):
    """Move AMOUNT from SOURCE to TARGET register."""
    service = TreasuryService(ctx.obj["db"])
    try:
        src = resolve_register(service, source)
        dst = resolve_register(service, target)
        price = parse_price(amount)
        service.transfer_funds(src.id, dst.id, price.amount, price.currency)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Transferred {format_amount(price.amount)} {price.currency.value} from '{src.name}' to '{dst.name}'")


def register_commands(cli):
    """Register cash register commands with main CLI."""
    cli.add_command(register_group, name="register")

"""Payment commands (money received from customers, paid to suppliers)."""

import click
from tillbook.cli.error_handling import handle_domain_error
from tillbook.cli.formatting import format_amount, format_balances
from tillbook.domain.entities import DEFAULT_REGISTER_ID, PartyKind
from tillbook.domain.ledger import LedgerService
from tillbook.domain.treasury import TreasuryService
from tillbook.utils.amount_parser import parse_price
from tillbook.utils.resolvers import resolve_party, resolve_register


@click.group()
def payment_group():
    """Record customer and supplier payments."""
    pass


def _record(ctx, direction, kind, party, amount, register, invoice_id):
    db = ctx.obj["db"]
    treasury = TreasuryService(db)
    ledger = LedgerService(db)
    try:
        p = resolve_party(ledger, kind, party)
        reg = resolve_register(treasury, register)
        price = parse_price(amount)
        treasury.record_payment(direction, p.id, reg.id, price.amount, price.currency, linked_invoice_id=invoice_id)
        updated = ledger.require_party(kind, p.id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    verb = "Received" if direction == "received" else "Paid"
    click.echo(f"{verb} {format_amount(price.amount)} {price.currency.value} ({p.name}, register '{reg.name}')")
    click.echo(f"Balance now: {format_balances(updated.balances)}")


@payment_group.command("receive")
@click.argument("customer")
@click.argument("amount")
@click.option("--register", default=DEFAULT_REGISTER_ID, show_default=True, help="Cash register")
@click.option("--invoice", "invoice_id", help="Invoice this payment settles")
@click.pass_context
def receive(ctx, customer, amount, register, invoice_id):
    """Receive AMOUNT from CUSTOMER, e.g. tillbook payment receive "Ali" "50 USD"."""
    _record(ctx, "received", PartyKind.CUSTOMER, customer, amount, register, invoice_id)


@payment_group.command("make")
@click.argument("supplier")
@click.argument("amount")
@click.option("--register", default=DEFAULT_REGISTER_ID, show_default=True, help="Cash register")
@click.option("--invoice", "invoice_id", help="Invoice this payment settles")
@click.pass_context
def make(ctx, supplier, amount, register, invoice_id):
    """Pay AMOUNT to SUPPLIER."""
    _record(ctx, "made", PartyKind.SUPPLIER, supplier, amount, register, invoice_id)


def register_commands(cli):
    """Register payment commands with main CLI."""
    cli.add_command(payment_group, name="payment")

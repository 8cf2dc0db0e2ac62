"""Customer and supplier commands.

Both groups share the same commands; they are built from one factory.
"""

import click
from tillbook.cli.error_handling import handle_domain_error
from tillbook.cli.formatting import format_amount, format_balances
from tillbook.domain.entities import Currency, PartyKind
from tillbook.domain.ledger import LedgerService
from tillbook.domain.reports import ReportService
from tillbook.utils.amount_parser import parse_price
from tillbook.utils.resolvers import resolve_party

CURRENCY_CHOICE = click.Choice([c.value for c in Currency], case_sensitive=False)


def _build_group(kind: PartyKind) -> click.Group:
    label = kind.value

    @click.group(help=f"Manage {label}s and their balances.")
    def group():
        pass

    @group.command("add", help=f"Add a {label}. Repeat --balance for opening balances, e.g. --balance '200 USD'.")
    @click.argument("name")
    @click.option("--phone", help="Phone number")
    @click.option("--balance", "balances", multiple=True, help="Opening balance, e.g. '150000' or '20 USD'")
    @click.pass_context
    def add(ctx, name, phone, balances):
        service = LedgerService(ctx.obj["db"])
        try:
            opening = {}
            for text in balances:
                price = parse_price(text)
                opening[price.currency] = opening.get(price.currency, 0) + price.amount
            if kind is PartyKind.CUSTOMER:
                party = service.add_customer(name, phone=phone, opening_balances=opening)
            else:
                party = service.add_supplier(name, phone=phone, opening_balances=opening)
        except ValueError as e:
            handle_domain_error(ctx, e)
        click.echo(f"Added {label} '{party.name}' (ID: {party.id})")

    @group.command("list", help=f"List {label}s with balances.")
    @click.pass_context
    def list_(ctx):
        service = LedgerService(ctx.obj["db"])
        parties = service.list_customers() if kind is PartyKind.CUSTOMER else service.list_suppliers()
        if not parties:
            click.echo(f"No {label}s found.")
            return
        click.echo(f"\n{label.capitalize()}s:")
        click.echo("-" * 90)
        for p in parties:
            click.echo(f"{p.id:16s} | {p.name[:24]:24s} | {format_balances(p.balances)}")

    @group.command("show", help=f"Show a {label}. REFERENCE is an ID or exact name.")
    @click.argument("reference")
    @click.pass_context
    def show(ctx, reference):
        try:
            p = resolve_party(LedgerService(ctx.obj["db"]), kind, reference)
        except ValueError as e:
            handle_domain_error(ctx, e)
        click.echo(f"ID:       {p.id}")
        click.echo(f"Name:     {p.name}")
        click.echo(f"Phone:    {p.phone or '-'}")
        click.echo(f"Balances: {format_balances(p.balances)}")

    @group.command("update", help=f"Change a {label}'s name or phone.")
    @click.argument("reference")
    @click.option("--name", help="New name")
    @click.option("--phone", help="New phone number")
    @click.pass_context
    def update(ctx, reference, name, phone):
        service = LedgerService(ctx.obj["db"])
        try:
            p = resolve_party(service, kind, reference)
            updated = service.update_party(kind, p.id, name=name, phone=phone)
        except ValueError as e:
            handle_domain_error(ctx, e)
        click.echo(f"Updated {label} '{updated.name}'")

    @group.command("delete", help=f"Delete a {label}.")
    @click.argument("reference")
    @click.option("--yes", is_flag=True, help="Skip confirmation")
    @click.pass_context
    def delete(ctx, reference, yes):
        service = LedgerService(ctx.obj["db"])
        try:
            p = resolve_party(service, kind, reference)
        except ValueError as e:
            handle_domain_error(ctx, e)
        if not yes and not click.confirm(f"Are you sure you want to delete {label} '{p.name}'?"):
            click.echo("Deletion cancelled.")
            return
        try:
            service.delete_party(kind, p.id)
        except ValueError as e:
            handle_domain_error(ctx, e)
        click.echo(f"Deleted {label} '{p.name}'")

    @group.command("statement", help=f"Account statement of a {label} in one currency.")
    @click.argument("reference")
    @click.option("--currency", type=CURRENCY_CHOICE, default="SYP", show_default=True)
    @click.pass_context
    def statement(ctx, reference, currency):
        db = ctx.obj["db"]
        try:
            p = resolve_party(LedgerService(db), kind, reference)
            lines = ReportService(db).account_statement(kind, p.id, Currency(currency.upper()))
        except ValueError as e:
            handle_domain_error(ctx, e)

        click.echo(f"\nStatement for {p.name} ({currency.upper()})")
        click.echo("-" * 96)
        if not lines:
            click.echo("No credit invoices or payments.")
        for line in lines:
            debit = format_amount(line.debit) if line.debit else "-"
            credit = format_amount(line.credit) if line.credit else "-"
            click.echo(
                f"{line.date:%Y-%m-%d} | {line.description[:36]:36s} | "
                f"{debit:>14s} | {credit:>14s} | {format_amount(line.balance):>14s}"
            )
        click.echo("-" * 96)
        click.echo(f"Current balance: {format_amount(p.balances[Currency(currency.upper())])}")

    return group


def register_commands(cli):
    """Register customer and supplier commands with main CLI."""
    cli.add_command(_build_group(PartyKind.CUSTOMER), name="customer")
    cli.add_command(_build_group(PartyKind.SUPPLIER), name="supplier")

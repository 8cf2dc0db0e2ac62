"""Invoice commands: create, edit, delete and inspect invoices."""

import click
from tillbook.cli.date_filters import date_range_options, resolve_cli_date_range
from tillbook.cli.error_handling import handle_domain_error
from tillbook.cli.formatting import format_amount, format_price, format_quantity
from tillbook.database.base import Database
from tillbook.domain.entities import (
    CASH_CUSTOMER_ID,
    DEFAULT_REGISTER_ID,
    Currency,
    InvoiceType,
    PartyKind,
    PaymentType,
)
from tillbook.domain.inventory import InventoryService
from tillbook.domain.invoice import InvoiceService, LineRequest
from tillbook.domain.ledger import LedgerService
from tillbook.domain.settlement import format_invoice_id
from tillbook.domain.treasury import TreasuryService
from tillbook.utils.amount_parser import parse_price, parse_quantity
from tillbook.utils.resolvers import resolve_party, resolve_product, resolve_register

TYPE_CHOICE = click.Choice([t.value for t in InvoiceType])
PAYMENT_CHOICE = click.Choice([p.value for p in PaymentType])
CURRENCY_CHOICE = click.Choice([c.value for c in Currency], case_sensitive=False)


def parse_item(text: str) -> tuple[str, str, str | None]:
    """Split 'PRODUCT[:QTY][@PRICE]' into its parts (quantity defaults to 1)."""
    body, _, price = text.partition("@")
    product, sep, quantity = body.rpartition(":")
    if not sep:
        product, quantity = body, "1"
    if not product.strip():
        raise ValueError(f"Invalid item '{text}': expected PRODUCT[:QTY][@PRICE]")
    return product.strip(), quantity.strip(), price.strip() or None


def _line_requests(db: Database, items: tuple[str, ...], currency: Currency) -> list[LineRequest]:
    inventory = InventoryService(db)
    lines = []
    for text in items:
        reference, quantity, price = parse_item(text)
        product = resolve_product(inventory, reference)
        lines.append(
            LineRequest(
                product_id=product.id,
                quantity=parse_quantity(quantity),
                unit_price=parse_price(price, default_currency=currency) if price else None,
            )
        )
    return lines


def _build_draft(db, invoice_type, payment, currency, customer, supplier, register, items, vendor_number, wholesale, paid):
    """Resolve CLI references and price the lines into a draft."""
    invoice_type = InvoiceType(invoice_type)
    payment = PaymentType(payment)
    currency = Currency(currency.upper())

    customer_id = supplier_id = register_id = None
    if invoice_type.is_sale:
        customer_id = resolve_party(LedgerService(db), PartyKind.CUSTOMER, customer or CASH_CUSTOMER_ID).id
    elif supplier:
        supplier_id = resolve_party(LedgerService(db), PartyKind.SUPPLIER, supplier).id
    if payment is PaymentType.CASH or paid:
        register_id = resolve_register(TreasuryService(db), register or DEFAULT_REGISTER_ID).id

    return InvoiceService(db).build_draft(
        invoice_type,
        payment,
        currency,
        _line_requests(db, items, currency),
        customer_id=customer_id,
        supplier_id=supplier_id,
        cash_register_id=register_id,
        vendor_invoice_number=vendor_number,
        wholesale=wholesale,
    )


def _echo_invoice(invoice):
    party = invoice.customer_id or invoice.supplier_id or "-"
    click.echo(f"Invoice:  {invoice.id}")
    click.echo(f"Date:     {invoice.date:%Y-%m-%d %H:%M}")
    click.echo(f"Type:     {invoice.type.value} / {invoice.payment_type.value}")
    click.echo(f"Party:    {party}")
    if invoice.cash_register_id:
        click.echo(f"Register: {invoice.cash_register_id}")
    if invoice.vendor_invoice_number:
        click.echo(f"Vendor #: {invoice.vendor_invoice_number}")
    click.echo("-" * 72)
    for item in invoice.items:
        click.echo(
            f"{item.product_name[:28]:28s} {format_quantity(item.quantity):>8s} x "
            f"{format_price(item.unit_price):>16s} = {format_price(item.total_price):>16s}"
        )
    click.echo("-" * 72)
    click.echo(f"Total:    {format_amount(invoice.total_amount)} {invoice.currency.value}")
    click.echo(f"In SYP:   {format_amount(invoice.total_amount_in_anchor)}")


@click.group()
def invoice_group():
    """Create and manage invoices."""
    pass


def _invoice_options(func):
    """Options shared by create and edit."""
    options = [
        click.option("--type", "invoice_type", type=TYPE_CHOICE, help="pos, sale or purchase"),
        click.option("--payment", type=PAYMENT_CHOICE, help="cash or credit"),
        click.option("--currency", type=CURRENCY_CHOICE, help="Invoice currency"),
        click.option("--customer", help="Customer ID or name (sales; defaults to walk-in)"),
        click.option("--supplier", help="Supplier ID or name (purchases)"),
        click.option("--register", help=f"Cash register (default {DEFAULT_REGISTER_ID})"),
        click.option("--item", "items", multiple=True, required=True, help="PRODUCT[:QTY][@PRICE], repeatable"),
        click.option("--vendor-number", help="Supplier's own invoice number (purchases)"),
        click.option("--wholesale", is_flag=True, help="Price sale lines at wholesale price"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@invoice_group.command("create")
@_invoice_options
@click.option("--paid", help="Partial payment taken now on a credit sale, e.g. '20 USD'")
@click.pass_context
def create_invoice(ctx, invoice_type, payment, currency, customer, supplier, register, items, vendor_number, wholesale, paid):
    """Create an invoice and settle it.

    Examples:
        tillbook invoice create --item "Olive oil 1L:2" --item 6901234
        tillbook invoice create --type sale --payment credit --customer Ali --item p-1:3 --paid 50000
        tillbook invoice create --type purchase --payment credit --supplier Acme --currency USD --item p-1:100@4
    """
    db = ctx.obj["db"]
    try:
        partial = None
        if paid:
            paid_price = parse_price(paid, default_currency=Currency((currency or "SYP").upper()))
            partial = paid_price.amount
        draft = _build_draft(
            db,
            invoice_type or InvoiceType.POS.value,
            payment or PaymentType.CASH.value,
            currency or Currency.SYP.value,
            customer,
            supplier,
            register,
            items,
            vendor_number,
            wholesale,
            paid,
        )
        if paid and paid_price.currency is not draft.currency:
            raise ValueError("Partial payment must be in the invoice currency")
    except ValueError as e:
        handle_domain_error(ctx, e)

    result = InvoiceService(db).checkout(draft, partial_payment=partial)
    if not result.success:
        click.echo(f"Error: {result.message}", err=True)
        ctx.exit(1)
    click.echo(f"Saved invoice {result.invoice_id}: {format_amount(draft.total_amount)} {draft.currency.value}")


@invoice_group.command("edit")
@click.argument("invoice_id")
@_invoice_options
@click.pass_context
def edit_invoice(ctx, invoice_id, invoice_type, payment, currency, customer, supplier, register, items, vendor_number, wholesale):
    """Replace the content of INVOICE_ID, keeping its number and date.

    Options that are omitted keep the invoice's current value; items must
    always be given in full.
    """
    db = ctx.obj["db"]
    service = InvoiceService(db)
    original = service.get_invoice(invoice_id)
    if original is None:
        click.echo(f"Error: Invoice {invoice_id} not found", err=True)
        ctx.exit(1)

    try:
        draft = _build_draft(
            db,
            invoice_type or original.type.value,
            payment or original.payment_type.value,
            currency or original.currency.value,
            customer or original.customer_id,
            supplier or original.supplier_id,
            register or original.cash_register_id,
            items,
            vendor_number or original.vendor_invoice_number,
            wholesale,
            None,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    result = service.process_invoice(draft, is_editing=True, original_invoice=original)
    if not result.success:
        click.echo(f"Error: {result.message}", err=True)
        ctx.exit(1)
    click.echo(f"Updated invoice {result.invoice_id}: {format_amount(draft.total_amount)} {draft.currency.value}")


@invoice_group.command("show")
@click.argument("invoice_id")
@click.pass_context
def show_invoice(ctx, invoice_id):
    """Show an invoice with its lines."""
    invoice = InvoiceService(ctx.obj["db"]).get_invoice(invoice_id)
    if invoice is None:
        click.echo(f"Error: Invoice {invoice_id} not found", err=True)
        ctx.exit(1)
    _echo_invoice(invoice)


@invoice_group.command("list")
@date_range_options
@click.option("--type", "invoice_type", type=TYPE_CHOICE, help="Only this invoice type")
@click.pass_context
def list_invoices(ctx, start_date, end_date, period, invoice_type):
    """List invoices, oldest first."""
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    invoices = InvoiceService(ctx.obj["db"]).list_invoices(
        start_date=start, end_date=end, invoice_type=InvoiceType(invoice_type) if invoice_type else None
    )
    if not invoices:
        click.echo("No invoices found.")
        return
    for inv in invoices:
        party = inv.customer_id or inv.supplier_id or "-"
        click.echo(
            f"{inv.id} | {inv.date:%Y-%m-%d} | {inv.type.value:8s} | {inv.payment_type.value:6s} | "
            f"{party:16s} | {format_amount(inv.total_amount):>14s} {inv.currency.value}"
        )


@invoice_group.command("delete")
@click.argument("invoice_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_invoice(ctx, invoice_id, yes):
    """Delete an invoice, restoring stock and balances."""
    service = InvoiceService(ctx.obj["db"])
    if not yes and not click.confirm(f"Are you sure you want to delete invoice {invoice_id}?"):
        click.echo("Deletion cancelled.")
        return
    try:
        service.delete_invoice(invoice_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted invoice {invoice_id}")


@invoice_group.command("next-number")
@click.pass_context
def next_number(ctx):
    """Show the id the next new invoice will get."""
    click.echo(format_invoice_id(InvoiceService(ctx.obj["db"]).get_next_invoice_number()))


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")

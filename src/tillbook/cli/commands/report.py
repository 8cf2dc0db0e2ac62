"""Report commands."""

from datetime import date

import click
from tillbook.cli.date_filters import date_range_options, resolve_cli_date_range
from tillbook.cli.error_handling import handle_domain_error
from tillbook.cli.formatting import format_amount, format_quantity
from tillbook.domain.inventory import InventoryService
from tillbook.domain.reports import ReportService
from tillbook.utils.date_parser import get_date_range, parse_date
from tillbook.utils.resolvers import resolve_product


@click.group()
def report_group():
    """Business reports (amounts in SYP unless noted)."""
    pass


@report_group.command("pnl")
@date_range_options
@click.option("--details", is_flag=True, help="List profit per invoice")
@click.pass_context
def profit_and_loss(ctx, start_date, end_date, period, details):
    """Profit and loss (defaults to this month)."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period, default_range=get_date_range("this-month")
    )
    try:
        report = ReportService(ctx.obj["db"]).profit_and_loss(start or date.min, end or date.today())
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nProfit and loss {start or '...'} to {end or date.today()}")
    click.echo("-" * 48)
    click.echo(f"Sales:          {format_amount(report.total_sales):>20s}")
    click.echo(f"Cost of goods:  {format_amount(report.total_cost):>20s}")
    click.echo(f"Expenses:       {format_amount(report.total_expenses):>20s}")
    click.echo(f"Net profit:     {format_amount(report.net_profit):>20s}")
    if details:
        click.echo("-" * 48)
        for row in report.invoices:
            click.echo(f"{row.invoice.id} | {row.invoice.date:%Y-%m-%d} | profit {format_amount(row.profit):>16s}")


@report_group.command("cash-flow")
@click.option("--date", "day", default="today", show_default=True, help="Day to report")
@click.option("--register", "register_id", help="Only this register ID")
@click.pass_context
def cash_flow(ctx, day, register_id):
    """Cash in and out for one day."""
    try:
        target = parse_date(day)
    except ValueError as e:
        handle_domain_error(ctx, e)
    report = ReportService(ctx.obj["db"]).daily_cash_flow(target, register_id=register_id)

    click.echo(f"\nCash flow for {target}")
    for title, rows in (("In", report.cash_in), ("Out", report.cash_out)):
        click.echo(f"\n{title}:")
        if not rows:
            click.echo("  (none)")
        for t in rows:
            click.echo(f"  {t.date:%H:%M} | {t.type.value:16s} | {format_amount(t.amount_in_anchor):>16s} | {t.description}")
    click.echo("-" * 48)
    click.echo(f"Total in:  {format_amount(report.total_in):>20s}")
    click.echo(f"Total out: {format_amount(report.total_out):>20s}")
    click.echo(f"Net:       {format_amount(report.net_flow):>20s}")


@report_group.command("movement")
@click.argument("product")
@date_range_options
@click.pass_context
def product_movement(ctx, product, start_date, end_date, period):
    """Stock movement of one PRODUCT through invoices."""
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    db = ctx.obj["db"]
    try:
        p = resolve_product(InventoryService(db), product)
    except ValueError as e:
        handle_domain_error(ctx, e)
    movements = ReportService(db).product_movement(p.id, start_date=start, end_date=end)
    if not movements:
        click.echo(f"No movements for '{p.name}'.")
        return
    click.echo(f"\nMovements of {p.name}")
    for m in movements:
        click.echo(
            f"{m.date:%Y-%m-%d} | {m.invoice_id} | in {format_quantity(m.quantity_in):>8s} | "
            f"out {format_quantity(m.quantity_out):>8s}"
        )


@report_group.command("valuation")
@click.pass_context
def inventory_valuation(ctx):
    """Inventory value at current cost prices."""
    try:
        report = ReportService(ctx.obj["db"]).inventory_valuation()
    except ValueError as e:
        handle_domain_error(ctx, e)
    for row in report.products:
        click.echo(
            f"{row.product.name[:28]:28s} | stock {format_quantity(row.product.stock):>8s} | "
            f"unit {format_amount(row.unit_cost):>14s} | value {format_amount(row.value):>16s}"
        )
    click.echo("-" * 80)
    click.echo(f"Total value: {format_amount(report.total_value)}")


@report_group.command("best-sellers")
@date_range_options
@click.option("--sort-by", type=click.Choice(["quantity", "value"]), default="quantity", show_default=True)
@click.option("--limit", type=int, default=10, show_default=True)
@click.pass_context
def best_sellers(ctx, start_date, end_date, period, sort_by, limit):
    """Best-selling products (defaults to this month)."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period, default_range=get_date_range("this-month")
    )
    try:
        sellers = ReportService(ctx.obj["db"]).best_sellers(start or date.min, end or date.today(), sort_by=sort_by)
    except ValueError as e:
        handle_domain_error(ctx, e)
    if not sellers:
        click.echo("No sales in this period.")
        return
    for rank, s in enumerate(sellers[:limit], start=1):
        click.echo(f"{rank:3d}. {s.name[:28]:28s} | qty {format_quantity(s.quantity):>8s} | value {format_amount(s.value):>16s}")


@report_group.command("aging")
@click.pass_context
def aging(ctx):
    """Open receivables and payables per currency."""
    report = ReportService(ctx.obj["db"]).aging_summary()
    for title, entries in (("Receivables (customers)", report.customers), ("Payables (suppliers)", report.suppliers)):
        click.echo(f"\n{title}:")
        if not entries:
            click.echo("  (none)")
        for e in entries:
            click.echo(f"  {e.party.name[:28]:28s} | {format_amount(e.balance):>16s} {e.currency.value}")


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")

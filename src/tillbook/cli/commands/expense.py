"""Expense commands."""

import click
from tillbook.cli.date_filters import date_range_options, resolve_cli_date_range
from tillbook.cli.error_handling import handle_domain_error
from tillbook.cli.formatting import format_amount
from tillbook.domain.entities import DEFAULT_REGISTER_ID
from tillbook.domain.treasury import TreasuryService
from tillbook.utils.amount_parser import parse_price
from tillbook.utils.resolvers import resolve_register


@click.group()
def expense_group():
    """Record expenses paid from a cash register."""
    pass


@expense_group.command("add-category")
@click.argument("name")
@click.pass_context
def add_category(ctx, name):
    """Add an expense category."""
    try:
        category = TreasuryService(ctx.obj["db"]).add_expense_category(name)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added expense category '{category.name}' (ID: {category.id})")


@expense_group.command("categories")
@click.pass_context
def list_categories(ctx):
    """List expense categories."""
    categories = TreasuryService(ctx.obj["db"]).list_expense_categories()
    if not categories:
        click.echo("No expense categories found.")
        return
    for c in categories:
        click.echo(f"{c.id:16s} | {c.name}")


@expense_group.command("record")
@click.argument("description")
@click.argument("amount")
@click.option("--register", default=DEFAULT_REGISTER_ID, show_default=True, help="Cash register paying")
@click.option("--category", "category_id", help="Expense category ID")
@click.pass_context
def record_expense(ctx, description, amount, register, category_id):
    """Record an expense, e.g. tillbook expense record "Electricity" 250000 --category ec-1."""
    service = TreasuryService(ctx.obj["db"])
    try:
        reg = resolve_register(service, register)
        price = parse_price(amount)
        expense, _ = service.record_expense(description, category_id, reg.id, price.amount, price.currency)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Recorded expense {expense.id}: {format_amount(expense.amount)} {expense.currency.value} from '{reg.name}'"
    )


@expense_group.command("list")
@date_range_options
@click.pass_context
def list_expenses(ctx, start_date, end_date, period):
    """List expenses."""
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    expenses = TreasuryService(ctx.obj["db"]).list_expenses(start_date=start, end_date=end)
    if not expenses:
        click.echo("No expenses found.")
        return
    for e in expenses:
        click.echo(
            f"{e.date:%Y-%m-%d} | {e.description[:30]:30s} | {(e.category_id or '-'):14s} | "
            f"{format_amount(e.amount):>14s} {e.currency.value}"
        )


def register_commands(cli):
    """Register expense commands with main CLI."""
    cli.add_command(expense_group, name="expense")

"""Product category commands."""

import click
from tillbook.cli.error_handling import handle_domain_error
from tillbook.domain.inventory import InventoryService


@click.group()
def category_group():
    """Manage product categories."""
    pass


@category_group.command("add")
@click.argument("name")
@click.option("--parent", "parent_id", help="Parent category ID")
@click.pass_context
def add_category(ctx, name: str, parent_id: str | None):
    """Add a product category."""
    service = InventoryService(ctx.obj["db"])
    try:
        category = service.add_category(name, parent_id=parent_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added category '{category.name}' (ID: {category.id})")


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List categories as a tree."""
    categories = InventoryService(ctx.obj["db"]).list_categories()
    if not categories:
        click.echo("No categories found.")
        return

    children: dict[str | None, list] = {}
    known = {c.id for c in categories}
    for c in categories:
        parent = c.parent_id if c.parent_id in known else None
        children.setdefault(parent, []).append(c)

    def show(parent_id, depth):
        for c in children.get(parent_id, []):
            click.echo(f"{'  ' * depth}{c.name} ({c.id})")
            show(c.id, depth + 1)

    show(None, 0)


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")

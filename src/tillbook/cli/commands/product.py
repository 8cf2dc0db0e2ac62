"""Product (inventory) commands."""

import click
from tillbook.cli.error_handling import handle_domain_error
from tillbook.cli.formatting import format_price, format_quantity
from tillbook.domain.inventory import InventoryService
from tillbook.utils.amount_parser import parse_amount, parse_price
from tillbook.utils.resolvers import resolve_product


@click.group()
def product_group():
    """Manage products and stock."""
    pass


@product_group.command("add")
@click.argument("name")
@click.option("--cost", required=True, help="Cost price, e.g. '8 USD' or '95000'")
@click.option("--price", required=True, help="Selling price, e.g. '10 USD'")
@click.option("--wholesale", help="Wholesale price (defaults to selling price)")
@click.option("--sku", help="SKU / barcode")
@click.option("--stock", default="0", show_default=True, help="Opening stock")
@click.option("--category", "category_id", help="Category ID")
@click.pass_context
def add_product(ctx, name, cost, price, wholesale, sku, stock, category_id):
    """Add a product.

    Prices without a currency are in SYP.

    Examples:
        tillbook product add "Olive oil 1L" --cost "4 USD" --price "5.5 USD" --sku 6901234 --stock 40
    """
    service = InventoryService(ctx.obj["db"])
    try:
        product = service.add_product(
            name=name,
            cost_price=parse_price(cost),
            selling_price=parse_price(price),
            wholesale_price=parse_price(wholesale) if wholesale else None,
            sku=sku,
            stock=parse_amount(stock),
            category_id=category_id,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added product '{product.name}' (ID: {product.id})")


@product_group.command("list")
@click.option("--search", help="Filter by name or SKU substring")
@click.option("--category", "category_id", help="Filter by category ID")
@click.pass_context
def list_products(ctx, search, category_id):
    """List products."""
    service = InventoryService(ctx.obj["db"])
    products = service.search_products(term=search, category_id=category_id)
    if not products:
        click.echo("No products found.")
        return

    click.echo("\nProducts:")
    click.echo("-" * 90)
    for p in products:
        click.echo(
            f"{p.id:16s} | {p.name[:24]:24s} | SKU: {(p.sku or '-'):14s} | "
            f"Stock: {format_quantity(p.stock):>8s} | Price: {format_price(p.selling_price)}"
        )


@product_group.command("show")
@click.argument("product")
@click.pass_context
def show_product(ctx, product):
    """Show one product. PRODUCT can be an ID, SKU or name."""
    service = InventoryService(ctx.obj["db"])
    try:
        p = resolve_product(service, product)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"ID:        {p.id}")
    click.echo(f"Name:      {p.name}")
    click.echo(f"SKU:       {p.sku or '-'}")
    click.echo(f"Category:  {p.category_id or '-'}")
    click.echo(f"Stock:     {format_quantity(p.stock)}")
    click.echo(f"Cost:      {format_price(p.cost_price)}")
    click.echo(f"Wholesale: {format_price(p.wholesale_price)}")
    click.echo(f"Selling:   {format_price(p.selling_price)}")


@product_group.command("update")
@click.argument("product")
@click.option("--name", help="New name")
@click.option("--sku", help="New SKU")
@click.option("--cost", help="New cost price")
@click.option("--price", help="New selling price")
@click.option("--wholesale", help="New wholesale price")
@click.option("--category", "category_id", help="New category ID")
@click.pass_context
def update_product(ctx, product, name, sku, cost, price, wholesale, category_id):
    """Update product details (not stock; see 'product stock')."""
    service = InventoryService(ctx.obj["db"])
    try:
        p = resolve_product(service, product)
        updated = service.update_product(
            p.id,
            name=name,
            sku=sku,
            cost_price=parse_price(cost) if cost else None,
            selling_price=parse_price(price) if price else None,
            wholesale_price=parse_price(wholesale) if wholesale else None,
            category_id=category_id,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated product '{updated.name}'")


@product_group.command("stock")
@click.argument("product")
@click.argument("quantity")
@click.pass_context
def set_stock(ctx, product, quantity):
    """Set the stock level after a manual count."""
    service = InventoryService(ctx.obj["db"])
    try:
        p = resolve_product(service, product)
        updated = service.set_stock(p.id, parse_amount(quantity))
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Stock of '{updated.name}' set to {format_quantity(updated.stock)}")


@product_group.command("delete")
@click.argument("product")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_product(ctx, product, yes):
    """Delete a product. Existing invoices keep their line details."""
    service = InventoryService(ctx.obj["db"])
    try:
        p = resolve_product(service, product)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(f"Are you sure you want to delete product '{p.name}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_product(p.id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted product '{p.name}'")


def register_commands(cli):
    """Register product commands with main CLI."""
    cli.add_command(product_group, name="product")

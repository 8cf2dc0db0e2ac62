"""Company information commands."""

import click
from tillbook.domain.settings import SettingsService


@click.group()
def company_group():
    """Company details printed on invoices."""
    pass


@company_group.command("show")
@click.pass_context
def show_company(ctx):
    """Show company details."""
    info = SettingsService(ctx.obj["db"]).get_company_info()
    for key in ("name", "address", "phone"):
        click.echo(f"{key.capitalize():8s}: {info[key] or '-'}")


@company_group.command("set")
@click.option("--name", help="Company name")
@click.option("--address", help="Postal address")
@click.option("--phone", help="Phone number")
@click.pass_context
def set_company(ctx, name: str | None, address: str | None, phone: str | None):
    """Update company details; omitted fields are kept."""
    if name is None and address is None and phone is None:
        click.echo("Error: Nothing to update. Use --name, --address or --phone.", err=True)
        ctx.exit(1)
    SettingsService(ctx.obj["db"]).set_company_info(name=name, address=address, phone=phone)
    click.echo("Company details updated")


def register_commands(cli):
    """Register company commands with main CLI."""
    cli.add_command(company_group, name="company")

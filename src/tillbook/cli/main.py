"""Main CLI entry point."""

import click
from tillbook.database.factories import create_sqlite_database
from tillbook.log import configure_logging

# Import and register all commands at module level
from tillbook.cli.commands import (
    rates,
    company,
    product,
    category,
    party,
    register,
    payment,
    invoice,
    expense,
    report,
    backup,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides TILLBOOK_DB_PATH environment variable)",
    envvar="TILLBOOK_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="TILLBOOK_LOG_LEVEL",
    help="Log verbosity on stderr",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """Tillbook - point-of-sale invoicing and cash ledger.

    Sell and buy goods in SYP, USD or TRY, keep customer and supplier
    balances per currency and reconcile every cash register.
    """
    ctx.ensure_object(dict)
    configure_logging(log_level)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
rates.register_commands(cli)
company.register_commands(cli)
product.register_commands(cli)
category.register_commands(cli)
party.register_commands(cli)
register.register_commands(cli)
payment.register_commands(cli)
invoice.register_commands(cli)
expense.register_commands(cli)
report.register_commands(cli)
backup.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()

"""Backup and restore commands."""

from datetime import date
from pathlib import Path

import click
from tillbook.cli.error_handling import handle_domain_error
from tillbook.domain.backup import BackupService


@click.group()
def backup_group():
    """Back up, restore or merge the whole database as JSON."""
    pass


@backup_group.command("create")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output file (default backup-<date>.json)")
@click.pass_context
def create_backup(ctx, output):
    """Write a JSON backup of all data."""
    document = BackupService(ctx.obj["db"]).backup()
    path = Path(output or f"backup-{date.today().isoformat()}.json")
    path.write_text(document, encoding="utf-8")
    click.echo(f"Backup written to {path}")


@backup_group.command("restore")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def restore_backup(ctx, path, yes):
    """Replace ALL data with the contents of a backup file."""
    if not yes and not click.confirm("This replaces all current data. Continue?"):
        click.echo("Restore cancelled.")
        return
    try:
        contents = BackupService(ctx.obj["db"]).restore(Path(path).read_text(encoding="utf-8"))
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Restored {len(contents.products)} products, {len(contents.customers)} customers, "
        f"{len(contents.suppliers)} suppliers and {len(contents.invoices)} invoices"
    )


@backup_group.command("merge")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def merge_backup(ctx, path):
    """Import rows from a backup whose IDs are not present yet.

    Balances and stock are left untouched.
    """
    try:
        summary = BackupService(ctx.obj["db"]).restore_merge(Path(path).read_text(encoding="utf-8"))
    except ValueError as e:
        handle_domain_error(ctx, e)
    if summary.total_imported == 0:
        click.echo("Nothing new to import.")
    for table, count in summary.imported.items():
        click.echo(f"Imported {count} new {table}")
    for table, count in summary.skipped.items():
        click.echo(f"Skipped {count} existing {table}")


def register_commands(cli):
    """Register backup commands with main CLI."""
    cli.add_command(backup_group, name="backup")

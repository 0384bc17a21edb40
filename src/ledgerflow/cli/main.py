"""Main CLI entry point."""

import logging

import click
from ledgerflow.config import load_settings
from ledgerflow.database.factories import create_sqlite_database

# Import and register all commands at module level
from ledgerflow.cli.commands import (
    company,
    account,
    invoice,
    bill,
    vendor,
    classify,
    ingest,
    reconcile,
    journal,
    trial_balance,
    transaction,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERFLOW_DB_PATH environment variable)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides LEDGERFLOW_LOG_LEVEL environment variable)",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """Ledgerflow - Bank statement bookkeeping.

    Classify bank transactions, reconcile statements against invoices and
    bills, and keep a balanced double-entry ledger per company.
    """
    ctx.ensure_object(dict)

    # Initialize configuration and database only when actually running a
    # command (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings()
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        logging.basicConfig(
            level=(log_level or settings.log_level).upper(), format=LOG_FORMAT
        )

        if "db" not in ctx.obj:
            db = create_sqlite_database(database_path=db_path or settings.db_path)
            db.connect()
            db.initialize_schema()
            ctx.obj["db"] = db
        ctx.obj["settings"] = settings


# Register all commands
company.register_commands(cli)
account.register_commands(cli)
invoice.register_commands(cli)
bill.register_commands(cli)
vendor.register_commands(cli)
classify.register_commands(cli)
ingest.register_commands(cli)
reconcile.register_commands(cli)
journal.register_commands(cli)
trial_balance.register_commands(cli)
transaction.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()

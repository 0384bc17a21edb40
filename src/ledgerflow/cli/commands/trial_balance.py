"""Trial balance command."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.services import get_ledger
from ledgerflow.utils.date_parser import parse_date


@click.command("trial-balance")
@click.argument("company", metavar="COMPANY")
@click.option("--as-of", help="Include postings up to this date (YYYY-MM-DD or relative)")
@click.pass_context
def trial_balance(ctx, company: str, as_of: str | None):
    """Show the trial balance for COMPANY."""
    company_id = resolve_company_or_exit(ctx, company)
    ledger = get_ledger(ctx)

    as_of_date = None
    if as_of:
        try:
            as_of_date = parse_date(as_of)
        except ValueError as e:
            click.echo(f"Error: Invalid date: {e}", err=True)
            ctx.exit(1)

    tb = ledger.trial_balance(company_id, as_of=as_of_date)
    if not tb.rows:
        click.echo("No postings found.")
        return

    click.echo(f"\n{'Code':<6} | {'Account':<32} | {'Debit':>14} | {'Credit':>14}")
    click.echo("-" * 74)
    for row in tb.rows:
        debit = f"{row.debit:,.2f}" if row.debit else ""
        credit = f"{row.credit:,.2f}" if row.credit else ""
        click.echo(f"{row.account_code:<6} | {row.account_name[:32]:<32} | {debit:>14} | {credit:>14}")
    click.echo("-" * 74)
    click.echo(f"{'':<6} | {'Total':<32} | {tb.total_debits:>14,.2f} | {tb.total_credits:>14,.2f}")
    if tb.is_balanced:
        click.echo("Balanced")
    else:
        click.echo(f"OUT OF BALANCE by {tb.difference:,.2f}", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register trial-balance command with main CLI."""
    cli.add_command(trial_balance)

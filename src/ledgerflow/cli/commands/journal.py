"""Journal commands."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.cli.services import get_ledger
from ledgerflow.domain.entities import PostingLine
from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date


def parse_entry(value: str) -> PostingLine:
    """Parse ``CODE:DEBIT:CREDIT`` (an empty side means zero)."""
    parts = value.split(":")
    if len(parts) != 3:
        raise click.BadParameter(f"'{value}' is not CODE:DEBIT:CREDIT")
    code, debit, credit = (p.strip() for p in parts)
    try:
        return PostingLine.coerce(
            {
                "account_code": code,
                "debit": parse_amount(debit) if debit else 0,
                "credit": parse_amount(credit) if credit else 0,
            }
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@click.group()
def journal_group():
    """Post and view journal entries."""
    pass


@journal_group.command("post")
@click.argument("company", metavar="COMPANY")
@click.option(
    "--entry",
    "-e",
    "entries",
    multiple=True,
    required=True,
    help="Journal line as CODE:DEBIT:CREDIT, e.g. 5200:1000: or 1010::1000",
)
@click.option("--description", "-d", required=True, help="Narration")
@click.option("--date", "entry_date", default="today", show_default=True, help="Posting date")
@click.option("--reference", help="External reference")
@click.pass_context
def post_entries(
    ctx,
    company: str,
    entries: tuple[str, ...],
    description: str,
    entry_date: str,
    reference: str | None,
):
    """Post a balanced set of journal lines.

    Examples:
        ledgerflow journal post "Acme" -e 5200:1000: -e 1010::1000 -d "Office rent"
    """
    company_id = resolve_company_or_exit(ctx, company)
    ledger = get_ledger(ctx)

    try:
        lines = [parse_entry(e) for e in entries]
        posted = ledger.post(
            company_id, parse_date(entry_date), description, lines, reference=reference
        )
    except click.BadParameter as e:
        click.echo(f"Error: {e.message}", err=True)
        ctx.exit(1)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Posted {len(posted)} journal entries")


@journal_group.command("list")
@click.argument("company", metavar="COMPANY")
@click.option("--account", help="Account code")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.pass_context
def list_entries(ctx, company: str, account: str | None, start_date: str | None, end_date: str | None):
    """List journal entries."""
    company_id = resolve_company_or_exit(ctx, company)
    ledger = get_ledger(ctx)

    try:
        start = parse_date(start_date) if start_date else None
        end = parse_date(end_date) if end_date else None
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)

    entries = ledger.list_entries(company_id, start_date=start, end_date=end, account_code=account)
    if not entries:
        click.echo("No journal entries found.")
        return

    click.echo(f"\n{'Date':<10} | {'Account':<7} | {'Debit':>12} | {'Credit':>12} | Description")
    click.echo("-" * 85)
    for e in entries:
        debit = f"{e.debit:,.2f}" if e.debit else ""
        credit = f"{e.credit:,.2f}" if e.credit else ""
        click.echo(f"{e.date} | {e.account_code:<7} | {debit:>12} | {credit:>12} | {e.description}")


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")

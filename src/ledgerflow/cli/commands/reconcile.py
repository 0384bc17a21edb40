"""Bank reconciliation command."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.cli.services import get_ledger, get_settings
from ledgerflow.domain.ingestion import load_records
from ledgerflow.domain.reconciliation import DEFAULT_MIN_CONFIDENCE, ReconciliationService


@click.command("reconcile")
@click.argument("company", metavar="COMPANY")
@click.argument("statement_file", type=click.Path(exists=True))
@click.option("--apply", "apply_matches", is_flag=True, help="Record payments and mark matches reconciled")
@click.option(
    "--min-confidence",
    type=click.IntRange(0, 100),
    default=DEFAULT_MIN_CONFIDENCE,
    show_default=True,
    help="Lowest match confidence applied with --apply",
)
@click.option("--lookback-days", type=click.IntRange(min=0), help="Candidate window before the earliest line")
@click.option("--verbose", "-v", is_flag=True, help="Show the reason for every line")
@click.pass_context
def reconcile_statement(
    ctx,
    company: str,
    statement_file: str,
    apply_matches: bool,
    min_confidence: int,
    lookback_days: int | None,
    verbose: bool,
):
    """Match a bank statement against book transactions, invoices and bills.

    Without --apply nothing is written.
    """
    company_id = resolve_company_or_exit(ctx, company)
    service = ReconciliationService(
        ctx.obj["db"],
        ledger=get_ledger(ctx),
        lookback_days=lookback_days if lookback_days is not None else get_settings(ctx).lookback_days,
    )

    try:
        results, summary = service.reconcile(company_id, load_records(statement_file))
    except (ValueError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)

    for result in results:
        line = result.raw_line
        matched = ", ".join(result.matched_record_ids) or "-"
        click.echo(
            f"{line.date} | {line.direction.value:<6} | {line.amount:>12,.2f} | "
            f"{result.match_tier.value:<9} | {result.confidence:3d} | {matched}"
        )
        if verbose:
            click.echo(f"    {result.reason}")

    click.echo(
        f"\nMatched {summary.auto_matched} of {summary.total} lines "
        f"({summary.auto_match_rate:.1f}%), {summary.unmatched} unmatched"
    )
    for tier, count in summary.breakdown.items():
        click.echo(f"  {tier}: {count}")

    if apply_matches:
        stats = service.apply(company_id, results, min_confidence=min_confidence)
        click.echo("\nApplied:")
        click.echo(f"  Invoices paid: {stats['invoices_paid']}")
        click.echo(f"  Bills paid: {stats['bills_paid']}")
        click.echo(f"  Transactions reconciled: {stats['transactions_reconciled']}")
        click.echo(f"  Skipped: {stats['skipped']}")
        for error in stats["errors"]:
            click.echo(f"    {error}", err=True)


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile_statement)

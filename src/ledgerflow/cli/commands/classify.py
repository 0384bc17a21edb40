"""Transaction classification command."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.cli.services import get_classifier
from ledgerflow.utils.date_parser import parse_date


@click.command("classify")
@click.argument("company", metavar="COMPANY")
@click.argument("description")
@click.argument("amount")
@click.option("--date", "txn_date", default="today", show_default=True, help="Transaction date")
@click.option(
    "--type",
    "direction",
    type=click.Choice(["credit", "debit"]),
    help="Money in (credit) or out (debit); inferred from the amount's sign when omitted",
)
@click.option("--no-ai", is_flag=True, help="Skip the external AI classifier")
@click.option("--verbose", "-v", is_flag=True, help="Show the reasoning of every strategy tried")
@click.pass_context
def classify_transaction(
    ctx,
    company: str,
    description: str,
    amount: str,
    txn_date: str,
    direction: str | None,
    no_ai: bool,
    verbose: bool,
):
    """Classify a single bank transaction without storing it.

    Examples:
        ledgerflow classify "Acme" "UPI-SWIGGY-ORDER-8812" 450 --type debit
        ledgerflow classify "Acme" "NEFT CR INV-1042 GLOBEX" 11800 --type credit -v
    """
    company_id = resolve_company_or_exit(ctx, company)
    service = get_classifier(ctx, use_ai=not no_ai)

    try:
        result = service.classify(
            company_id, description, amount, parse_date(txn_date), direction
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Type:        {result.type.value}")
    click.echo(f"Category:    {result.category}")
    click.echo(f"Confidence:  {result.confidence}")
    click.echo(f"Strategy:    {result.strategy}")
    if result.counterparty_name:
        click.echo(f"Counterparty: {result.counterparty_name}")
    if result.is_recurring:
        frequency = result.frequency.value if result.frequency else "unknown"
        click.echo(f"Recurring:   {frequency}")
    if result.matched_invoice_id is not None:
        click.echo(f"Invoice:     {result.matched_invoice_id}")
    if result.matched_bill_id is not None:
        click.echo(f"Bill:        {result.matched_bill_id}")
    if result.needs_review:
        click.echo("Needs review")
    if verbose:
        click.echo("\nReasoning:")
        for reason in result.reasoning:
            click.echo(f"  {reason}")


def register_commands(cli):
    """Register classify command with main CLI."""
    cli.add_command(classify_transaction)

"""Bank statement ingestion command."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.cli.services import get_classifier, get_ledger
from ledgerflow.domain.ingestion import IngestionService


@click.command("ingest")
@click.argument("company", metavar="COMPANY")
@click.argument("statement_file", type=click.Path(exists=True))
@click.option("--no-ai", is_flag=True, help="Skip the external AI classifier")
@click.option("--no-post", is_flag=True, help="Store transactions without posting them to the ledger")
@click.pass_context
def ingest_statement(ctx, company: str, statement_file: str, no_ai: bool, no_post: bool):
    """Import a parsed bank statement (JSON or CSV).

    Records need date, description and amount, plus an optional type
    (credit/debit). Each line is classified, stored and posted; lines
    already imported are skipped.
    """
    company_id = resolve_company_or_exit(ctx, company)
    service = IngestionService(
        ctx.obj["db"],
        classifier=get_classifier(ctx, use_ai=not no_ai),
        ledger=get_ledger(ctx),
        post_to_ledger=not no_post,
    )

    try:
        result = service.ingest_file(company_id, statement_file)
    except (ValueError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)

    click.echo("\nImport complete:")
    click.echo(f"  Imported: {result['imported']} transactions")
    click.echo(f"  Skipped: {result['skipped']} duplicates")
    click.echo(f"  Invoices paid: {result['invoices_paid']}")
    click.echo(f"  Bills paid: {result['bills_paid']}")
    click.echo(f"  Needs review: {result['needs_review']}")
    if result["errors"]:
        click.echo(f"  Errors: {len(result['errors'])}")
        for error in result["errors"]:
            click.echo(f"    {error}", err=True)


def register_commands(cli):
    """Register ingest command with main CLI."""
    cli.add_command(ingest_statement)

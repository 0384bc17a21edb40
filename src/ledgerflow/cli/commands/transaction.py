"""Book transaction commands."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.cli.services import get_categories, get_ledger
from ledgerflow.domain.entities import TransactionStatus
from ledgerflow.domain.transaction import TransactionService
from ledgerflow.utils.date_parser import parse_date


def _service(ctx) -> TransactionService:
    return TransactionService(ctx.obj["db"], get_categories(ctx), get_ledger(ctx))


@click.group()
def transaction_group():
    """Manage book transactions."""
    pass


@transaction_group.command("list")
@click.argument("company", metavar="COMPANY")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month', 'this year')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today', 'this month')")
@click.option("--category", help="Category name")
@click.option("--all", "include_cancelled", is_flag=True, help="Include cancelled transactions")
@click.option("--unreconciled", is_flag=True, help="Show only unreconciled transactions")
@click.option("--verbose", "-v", is_flag=True, help="Show counterparty, recurrence and unique_id")
@click.pass_context
def list_transactions(
    ctx,
    company: str,
    start_date: str | None,
    end_date: str | None,
    category: str | None,
    include_cancelled: bool,
    unreconciled: bool,
    verbose: bool,
):
    """View COMPANY's transactions with optional filters."""
    company_id = resolve_company_or_exit(ctx, company)
    service = _service(ctx)

    try:
        start = parse_date(start_date) if start_date else None
        end = parse_date(end_date) if end_date else None
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)

    if category is not None:
        category = get_categories(ctx).resolve(category) or category

    transactions = service.list_transactions(
        company_id,
        start_date=start,
        end_date=end,
        category=category,
        include_cancelled=include_cancelled,
        unreconciled_only=unreconciled,
    )
    if not transactions:
        click.echo("No transactions found.")
        return

    for txn in transactions:
        flags = ""
        if txn.is_reconciled:
            flags += " R"
        if txn.status == TransactionStatus.CANCELLED:
            flags += " X"
        click.echo(
            f"{txn.id:5d} | {txn.date} | {txn.amount:>12,.2f} | "
            f"{(txn.category or '-')[:20]:<20} | {(txn.description or '')[:40]}{flags}"
        )
        if verbose:
            frequency = txn.frequency.value if txn.frequency else "-"
            click.echo(
                f"        counterparty: {txn.counterparty_name or '-'} | "
                f"{txn.expense_type.value} ({frequency}) | {txn.unique_id}"
            )


@transaction_group.command("recategorize")
@click.argument("transaction_id", type=int)
@click.argument("category")
@click.pass_context
def recategorize_transaction(ctx, transaction_id: int, category: str):
    """Move a transaction to another category.

    Examples:
        ledgerflow transaction recategorize 12 "Meals"
    """
    service = _service(ctx)

    try:
        txn = service.recategorize(transaction_id, category)
        click.echo(f"Transaction {transaction_id} is now in '{txn.category}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("cancel")
@click.argument("transaction_id", type=int)
@click.pass_context
def cancel_transaction(ctx, transaction_id: int):
    """Cancel a transaction and reverse its postings."""
    service = _service(ctx)

    try:
        service.cancel(transaction_id)
        click.echo(f"Cancelled transaction {transaction_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("reconcile")
@click.argument("transaction_id", type=int)
@click.option("--undo", is_flag=True, help="Clear the reconciled flag instead")
@click.pass_context
def reconcile_transaction(ctx, transaction_id: int, undo: bool):
    """Mark a transaction as reconciled by hand."""
    service = _service(ctx)

    try:
        service.mark_reconciled(transaction_id, is_reconciled=not undo)
        click.echo(f"Transaction {transaction_id} {'unreconciled' if undo else 'reconciled'}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")

"""Vendor bill commands."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.cli.services import get_categories, get_ledger
from ledgerflow.domain.documents import BillService
from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date


@click.group()
def bill_group():
    """Manage vendor bills."""
    pass


@bill_group.command("create")
@click.argument("company", metavar="COMPANY")
@click.argument("number")
@click.argument("vendor")
@click.argument("amount")
@click.option("--category", help="Expense category the bill is booked to")
@click.option("--tax", default="0", help="Input GST included in the amount")
@click.option("--issue-date", help="Issue date (YYYY-MM-DD or relative like 'today'); defaults to today")
@click.option("--due-date", help="Due date (YYYY-MM-DD or relative like 'next month')")
@click.pass_context
def create_bill(
    ctx,
    company: str,
    number: str,
    vendor: str,
    amount: str,
    category: str | None,
    tax: str,
    issue_date: str | None,
    due_date: str | None,
):
    """Create a bill and post the payable.

    Examples:
        ledgerflow bill create "Acme" BILL-77 "AWS" 5900 --category Cloud --tax 900
    """
    company_id = resolve_company_or_exit(ctx, company)
    service = BillService(ctx.obj["db"], get_ledger(ctx))

    if category is not None:
        resolved = get_categories(ctx).resolve(category)
        if resolved is None:
            click.echo(f"Error: Unknown category '{category}'", err=True)
            ctx.exit(1)
        category = resolved

    try:
        bill_id = service.create_bill(
            company_id=company_id,
            number=number,
            counterparty_name=vendor,
            total_amount=parse_amount(amount),
            issue_date=parse_date(issue_date) if issue_date else None,
            due_date=parse_date(due_date) if due_date else None,
            category=category,
            tax_amount=parse_amount(tax),
        )
        click.echo(f"Created bill {number} (ID: {bill_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@bill_group.command("list")
@click.argument("company", metavar="COMPANY")
@click.option("--open", "open_only", is_flag=True, help="Show only unpaid bills")
@click.pass_context
def list_bills(ctx, company: str, open_only: bool):
    """List COMPANY's bills."""
    company_id = resolve_company_or_exit(ctx, company)
    service = BillService(ctx.obj["db"])

    bills = service.list_bills(company_id, open_only=open_only)
    if not bills:
        click.echo("No bills found.")
        return

    click.echo(f"\n{'ID':>4} | {'Number':<12} | {'Vendor':<24} | {'Total':>12} | {'Balance':>12} | Status")
    click.echo("-" * 85)
    for bill in bills:
        click.echo(
            f"{bill.id:4d} | {bill.number:<12} | {bill.counterparty_name[:24]:<24} | "
            f"{bill.total_amount:>12,.2f} | {bill.balance_amount:>12,.2f} | {bill.status}"
        )


@bill_group.command("pay")
@click.argument("bill_id", type=int)
@click.argument("amount")
@click.option("--date", "payment_date", help="Payment date (defaults to today)")
@click.pass_context
def pay_bill(ctx, bill_id: int, amount: str, payment_date: str | None):
    """Record a payment made against a bill."""
    service = BillService(ctx.obj["db"], get_ledger(ctx))

    try:
        bill = service.record_payment(
            bill_id,
            parse_amount(amount),
            payment_date=parse_date(payment_date) if payment_date else None,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Bill {bill.number}: paid {bill.paid_amount:,.2f}, "
        f"balance {bill.balance_amount:,.2f} ({bill.status})"
    )


@bill_group.command("cancel")
@click.argument("bill_id", type=int)
@click.pass_context
def cancel_bill(ctx, bill_id: int):
    """Cancel an unpaid bill and reverse its postings."""
    service = BillService(ctx.obj["db"], get_ledger(ctx))

    try:
        service.cancel_bill(bill_id)
        click.echo(f"Cancelled bill {bill_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register bill commands with main CLI."""
    cli.add_command(bill_group, name="bill")

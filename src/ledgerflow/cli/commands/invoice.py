"""Customer invoice commands."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.cli.services import get_ledger
from ledgerflow.domain.documents import InvoiceService
from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date


@click.group()
def invoice_group():
    """Manage customer invoices."""
    pass


@invoice_group.command("create")
@click.argument("company", metavar="COMPANY")
@click.argument("number")
@click.argument("customer")
@click.argument("amount")
@click.option("--tax", default="0", help="GST included in the amount")
@click.option("--intra-state", is_flag=True, help="Split GST into CGST/SGST instead of IGST")
@click.option("--issue-date", help="Issue date (YYYY-MM-DD or relative like 'today'); defaults to today")
@click.option("--due-date", help="Due date (YYYY-MM-DD or relative like 'next month')")
@click.option(
    "--status",
    type=click.Choice(["draft", "sent", "pending"]),
    default="pending",
    show_default=True,
    help="Initial status",
)
@click.pass_context
def create_invoice(
    ctx,
    company: str,
    number: str,
    customer: str,
    amount: str,
    tax: str,
    intra_state: bool,
    issue_date: str | None,
    due_date: str | None,
    status: str,
):
    """Create an invoice and post the receivable.

    Examples:
        ledgerflow invoice create "Acme" INV-1042 "Globex" 11800 --tax 1800
        ledgerflow invoice create "Acme" INV-1043 "Initech" 5000 --due-date 2026-11-30
    """
    company_id = resolve_company_or_exit(ctx, company)
    service = InvoiceService(ctx.obj["db"], get_ledger(ctx))

    try:
        invoice_id = service.create_invoice(
            company_id=company_id,
            number=number,
            counterparty_name=customer,
            total_amount=parse_amount(amount),
            issue_date=parse_date(issue_date) if issue_date else None,
            due_date=parse_date(due_date) if due_date else None,
            status=status,
            tax_amount=parse_amount(tax),
            inter_state=not intra_state,
        )
        click.echo(f"Created invoice {number} (ID: {invoice_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@invoice_group.command("list")
@click.argument("company", metavar="COMPANY")
@click.option("--open", "open_only", is_flag=True, help="Show only open invoices")
@click.pass_context
def list_invoices(ctx, company: str, open_only: bool):
    """List COMPANY's invoices."""
    company_id = resolve_company_or_exit(ctx, company)
    service = InvoiceService(ctx.obj["db"])

    invoices = service.list_invoices(company_id, open_only=open_only)
    if not invoices:
        click.echo("No invoices found.")
        return

    click.echo(f"\n{'ID':>4} | {'Number':<12} | {'Customer':<24} | {'Total':>12} | {'Balance':>12} | Status")
    click.echo("-" * 85)
    for inv in invoices:
        click.echo(
            f"{inv.id:4d} | {inv.number:<12} | {inv.counterparty_name[:24]:<24} | "
            f"{inv.total_amount:>12,.2f} | {inv.balance_amount:>12,.2f} | {inv.status}"
        )


@invoice_group.command("pay")
@click.argument("invoice_id", type=int)
@click.argument("amount")
@click.option("--date", "payment_date", help="Payment date (defaults to today)")
@click.pass_context
def pay_invoice(ctx, invoice_id: int, amount: str, payment_date: str | None):
    """Record a customer payment against an invoice."""
    service = InvoiceService(ctx.obj["db"], get_ledger(ctx))

    try:
        invoice = service.record_payment(
            invoice_id,
            parse_amount(amount),
            payment_date=parse_date(payment_date) if payment_date else None,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Invoice {invoice.number}: paid {invoice.paid_amount:,.2f}, "
        f"balance {invoice.balance_amount:,.2f} ({invoice.status})"
    )


@invoice_group.command("cancel")
@click.argument("invoice_id", type=int)
@click.pass_context
def cancel_invoice(ctx, invoice_id: int):
    """Cancel an unpaid invoice and reverse its postings."""
    service = InvoiceService(ctx.obj["db"], get_ledger(ctx))

    try:
        service.cancel_invoice(invoice_id)
        click.echo(f"Cancelled invoice {invoice_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")

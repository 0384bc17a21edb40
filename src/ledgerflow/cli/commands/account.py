"""Chart of accounts commands."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.domain.chart_of_accounts import ChartOfAccountsService
from ledgerflow.domain.entities import AccountType


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("init")
@click.argument("company", metavar="COMPANY")
@click.pass_context
def init_accounts(ctx, company: str):
    """Create any missing default accounts for COMPANY (name or ID)."""
    company_id = resolve_company_or_exit(ctx, company)
    service = ChartOfAccountsService(ctx.obj["db"])

    try:
        created = service.initialize(company_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    if created:
        click.echo(f"Created {created} accounts")
    else:
        click.echo("Chart of accounts already initialized")


@account_group.command("create")
@click.argument("company", metavar="COMPANY")
@click.argument("code")
@click.argument("name")
@click.option(
    "--type",
    "account_type",
    required=True,
    type=click.Choice([t.value for t in AccountType], case_sensitive=False),
    help="Account type",
)
@click.pass_context
def create_account(ctx, company: str, code: str, name: str, account_type: str):
    """Add an account to COMPANY's chart.

    Examples:
        ledgerflow account create "Acme" 5490 "Software Licences" --type Expense
    """
    company_id = resolve_company_or_exit(ctx, company)
    service = ChartOfAccountsService(ctx.obj["db"])

    try:
        service.create_account(company_id, code, name, account_type)
        click.echo(f"Created account {code} '{name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.argument("company", metavar="COMPANY")
@click.pass_context
def list_accounts(ctx, company: str):
    """List COMPANY's accounts with their balances."""
    company_id = resolve_company_or_exit(ctx, company)
    service = ChartOfAccountsService(ctx.obj["db"])

    accounts = service.list_accounts(company_id)
    if not accounts:
        click.echo("No accounts found. Run 'ledgerflow account init' first.")
        return

    click.echo(f"\n{'Code':<6} | {'Name':<32} | {'Type':<9} | {'Balance':>14}")
    click.echo("-" * 70)
    for acc in accounts:
        click.echo(f"{acc.code:<6} | {acc.name[:32]:<32} | {acc.type.value:<9} | {acc.balance:>14,.2f}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")

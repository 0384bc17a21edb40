"""Company management commands."""

import click
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.domain.company import CompanyService


@click.group()
def company_group():
    """Manage companies."""
    pass


@company_group.command("create")
@click.argument("name", metavar="COMPANY_NAME")
@click.option("--no-chart", is_flag=True, help="Do not seed the default chart of accounts")
@click.pass_context
def create_company(ctx, name: str, no_chart: bool):
    """Create a new company.

    The default chart of accounts is created with the company unless
    --no-chart is given.

    Examples:
        ledgerflow company create "Acme Traders"
        ledgerflow company create "Acme Traders" --no-chart
    """
    db = ctx.obj["db"]
    service = CompanyService(db)

    try:
        company_id = service.create_company(name=name, seed_chart=not no_chart)
        click.echo(f"Created company '{name.strip()}' (ID: {company_id})")
        if not no_chart:
            count = len(service.chart.list_accounts(company_id))
            click.echo(f"Seeded {count} accounts")
    except ValueError as e:
        handle_domain_error(ctx, e)


@company_group.command("list")
@click.pass_context
def list_companies(ctx):
    """List all companies."""
    db = ctx.obj["db"]
    service = CompanyService(db)

    companies = service.list_companies()
    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\nCompanies:")
    click.echo("-" * 60)
    for company in companies:
        click.echo(f"ID: {company.id:3d} | {company.name}")


def register_commands(cli):
    """Register company commands with main CLI."""
    cli.add_command(company_group, name="company")

"""Known vendor commands."""

import click
from ledgerflow.cli.company_resolution import resolve_company_or_exit
from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.cli.services import get_categories
from ledgerflow.domain.vendor import VendorService


@click.group()
def vendor_group():
    """Manage known vendors."""
    pass


@vendor_group.command("add")
@click.argument("company", metavar="COMPANY")
@click.argument("name")
@click.option("--category", help="Default category for this vendor's transactions")
@click.pass_context
def add_vendor(ctx, company: str, name: str, category: str | None):
    """Register a known vendor.

    Examples:
        ledgerflow vendor add "Acme" "Swiggy" --category Meals
    """
    company_id = resolve_company_or_exit(ctx, company)
    service = VendorService(ctx.obj["db"], get_categories(ctx))

    try:
        vendor_id = service.create_vendor(company_id, name, category)
        click.echo(f"Added vendor '{name.strip()}' (ID: {vendor_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@vendor_group.command("list")
@click.argument("company", metavar="COMPANY")
@click.option("--active", "active_only", is_flag=True, help="Show only active vendors")
@click.pass_context
def list_vendors(ctx, company: str, active_only: bool):
    """List COMPANY's known vendors."""
    company_id = resolve_company_or_exit(ctx, company)
    service = VendorService(ctx.obj["db"], get_categories(ctx))

    vendors = service.list_vendors(company_id, active_only=active_only)
    if not vendors:
        click.echo("No vendors found.")
        return

    for v in vendors:
        state = "" if v.is_active else " (inactive)"
        click.echo(f"ID: {v.id:3d} | {v.name:<30} | {v.category or '-'}{state}")


@vendor_group.command("deactivate")
@click.argument("company", metavar="COMPANY")
@click.argument("name")
@click.pass_context
def deactivate_vendor(ctx, company: str, name: str):
    """Stop using a vendor for classification."""
    company_id = resolve_company_or_exit(ctx, company)
    service = VendorService(ctx.obj["db"], get_categories(ctx))

    try:
        service.deactivate(company_id, name)
        click.echo(f"Deactivated vendor '{name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register vendor commands with main CLI."""
    cli.add_command(vendor_group, name="vendor")

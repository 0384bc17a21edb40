"""CLI helpers for company resolution."""

from __future__ import annotations

import click

from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.domain.company import CompanyService


def resolve_company_or_exit(ctx: click.Context, company: str) -> int:
    """Resolve a company name or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return CompanyService(ctx.obj["db"]).resolve(company).id
    except ValueError as exc:
        handle_domain_error(ctx, exc)

"""CLI helpers that build configured domain services from the click context."""

import click

from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.config import Settings
from ledgerflow.domain.cache import TTLCache
from ledgerflow.domain.categories import (
    CategoryTable,
    default_category_table,
    load_category_table,
)
from ledgerflow.domain.classifier import ClassificationService
from ledgerflow.domain.external_classifier import create_external_classifier
from ledgerflow.domain.ledger import LedgerService


def get_settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def get_categories(ctx: click.Context) -> CategoryTable:
    """Category table from LEDGERFLOW_CATEGORY_TABLE, or the built-in one."""
    if "categories" not in ctx.obj:
        path = get_settings(ctx).category_table
        try:
            ctx.obj["categories"] = load_category_table(path) if path else default_category_table()
        except ValueError as e:
            handle_domain_error(ctx, e)
    return ctx.obj["categories"]


def get_ledger(ctx: click.Context) -> LedgerService:
    return LedgerService(ctx.obj["db"], tolerance=get_settings(ctx).ledger_tolerance)


def get_classifier(ctx: click.Context, use_ai: bool = True) -> ClassificationService:
    """Classification service with the configured external classifier and cache."""
    settings = get_settings(ctx)
    categories = get_categories(ctx)
    external = create_external_classifier(settings, categories) if use_ai else None
    return ClassificationService(
        ctx.obj["db"],
        categories=categories,
        external=external,
        cache=TTLCache(ttl_seconds=settings.cache_ttl),
    )

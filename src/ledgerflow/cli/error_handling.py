"""CLI error handling helpers."""

import logging

import click

from ledgerflow.domain.errors import DomainError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError | FileNotFoundError) -> None:
    """Render an error on stderr and exit with status 1.

    The traceback goes to the log at DEBUG, so ``--log-level DEBUG`` shows
    where a rejected posting or lookup came from.
    """
    logger.debug("%s failed", ctx.command_path, exc_info=error)
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)

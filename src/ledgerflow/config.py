"""Configuration management for ledgerflow."""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from dotenv import load_dotenv

from ledgerflow.domain.cache import DEFAULT_TTL_SECONDS
from ledgerflow.domain.external_classifier import DEFAULT_MODEL, DEFAULT_TIMEOUT_SECONDS
from ledgerflow.domain.ledger import DEFAULT_TOLERANCE
from ledgerflow.domain.reconciliation import DEFAULT_LOOKBACK_DAYS


def clean_env_value(value: Optional[str]) -> str:
    """Strip whitespace and surrounding quotes from an environment value."""
    if not value:
        return ""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return value.strip()


@dataclass(frozen=True)
class Settings:
    """Runtime settings; every field has a working default."""

    db_path: Optional[str] = None
    log_level: str = "WARNING"
    anthropic_api_key: str = ""
    ai_model: str = DEFAULT_MODEL
    ai_timeout: float = DEFAULT_TIMEOUT_SECONDS
    cache_ttl: int = DEFAULT_TTL_SECONDS
    lookback_days: int = DEFAULT_LOOKBACK_DAYS
    ledger_tolerance: Decimal = DEFAULT_TOLERANCE
    category_table: Optional[str] = None


def _number(environ: Mapping[str, str], name: str, default, convert):
    raw = clean_env_value(environ.get(name))
    if not raw:
        return default
    try:
        return convert(raw)
    except (ValueError, InvalidOperation) as e:
        raise ValueError(f"Invalid value for {name}: '{raw}'") from e


def load_settings(
    environ: Optional[Mapping[str, str]] = None, env_file: Optional[str] = None
) -> Settings:
    """Build settings from environment variables.

    Args:
        environ: Variables to read (defaults to ``os.environ`` after loading
            ``.env``)
        env_file: Explicit ``.env`` path; the nearest ``.env`` is used otherwise

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    if environ is None:
        load_dotenv(env_file)
        environ = os.environ

    log_level = clean_env_value(environ.get("LEDGERFLOW_LOG_LEVEL")) or "WARNING"
    return Settings(
        db_path=clean_env_value(environ.get("LEDGERFLOW_DB_PATH")) or None,
        log_level=log_level.upper(),
        anthropic_api_key=clean_env_value(environ.get("ANTHROPIC_API_KEY")),
        ai_model=clean_env_value(environ.get("LEDGERFLOW_AI_MODEL")) or DEFAULT_MODEL,
        ai_timeout=_number(environ, "LEDGERFLOW_AI_TIMEOUT", DEFAULT_TIMEOUT_SECONDS, float),
        cache_ttl=_number(environ, "LEDGERFLOW_CACHE_TTL", DEFAULT_TTL_SECONDS, int),
        lookback_days=_number(environ, "LEDGERFLOW_LOOKBACK_DAYS", DEFAULT_LOOKBACK_DAYS, int),
        ledger_tolerance=_number(
            environ, "LEDGERFLOW_LEDGER_TOLERANCE", DEFAULT_TOLERANCE, Decimal
        ),
        category_table=clean_env_value(environ.get("LEDGERFLOW_CATEGORY_TABLE")) or None,
    )

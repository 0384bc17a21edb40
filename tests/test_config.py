"""Tests for settings loaded from the environment."""

from decimal import Decimal

import pytest

from ledgerflow.config import Settings, clean_env_value, load_settings


def test_defaults():
    assert load_settings(environ={}) == Settings()


def test_reads_environment():
    settings = load_settings(
        environ={
            "LEDGERFLOW_DB_PATH": "/tmp/books.db",
            "LEDGERFLOW_LOG_LEVEL": "debug",
            "ANTHROPIC_API_KEY": '"sk-test"',
            "LEDGERFLOW_AI_MODEL": "claude-haiku-4-5",
            "LEDGERFLOW_AI_TIMEOUT": "2.5",
            "LEDGERFLOW_CACHE_TTL": "60",
            "LEDGERFLOW_LOOKBACK_DAYS": "30",
            "LEDGERFLOW_LEDGER_TOLERANCE": "0",
            "LEDGERFLOW_CATEGORY_TABLE": "/tmp/categories.json",
        }
    )

    assert settings.db_path == "/tmp/books.db"
    assert settings.log_level == "DEBUG"
    assert settings.anthropic_api_key == "sk-test"
    assert settings.ai_model == "claude-haiku-4-5"
    assert settings.ai_timeout == 2.5
    assert settings.cache_ttl == 60
    assert settings.lookback_days == 30
    assert settings.ledger_tolerance == Decimal("0")
    assert settings.category_table == "/tmp/categories.json"


def test_invalid_number():
    with pytest.raises(ValueError, match="LEDGERFLOW_CACHE_TTL"):
        load_settings(environ={"LEDGERFLOW_CACHE_TTL": "an hour"})


def test_env_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("LEDGERFLOW_LOOKBACK_DAYS=14\n")
    # Registered first so the value .env adds is removed afterwards
    monkeypatch.setenv("LEDGERFLOW_LOOKBACK_DAYS", "")
    monkeypatch.delenv("LEDGERFLOW_LOOKBACK_DAYS")

    assert load_settings(env_file=str(env_file)).lookback_days == 14


@pytest.mark.parametrize(
    "raw,expected",
    [(None, ""), ("  plain ", "plain"), ("'quoted'", "quoted"), ('" spaced "', "spaced"), ('"', '"')],
)
def test_clean_env_value(raw, expected):
    assert clean_env_value(raw) == expected

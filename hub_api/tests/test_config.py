"""
Tests for hub_api/config.py
"""

from __future__ import annotations

import importlib

import pytest

from hub_api import config


@pytest.fixture
def reload_config(monkeypatch):
    """Re-read Settings after tweaking the environment, then restore."""

    def _reload():
        return importlib.reload(config).settings

    yield _reload

    monkeypatch.undo()
    importlib.reload(config)


def test_entry_ttl_read_from_environment(monkeypatch, reload_config):
    monkeypatch.setenv("RATE_LIMIT_ENTRY_TTL_MINUTES", "3")

    assert reload_config().RATE_LIMIT_ENTRY_TTL_MINUTES == 3


def test_entry_ttl_default(monkeypatch, reload_config):
    monkeypatch.delenv("RATE_LIMIT_ENTRY_TTL_MINUTES", raising=False)

    assert reload_config().RATE_LIMIT_ENTRY_TTL_MINUTES == 10


def test_unknown_token_store_rejected(monkeypatch, reload_config):
    monkeypatch.setenv("TOKEN_STORE", "redis")

    with pytest.raises(RuntimeError, match="TOKEN_STORE"):
        reload_config()


def test_postgres_store_requires_database_url(monkeypatch, reload_config):
    monkeypatch.setenv("TOKEN_STORE", "postgres")
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        reload_config()


def test_settings_cover_only_gateway_keys():
    assert not hasattr(config.settings, "PUBLIC_URL")
    assert config.settings.MAX_ACTIVE_TOKENS == 10
    assert config.settings.TOKEN_PREFIX == "sh_live_"

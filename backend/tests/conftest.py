"""Shared pytest configuration for SafeReport tests."""

import pytest

from fixtures.reports import alert_observer, alert_scheduler, report_store  # noqa: F401
from safereport.config import get_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Pin settings that change test outcomes, regardless of the local .env."""
    monkeypatch.setenv("IDENTITY_HASH_SALT", "")
    monkeypatch.setenv("CASE_TOKEN_PREFIX", "CASE")
    monkeypatch.setenv("CASE_TOKEN_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("LOG_FORMAT", "text")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

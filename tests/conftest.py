"""Shared fixtures for th tests."""

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point every config lookup at a temp dir and clear th env vars."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for name in ("TH_AUTH_FILE", "TH_MODEL", "TH_TIMEOUT", "TH_MAX_TOKENS", "TH_TEMPERATURE", "TH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "config"

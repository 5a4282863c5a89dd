"""Shared test fixtures for the chat proxy tests."""

import json
from pathlib import Path
from typing import Dict, Optional

import pytest
from fakes import FakeBackend, FakeClock

from chat_proxy.config import ChatProxyConfig, load_config


def _make_config(tmp_path: Path, overrides: Optional[Dict] = None) -> str:
    """Write a minimal test config and return its path."""
    config = {
        "port": 9000,
        "static_dir": str(tmp_path / "public"),
        "log_file": str(tmp_path / "test.log"),
        "rate_limit": {
            "window_ms": 60000,
            "max_requests": 10,
        },
        "backend": {
            "base_url": "https://backend.example.com/v1beta",
            "api_key_env": "TEST_GOOGLE_API_KEY",
            "timeout_seconds": 5,
        },
    }
    if overrides:
        config.update(overrides)

    path = tmp_path / "test_config.json"
    path.write_text(json.dumps(config))
    return str(path)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ambient environment variables out of every test."""
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("CHAT_PROXY_CONFIG", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("TEST_GOOGLE_API_KEY", raising=False)


@pytest.fixture()
def test_config_path(tmp_path: Path) -> str:
    """Return the path to a temporary test config file."""
    return _make_config(tmp_path)


@pytest.fixture()
def test_config(test_config_path: str) -> ChatProxyConfig:
    """Return a loaded test ChatProxyConfig."""
    return load_config(test_config_path)


@pytest.fixture()
def api_key(monkeypatch: pytest.MonkeyPatch) -> str:
    """Set the backend API key for the test config."""
    monkeypatch.setenv("TEST_GOOGLE_API_KEY", "test-key-123")
    return "test-key-123"


@pytest.fixture()
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()

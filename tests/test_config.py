"""Tests for Settings and the config.json store."""

import json
from pathlib import Path
from typing import Any

import pytest

from ntcli.config import DEFAULT_DOMAIN, ConfigStore, Settings

NOW_MS = 1_700_000_000_000
MINUTE_MS = 60 * 1000
WORKSPACE_ID = "team-74e4f895-5c8a-4222-ac86-ae0885506202"


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("ntcli.config._now_ms", lambda: NOW_MS)


def make_store(tmp_path: Path, config: dict[str, Any] | None = None, **settings: Any) -> ConfigStore:
    if config is not None:
        (tmp_path / "config.json").write_text(json.dumps(config), encoding="utf-8")
    return ConfigStore(Settings(config_dir=tmp_path, **settings))


def workspace_config(expires_at: int, access_token: str = "tok-123") -> dict[str, Any]:
    return {
        "version": "1.0.0",
        "workspaces": {
            "activeWorkspaceId": WORKSPACE_ID,
            "items": {
                WORKSPACE_ID: {
                    "workspace_id": WORKSPACE_ID,
                    "workspace_name": "team",
                    "access_token": access_token,
                    "token_type": "bearer",
                    "expires_at": expires_at,
                    "scope": ["mcp"],
                }
            },
        },
    }


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("NTCLI_DEBUG", "true")
    monkeypatch.setenv("NTCLI_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("NTCLI_MCP_API_URL", "http://localhost:9000")

    settings = Settings()

    assert settings.debug is True
    assert settings.config_file == tmp_path / "config.json"
    assert settings.mcp_api_url == "http://localhost:9000"


def test_missing_config_file_reads_as_empty(tmp_path: Path):
    store = make_store(tmp_path)

    assert store.get_active_workspace_id() is None
    assert store.get_domain() == DEFAULT_DOMAIN
    assert store.is_insecure() is False


def test_corrupt_config_file_reads_as_empty(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    (tmp_path / "config.json").write_text("{not json", encoding="utf-8")
    store = ConfigStore(Settings(config_dir=tmp_path))

    assert store.get_active_workspace_id() is None
    assert "Ignoring unreadable config file" in caplog.text


def test_load_is_cached_until_cleared(tmp_path: Path):
    store = make_store(tmp_path, {"domain": "first.example"})
    assert store.get_domain() == "first.example"

    (tmp_path / "config.json").write_text(json.dumps({"domain": "second.example"}), encoding="utf-8")
    assert store.get_domain() == "first.example"

    store.clear_cache()
    assert store.get_domain() == "second.example"


@pytest.mark.parametrize(
    "config, settings, expected",
    [
        ({}, {}, "https://mcp.nimbletools.ai"),
        ({"domain": "example.com"}, {}, "https://mcp.example.com"),
        ({"domain": "example.com", "insecure": True}, {}, "http://mcp.example.com"),
        ({"domain": "localhost:8080"}, {}, "http://localhost:8080"),
        ({"domain": "127.0.0.1:8080"}, {}, "http://127.0.0.1:8080"),
        ({"domain": "example.com"}, {"domain": "other.dev"}, "https://mcp.other.dev"),
        ({"insecure": True}, {"insecure": False}, "https://mcp.nimbletools.ai"),
        ({"domain": "example.com"}, {"mcp_api_url": "http://runtime.internal/"}, "http://runtime.internal"),
    ],
)
def test_mcp_api_url(tmp_path: Path, config: dict[str, Any], settings: dict[str, Any], expected: str):
    store = make_store(tmp_path, config, **settings)

    assert store.get_mcp_api_url() == expected


def test_valid_workspace_token(tmp_path: Path):
    store = make_store(tmp_path, workspace_config(expires_at=NOW_MS + 60 * MINUTE_MS))

    assert store.get_active_workspace_id() == WORKSPACE_ID
    assert store.is_workspace_token_valid(WORKSPACE_ID) is True
    assert store.get_workspace_token(WORKSPACE_ID) == "tok-123"


def test_token_inside_expiry_buffer_is_invalid(tmp_path: Path):
    store = make_store(tmp_path, workspace_config(expires_at=NOW_MS + 4 * MINUTE_MS))

    assert store.is_workspace_token_valid(WORKSPACE_ID) is False
    assert store.get_workspace_token(WORKSPACE_ID) is None


def test_no_token_placeholder_is_invalid(tmp_path: Path):
    store = make_store(tmp_path, workspace_config(expires_at=NOW_MS + 60 * MINUTE_MS, access_token="no-token"))

    assert store.get_workspace_token(WORKSPACE_ID) is None


def test_unknown_workspace_has_no_token(tmp_path: Path):
    store = make_store(tmp_path, workspace_config(expires_at=NOW_MS + 60 * MINUTE_MS))

    assert store.get_workspace("other") is None
    assert store.get_workspace_token("other") is None

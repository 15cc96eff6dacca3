"""Configuration for ntcli.

Two sources feed it:

- ``Settings``: process settings from ``NTCLI_*`` environment variables or a
  ``.env`` file
- ``ConfigStore``: the ``config.json`` document in the ntcli config directory,
  maintained by the login and workspace commands; read-only here
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = "nimbletools.ai"
NO_TOKEN = "no-token"

# Tokens expiring within this window are treated as expired
TOKEN_EXPIRY_BUFFER_MS = 5 * 60 * 1000


class Settings(BaseSettings):
    """ntcli settings.

    All settings can be configured via environment variables with the prefix NTCLI_.
    For example, NTCLI_DEBUG=true will set debug=True.
    """

    model_config = SettingsConfigDict(
        env_prefix="NTCLI_",
        env_file=".env",
        extra="ignore",
    )

    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    config_dir: Path = Field(default_factory=lambda: Path.home() / ".ntcli")

    domain: str | None = None
    """Overrides the domain stored in config.json."""

    insecure: bool | None = None
    """Use plain HTTP; overrides the flag stored in config.json."""

    mcp_api_url: str | None = None
    """Explicit MCP runtime URL; bypasses domain-based derivation."""

    @property
    def config_file(self) -> Path:
        return self.config_dir / "config.json"


class LocalWorkspace(BaseModel):
    """A workspace the user created or selected, with its access token."""

    model_config = ConfigDict(extra="allow")

    workspace_id: str
    workspace_name: str = ""
    access_token: str = NO_TOKEN
    token_type: str = "none"
    expires_at: int = 0
    """Expiry as milliseconds since the epoch."""
    scope: list[str] = Field(default_factory=list)
    jti: str | None = None


class WorkspacesConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    active_workspace_id: Annotated[str | None, Field(alias="activeWorkspaceId")] = None
    items: dict[str, LocalWorkspace] = Field(default_factory=dict)


class LocalConfig(BaseModel):
    """The unified config.json document."""

    model_config = ConfigDict(extra="allow")

    version: str = "1.0.0"
    domain: str | None = None
    insecure: bool = False
    workspaces: WorkspacesConfig = Field(default_factory=WorkspacesConfig)


def _is_local(domain: str) -> bool:
    return "localhost" in domain or "127.0.0.1" in domain


def _now_ms() -> int:
    return int(time.time() * 1000)


class ConfigStore:
    """Read access to config.json; a missing or corrupt file reads as empty."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()
        self._config: LocalConfig | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def load(self) -> LocalConfig:
        if self._config is not None:
            return self._config

        path = self._settings.config_file
        try:
            data: Any = json.loads(path.read_text(encoding="utf-8"))
            self._config = LocalConfig.model_validate(data)
        except FileNotFoundError:
            self._config = LocalConfig()
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning(f"Ignoring unreadable config file {path}: {exc}")
            self._config = LocalConfig()
        return self._config

    def clear_cache(self) -> None:
        self._config = None

    def get_domain(self) -> str:
        return self._settings.domain or self.load().domain or DEFAULT_DOMAIN

    def is_insecure(self) -> bool:
        if self._settings.insecure is not None:
            return self._settings.insecure
        return self.load().insecure

    def get_protocol(self) -> str:
        if _is_local(self.get_domain()) or self.is_insecure():
            return "http"
        return "https"

    def get_mcp_api_url(self) -> str:
        if self._settings.mcp_api_url:
            return self._settings.mcp_api_url.rstrip("/")
        domain = self.get_domain()
        if _is_local(domain):
            return f"{self.get_protocol()}://{domain}"
        return f"{self.get_protocol()}://mcp.{domain}"

    def get_active_workspace_id(self) -> str | None:
        return self.load().workspaces.active_workspace_id

    def get_workspace(self, workspace_id: str) -> LocalWorkspace | None:
        return self.load().workspaces.items.get(workspace_id)

    def is_workspace_token_valid(self, workspace_id: str) -> bool:
        workspace = self.get_workspace(workspace_id)
        if workspace is None or not workspace.access_token or workspace.access_token == NO_TOKEN:
            return False
        return workspace.expires_at > _now_ms() + TOKEN_EXPIRY_BUFFER_MS

    def get_workspace_token(self, workspace_id: str) -> str | None:
        if not self.is_workspace_token_valid(workspace_id):
            return None
        workspace = self.get_workspace(workspace_id)
        return workspace.access_token if workspace else None

"""Resolution of MCP endpoints on the NimbleTools MCP runtime.

Turns a workspace and server identifier into the endpoint URL and bearer
token an MCPClient is constructed with, and wraps the runtime's per-server
health endpoint.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from ntcli.config import ConfigStore
from ntcli.shared.exceptions import MCPRuntimeError, WorkspaceNotFoundError
from ntcli.shared.httpx_utils import McpHttpClientFactory, create_mcp_http_client
from ntcli.types import CLIENT_NAME, CLIENT_VERSION

logger = logging.getLogger(__name__)

_UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def extract_workspace_uuid(workspace_id: str) -> str:
    """Strip the human-readable prefix from a workspace id.

    "team-74e4f895-5c8a-4222-ac86-ae0885506202" becomes
    "74e4f895-5c8a-4222-ac86-ae0885506202". Ids that already are a UUID, or
    have fewer than five dash-separated parts, are returned unchanged.
    """
    if _UUID_PATTERN.match(workspace_id):
        return workspace_id
    parts = workspace_id.split("-")
    if len(parts) >= 5:
        return "-".join(parts[-5:])
    return workspace_id


@dataclass(frozen=True)
class ServerConnection:
    """Everything needed to open an MCP session with one deployed server."""

    workspace_id: str
    server_id: str
    endpoint_url: str
    auth_token: str | None


class MCPRuntimeClient:
    """HTTP client for the MCP runtime's per-server endpoints."""

    def __init__(
        self,
        base_url: str,
        auth_token: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        http_client_factory: McpHttpClientFactory = create_mcp_http_client,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._http_client = http_client
        self._http_client_factory = http_client_factory

    @property
    def base_url(self) -> str:
        return self._base_url

    def get_mcp_endpoint(self, workspace_id: str, server_id: str) -> str:
        return f"{self._base_url}/{extract_workspace_uuid(workspace_id)}/{server_id}/mcp"

    def get_health_endpoint(self, workspace_id: str, server_id: str) -> str:
        return f"{self._base_url}/{extract_workspace_uuid(workspace_id)}/{server_id}/health"

    async def check_health(self, workspace_id: str, server_id: str) -> dict[str, Any]:
        """Query the health endpoint of a deployed server.

        Raises:
            MCPRuntimeError: on HTTP error statuses and network failures.
        """
        return await self._request("GET", self.get_health_endpoint(workspace_id, server_id))

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"{CLIENT_NAME}/{CLIENT_VERSION}",
        }
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    async def _request(self, method: str, url: str) -> dict[str, Any]:
        headers = self._build_headers()
        logger.debug(f"{method} {url}")
        try:
            if self._http_client is not None:
                response = await self._http_client.request(method, url, headers=headers)
            else:
                async with self._http_client_factory() as client:
                    response = await client.request(method, url, headers=headers)
        except httpx.HTTPError as exc:
            raise MCPRuntimeError(
                "Network error - unable to connect to MCP runtime", 0, "NETWORK_ERROR", str(exc)
            ) from exc

        text = response.text
        logger.debug(f"Response {response.status_code}: {text}")

        if not text:
            if response.is_success:
                return {}
            raise MCPRuntimeError("Empty response from server", response.status_code)

        try:
            data = json.loads(text)
        except ValueError as exc:
            if response.is_success:
                return {"status": text}
            raise MCPRuntimeError(f"Invalid JSON response: {text}", response.status_code) from exc

        if not response.is_success:
            error = data.get("error") if isinstance(data, dict) else None
            error = error if isinstance(error, dict) else {}
            raise MCPRuntimeError(
                error.get("message") or text or f"HTTP {response.status_code}",
                response.status_code,
                error.get("code") or "UNKNOWN_ERROR",
                error.get("details"),
            )

        return data if isinstance(data, dict) else {"status": data}


def resolve_connection(
    store: ConfigStore,
    server_id: str,
    workspace_id: str | None = None,
) -> ServerConnection:
    """Resolve the MCP endpoint and bearer token for a server.

    Uses ``workspace_id`` when given, otherwise the active workspace. The
    token is None when the workspace has no valid (unexpired) token.

    Raises:
        WorkspaceNotFoundError: if no workspace was given and none is active.
    """
    workspace_id = workspace_id or store.get_active_workspace_id()
    if not workspace_id:
        raise WorkspaceNotFoundError("No active workspace. Create or select one with `ntcli workspace`.")

    runtime = MCPRuntimeClient(store.get_mcp_api_url())
    endpoint_url = runtime.get_mcp_endpoint(workspace_id, server_id)
    logger.debug(f"Resolved MCP endpoint for {server_id}: {endpoint_url}")
    return ServerConnection(
        workspace_id=workspace_id,
        server_id=server_id,
        endpoint_url=endpoint_url,
        auth_token=store.get_workspace_token(workspace_id),
    )

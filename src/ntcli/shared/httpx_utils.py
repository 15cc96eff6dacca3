"""Utilities for creating standardized httpx AsyncClient instances."""

from __future__ import annotations

from typing import Any, Protocol

import httpx

__all__ = ["McpHttpClientFactory", "create_mcp_http_client"]


class McpHttpClientFactory(Protocol):
    def __call__(
        self,
        *,
        headers: dict[str, str] | None = None,
        timeout: httpx.Timeout | float | None = None,
    ) -> httpx.AsyncClient: ...


def create_mcp_http_client(
    *,
    headers: dict[str, str] | None = None,
    timeout: httpx.Timeout | float | None = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """Create an httpx AsyncClient with ntcli defaults.

    - follow_redirects=True (always enabled)
    - no timeout unless one is given; a caller that wants calls to a hung
      server to fail must pass one

    Args:
        headers: Optional headers to include with all requests.
        timeout: Request timeout in seconds or as httpx.Timeout. None disables
            timeouts entirely, including httpx's own default.
        **kwargs: Additional keyword arguments to pass to AsyncClient.

    Returns:
        Configured httpx.AsyncClient instance.

    Note:
        The returned AsyncClient must be used as a context manager to ensure
        proper cleanup of connections.

    Examples:
        async with create_mcp_http_client() as client:
            response = await client.post("https://mcp.nimbletools.ai/ws/srv/mcp", json={...})

        async with create_mcp_http_client(timeout=httpx.Timeout(10.0, read=60.0)) as client:
            response = await client.get("/health")
    """
    kwargs["follow_redirects"] = True
    kwargs["timeout"] = timeout if isinstance(timeout, httpx.Timeout) else httpx.Timeout(timeout)
    if headers is not None:
        kwargs["headers"] = headers
    return httpx.AsyncClient(**kwargs)

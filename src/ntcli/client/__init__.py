"""MCP Client module."""

from ntcli.client.runtime import MCPRuntimeClient, ServerConnection, resolve_connection
from ntcli.client.session import MCPClient, TraceEvent

__all__ = ["MCPClient", "MCPRuntimeClient", "ServerConnection", "TraceEvent", "resolve_connection"]

"""Command line client for MCP servers deployed on NimbleTools.

The protocol-level piece is ``MCPClient``: a JSON-RPC 2.0 client for the MCP
HTTP transport that performs the initialize handshake, lists tools and calls
them.

## Example

```python
import anyio
from ntcli import MCPClient

async def main():
    client = MCPClient("https://mcp.nimbletools.ai/<workspace>/<server>/mcp", "<token>")
    await client.initialize()
    for tool in await client.list_tools():
        print(tool.name)
    result = await client.call_tool("echo", {"message": "hello"})
    print(result.is_error, result.content)

anyio.run(main)
```
"""

from ntcli.client.runtime import MCPRuntimeClient, ServerConnection, extract_workspace_uuid, resolve_connection
from ntcli.client.session import MCPClient, TraceEvent, TraceFnT
from ntcli.shared.exceptions import ClientNotInitializedError, MCPError, MCPRuntimeError, WorkspaceNotFoundError
from ntcli.types import (
    PROTOCOL_VERSION,
    CallToolResult,
    ErrorData,
    Implementation,
    InitializeResult,
    TextContent,
    Tool,
)

__all__ = [
    "PROTOCOL_VERSION",
    "CallToolResult",
    "ClientNotInitializedError",
    "ErrorData",
    "Implementation",
    "InitializeResult",
    "MCPClient",
    "MCPError",
    "MCPRuntimeClient",
    "MCPRuntimeError",
    "ServerConnection",
    "TextContent",
    "Tool",
    "TraceEvent",
    "TraceFnT",
    "WorkspaceNotFoundError",
    "extract_workspace_uuid",
    "resolve_connection",
]

"""Handshake outcome and request-id counter for a single MCP session.

A SessionState belongs to exactly one MCPClient and lives only as long as that
client; nothing here is persisted.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ntcli.types import Implementation


class SessionState(BaseModel):
    """Mutable state of an MCP session.

    Attributes:
        initialized: True once the server acknowledged an initialize request
        protocol_version: Protocol version the server answered with
        server_info: Server name and version from initialization
        server_capabilities: Server capabilities from initialization (as dict)
        session_id: Opaque identifier issued by the server, first write wins
        next_request_id: The id the next request or notification will use
    """

    initialized: bool = False
    protocol_version: str | None = None
    server_info: Implementation | None = None
    server_capabilities: dict[str, Any] | None = None
    session_id: str | None = None
    next_request_id: int = Field(default=1, ge=1)

    def next_id(self) -> int:
        """Return the current request id and advance the counter."""
        request_id = self.next_request_id
        self.next_request_id += 1
        return request_id

    def record_initialize_result(
        self,
        protocol_version: str,
        server_info: Implementation,
        capabilities: dict[str, Any],
        session_id: str | None = None,
    ) -> None:
        self.protocol_version = protocol_version
        self.server_info = server_info
        self.server_capabilities = capabilities
        if session_id:
            self.record_session_id(session_id)
        self.initialized = True

    def record_session_id(self, candidate: str | None) -> bool:
        """Store ``candidate`` unless a session id is already known.

        Returns:
            True if the candidate was stored.
        """
        if not candidate or self.session_id is not None:
            return False
        self.session_id = candidate
        return True

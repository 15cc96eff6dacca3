from __future__ import annotations

from typing import Any

from ntcli.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    ErrorData,
)

_USER_MESSAGES: dict[int, str] = {
    PARSE_ERROR: "Invalid JSON in MCP request or response",
    INVALID_REQUEST: "Invalid MCP request format",
    METHOD_NOT_FOUND: "MCP method not found",
    INVALID_PARAMS: "Invalid MCP method parameters",
    INTERNAL_ERROR: "Internal MCP server error",
    SERVER_ERROR: "MCP server error",
}

_HTTP_STATUS_MESSAGES: dict[int, str] = {
    502: "MCP server is not accessible (502 Bad Gateway) - server may be down or misconfigured",
    503: "MCP server is temporarily unavailable (503 Service Unavailable)",
    504: "MCP server request timed out (504 Gateway Timeout)",
}


class MCPError(Exception):
    """Exception raised when an MCP exchange fails.

    Covers errors reported by the remote peer (the ``error`` member of a
    JSON-RPC response) as well as failures the client detected itself while
    talking to it: undecodable bodies, HTTP error statuses and network
    failures. The peer's code, message and data are passed through unchanged.

    Attributes:
        error: The ErrorData describing the failure
    """

    error: ErrorData

    def __init__(self, error: ErrorData):
        super().__init__(error.message)
        self.error = error

    @classmethod
    def from_code(cls, code: int, message: str, data: Any = None) -> MCPError:
        return cls(ErrorData(code=code, message=message, data=data))

    @classmethod
    def from_http_status(cls, status_code: int, reason: str = "") -> MCPError:
        """Build an error for an HTTP failure that carried no JSON-RPC error body."""
        message = _HTTP_STATUS_MESSAGES.get(status_code)
        if message is None:
            message = f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}"
        return cls.from_code(status_code, message)

    @property
    def code(self) -> int:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def data(self) -> Any:
        return self.error.data

    def is_error_code(self, code: int) -> bool:
        """Check whether this error carries exactly the given code."""
        return self.error.code == code

    def user_message(self) -> str:
        """Short description suitable for display; unknown codes fall back to the raw message."""
        return _USER_MESSAGES.get(self.error.code, self.error.message)


class ClientNotInitializedError(RuntimeError):
    """Raised locally when a session method is used before initialize() succeeded."""

    def __init__(self, method: str):
        super().__init__("MCP client not initialized. Call initialize() first.")
        self.method = method


class MCPRuntimeError(Exception):
    """Exception raised by the MCP runtime REST API (health checks and the like)."""

    def __init__(
        self,
        message: str,
        status_code: int,
        error_code: str | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details

    def is_auth_error(self) -> bool:
        return self.status_code == 401

    def is_not_found_error(self) -> bool:
        return self.status_code == 404

    def user_message(self) -> str:
        match self.error_code:
            case "NETWORK_ERROR":
                return "Unable to connect to MCP runtime. Please check your internet connection."
            case "SERVER_NOT_FOUND":
                return "MCP server not found or not accessible"
            case "SERVER_UNAVAILABLE":
                return "MCP server is currently unavailable"
            case _:
                pass
        if self.is_auth_error():
            return "Authentication failed - please refresh your workspace token using `ntcli token refresh`"
        if self.is_not_found_error():
            return "MCP server endpoint not found"
        if self.status_code >= 500:
            return "MCP runtime error - please try again later"
        return self.message


class WorkspaceNotFoundError(Exception):
    """Raised when no workspace was given and none is active in the local config."""

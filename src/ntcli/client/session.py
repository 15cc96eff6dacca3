"""MCP client for a single remote tool server.

Each public coroutine performs exactly one HTTP POST to the session endpoint
and waits for its answer. Requests are never pipelined, retried, or given a
timeout unless the caller configured one.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

import ntcli.types as types
from ntcli.shared.codec import (
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_SSE,
    MCP_SESSION_ID_HEADER,
    decode_response,
    encode_message,
    extract_session_id,
)
from ntcli.shared.exceptions import ClientNotInitializedError, MCPError
from ntcli.shared.httpx_utils import McpHttpClientFactory, create_mcp_http_client
from ntcli.shared.session_state import SessionState

DEFAULT_CLIENT_INFO = types.Implementation(name=types.CLIENT_NAME, version=types.CLIENT_VERSION)

NETWORK_ERROR_MESSAGE = "Network error: Unable to connect to MCP server. Please check the server is running."

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


@dataclass
class TraceEvent:
    """One step of an MCP exchange, reported to an attached trace callback."""

    kind: Literal["request", "notification", "response", "error"]
    method: str
    payload: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    status_code: int | None = None
    body: str | None = None
    error: BaseException | None = None


class TraceFnT(Protocol):
    def __call__(self, event: TraceEvent) -> None: ...  # pragma: no branch


class MCPClient:
    """Client side of one MCP session over HTTP.

    Example:
        ```python
        client = MCPClient("https://mcp.nimbletools.ai/<workspace>/<server>/mcp", token)
        await client.initialize()
        tools = await client.list_tools()
        result = await client.call_tool("echo", {"message": "hi"})
        if result.is_error:
            ...
        ```

    ``initialize()`` must succeed before ``list_tools()`` or ``call_tool()``;
    both fail locally with ClientNotInitializedError otherwise. An instance is
    not safe for overlapping concurrent calls.
    """

    def __init__(
        self,
        endpoint_url: str,
        auth_token: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        http_client_factory: McpHttpClientFactory = create_mcp_http_client,
        timeout: httpx.Timeout | float | None = None,
        trace_callback: TraceFnT | None = None,
        client_info: types.Implementation | None = None,
    ) -> None:
        """
        Args:
            endpoint_url: URL every request and notification is POSTed to.
            auth_token: Optional bearer token sent as the Authorization header.
            http_client: Optional pre-configured client, used for every exchange
                and never closed by MCPClient. Without it a short-lived client
                is opened per exchange.
            http_client_factory: Factory for the per-exchange clients.
            timeout: Timeout for per-exchange clients. None means wait forever.
                Ignored when http_client is given.
            trace_callback: Receives a TraceEvent for every message sent,
                response received and failure observed.
            client_info: Name and version announced during initialization.
        """
        self._endpoint_url = endpoint_url
        self._auth_token = auth_token
        self._http_client = http_client
        self._http_client_factory = http_client_factory
        self._timeout = timeout
        self._trace_callback = trace_callback
        self._client_info = client_info or DEFAULT_CLIENT_INFO
        self._state = SessionState()

    @property
    def endpoint_url(self) -> str:
        return self._endpoint_url

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._state.initialized

    @property
    def session_id(self) -> str | None:
        return self._state.session_id

    @property
    def protocol_version(self) -> str | None:
        return self._state.protocol_version

    @property
    def server_info(self) -> types.Implementation | None:
        """Server name and version; None before initialization."""
        return self._state.server_info

    @property
    def server_capabilities(self) -> dict[str, Any] | None:
        """Server capabilities; None before initialization."""
        return self._state.server_capabilities

    def set_auth_token(self, token: str | None) -> None:
        self._auth_token = token

    async def initialize(self) -> types.InitializeResult:
        """Perform the initialize handshake.

        On success the session becomes initialized and a
        ``notifications/initialized`` notification is sent on a best-effort
        basis. On failure the session stays uninitialized and the error
        propagates.
        """
        params = types.InitializeRequestParams(
            protocol_version=types.PROTOCOL_VERSION,
            capabilities=types.ClientCapabilities(tools={}, resources={}, prompts={}),
            client_info=self._client_info,
        )
        raw_result = await self._send_request(
            "initialize", params.model_dump(by_alias=True, mode="json", exclude_none=True)
        )
        result = self._validate_result("initialize", types.InitializeResult, raw_result)

        self._state.record_initialize_result(
            protocol_version=result.protocol_version,
            server_info=result.server_info,
            capabilities=result.capabilities.model_dump(by_alias=True, mode="json", exclude_none=True),
            session_id=result.session_id,
        )
        logger.debug(f"Initialized MCP session with {result.server_info.name} {result.server_info.version}")

        await self._send_notification_best_effort("notifications/initialized")
        return result

    async def list_tools(self) -> list[types.Tool]:
        """Send a tools/list request."""
        self._check_initialized("list_tools")
        raw_result = await self._send_request("tools/list")
        return self._validate_result("tools/list", types.ListToolsResult, raw_result).tools

    async def call_tool(
        self,
        name: str,
        arguments: Mapping[str, types.JSONValue] | None = None,
    ) -> types.CallToolResult:
        """Send a tools/call request.

        The tool name is not checked against list_tools(); the server decides.
        A tool that fails reports it through ``result.is_error``, which is not
        raised as an exception.
        """
        self._check_initialized("call_tool")
        params = types.CallToolRequestParams(name=name, arguments=dict(arguments or {}))
        raw_result = await self._send_request(
            "tools/call", params.model_dump(by_alias=True, mode="json", exclude_none=True)
        )
        return self._validate_result("tools/call", types.CallToolResult, raw_result)

    async def send_raw_request(self, method: str, params: dict[str, Any] | None = None) -> types.JSONValue:
        """Send an arbitrary request and return its raw result.

        Unlike the typed methods this does not require initialization.
        """
        return await self._send_request(method, params if params is not None else {})

    def _check_initialized(self, method: str) -> None:
        if not self._state.initialized:
            raise ClientNotInitializedError(method)

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": CONTENT_TYPE_JSON,
            "Accept": f"{CONTENT_TYPE_JSON}, {CONTENT_TYPE_SSE}",
        }
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        if self._state.session_id:
            headers[MCP_SESSION_ID_HEADER] = self._state.session_id
        return headers

    def _trace(self, event: TraceEvent) -> None:
        if self._trace_callback is not None:
            self._trace_callback(event)

    async def _post(self, method: str, message: BaseModel) -> httpx.Response:
        """POST one message and return the fully read response.

        Raises:
            MCPError: with code INTERNAL_ERROR when the exchange itself failed.
        """
        headers = self._build_headers()
        content = encode_message(message)
        self._trace(
            TraceEvent(
                kind="request" if isinstance(message, types.JSONRPCRequest) else "notification",
                method=method,
                payload=message.model_dump(by_alias=True, mode="json", exclude_none=True),
                headers=headers,
            )
        )

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self._endpoint_url, content=content, headers=headers)
            else:
                async with self._http_client_factory(timeout=self._timeout) as client:
                    response = await client.post(self._endpoint_url, content=content, headers=headers)
        except httpx.TimeoutException as exc:
            error = MCPError.from_code(types.INTERNAL_ERROR, "MCP server request timed out", str(exc))
            self._trace(TraceEvent(kind="error", method=method, error=exc))
            raise error from exc
        except httpx.HTTPError as exc:
            error = MCPError.from_code(types.INTERNAL_ERROR, NETWORK_ERROR_MESSAGE, str(exc))
            self._trace(TraceEvent(kind="error", method=method, error=exc))
            raise error from exc
        except httpx.InvalidURL as exc:
            self._trace(TraceEvent(kind="error", method=method, error=exc))
            raise MCPError.from_code(types.INTERNAL_ERROR, str(exc)) from exc

        self._state.record_session_id(extract_session_id(response.headers))
        self._trace(
            TraceEvent(
                kind="response",
                method=method,
                headers=dict(response.headers),
                status_code=response.status_code,
                body=response.text,
            )
        )
        return response

    async def _send_request(self, method: str, params: dict[str, Any] | None = None) -> types.JSONValue:
        request = types.JSONRPCRequest(id=self._state.next_id(), method=method, params=params)
        response = await self._post(method, request)
        content_type = response.headers.get("content-type")

        if not response.is_success:
            try:
                envelope = decode_response(response.text, content_type)
            except MCPError:
                envelope = None
            if isinstance(envelope, types.JSONRPCErrorResponse):
                raise MCPError(envelope.error)
            raise MCPError.from_http_status(response.status_code, response.reason_phrase)

        envelope = decode_response(response.text, content_type)
        if isinstance(envelope, types.JSONRPCErrorResponse):
            raise MCPError(envelope.error)
        return envelope.result

    async def _send_notification_best_effort(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification without letting any failure reach the caller.

        A notification has no reply, so there is nothing to verify; errors are
        logged at debug level and dropped, and the response status is ignored.
        """
        notification = types.JSONRPCNotification(method=method, params=params)
        try:
            response = await self._post(method, notification)
        except Exception as exc:
            logger.debug(f"Ignoring failed {method} notification: {exc!r}")
            return
        if not response.is_success:
            logger.debug(f"Ignoring {response.status_code} response to {method} notification")

    def _validate_result(self, method: str, result_type: type[ResultT], result: types.JSONValue) -> ResultT:
        try:
            return result_type.model_validate(result)
        except ValidationError as exc:
            raise MCPError.from_code(
                types.INTERNAL_ERROR,
                f"Invalid {method} result from MCP server: {exc.error_count()} validation error(s)",
                result,
            ) from exc

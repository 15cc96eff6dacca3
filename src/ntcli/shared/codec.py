"""Encoding and decoding of JSON-RPC messages on the MCP HTTP transport.

Responses arrive in one of two framings, chosen by the server and announced
through the response content type:

- a bare JSON document (``application/json``)
- Server-Sent Events (``text/event-stream``, some servers say ``text/plain``)
  where the JSON payload sits on a ``data:`` line

Only the first ``data:`` line of an event stream is used; any further events
in the same body are ignored.
"""

import json
import logging
from collections.abc import Mapping

from pydantic import BaseModel, ValidationError

from ntcli.shared.exceptions import MCPError
from ntcli.types import PARSE_ERROR, JSONRPCErrorResponse, JSONRPCResponse, JSONRPCResultResponse

logger = logging.getLogger(__name__)

# Header names
MCP_SESSION_ID_HEADER = "mcp-session-id"
SESSION_ID_HEADERS: tuple[str, ...] = (MCP_SESSION_ID_HEADER, "x-session-id", "session-id")

# Content types
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_SSE = "text/event-stream"
CONTENT_TYPE_TEXT = "text/plain"

SSE_DATA_PREFIX = "data:"


def encode_message(message: BaseModel) -> bytes:
    """Serialize a request or notification to UTF-8 JSON."""
    return message.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


def is_event_stream(content_type: str | None) -> bool:
    content_type = (content_type or "").lower()
    return CONTENT_TYPE_SSE in content_type or CONTENT_TYPE_TEXT in content_type


def extract_sse_data(text: str) -> str | None:
    """Return the payload of the first ``data:`` line, stripped, or None."""
    for line in text.split("\n"):
        if line.startswith(SSE_DATA_PREFIX):
            return line[len(SSE_DATA_PREFIX) :].strip()
    return None


def decode_response(text: str, content_type: str | None) -> JSONRPCResponse:
    """Decode a response body into a result or error envelope.

    Raises:
        MCPError: with code PARSE_ERROR and the raw body as data when the body
            cannot be decoded into a JSON-RPC response.
    """
    if is_event_stream(content_type):
        payload = extract_sse_data(text)
        if payload is None:
            raise MCPError.from_code(PARSE_ERROR, "No data line found in SSE response", text)
    else:
        payload = text

    try:
        decoded = json.loads(payload)
    except ValueError as exc:
        raise MCPError.from_code(PARSE_ERROR, f"Invalid JSON response: {text}", text) from exc

    if not isinstance(decoded, dict):
        raise MCPError.from_code(PARSE_ERROR, f"Invalid JSON-RPC response: {text}", text)

    try:
        if "error" in decoded:
            return JSONRPCErrorResponse.model_validate(decoded)
        return JSONRPCResultResponse.model_validate(decoded)
    except ValidationError as exc:
        logger.debug(f"Response failed envelope validation: {exc}")
        raise MCPError.from_code(PARSE_ERROR, f"Invalid JSON-RPC response: {text}", text) from exc


def extract_session_id(headers: Mapping[str, str]) -> str | None:
    """Return the first session identifier header present on a response."""
    for name in SESSION_ID_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None

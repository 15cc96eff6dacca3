"""Loopback MCP server and JSON-RPC response builders shared by the tests."""

import json
from collections.abc import Callable
from typing import Any

import httpx

TEST_ENDPOINT = "http://testserver/ws/echo/mcp"

ResponseFactory = Callable[[dict[str, Any]], httpx.Response]


def jsonrpc_result(request: dict[str, Any], result: Any, **kwargs: Any) -> httpx.Response:
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": request["id"], "result": result}, **kwargs)


def jsonrpc_error(request: dict[str, Any], code: int, message: str, status_code: int = 200) -> httpx.Response:
    body = {"jsonrpc": "2.0", "id": request["id"], "error": {"code": code, "message": message}}
    return httpx.Response(status_code, json=body)


INITIALIZE_RESULT = {
    "protocolVersion": "2024-11-05",
    "capabilities": {"tools": {}},
    "serverInfo": {"name": "echo", "version": "1.0"},
}


class FakeMCPServer:
    """Loopback MCP server for httpx.MockTransport.

    Answers initialize with INITIALIZE_RESULT, accepts notifications with 202
    and delegates every other method to the registered handlers.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handlers: dict[str, ResponseFactory] = {
            "initialize": lambda request: jsonrpc_result(request, INITIALIZE_RESULT),
        }

    @property
    def messages(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]

    @property
    def methods(self) -> list[str]:
        return [message["method"] for message in self.messages]

    def on(self, method: str, factory: ResponseFactory) -> None:
        self.handlers[method] = factory

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        message = json.loads(request.content)
        if "id" not in message:
            return httpx.Response(202)
        handler = self.handlers.get(message["method"])
        if handler is None:
            return jsonrpc_error(message, -32601, f"Method not found: {message['method']}")
        return handler(message)

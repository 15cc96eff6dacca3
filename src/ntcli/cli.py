"""ntcli command line: talk to MCP servers deployed on NimbleTools."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any, TypeVar

import anyio
import click

from ntcli.client.runtime import MCPRuntimeClient, ServerConnection, resolve_connection
from ntcli.client.session import MCPClient, TraceEvent
from ntcli.config import ConfigStore, Settings
from ntcli.shared.exceptions import ClientNotInitializedError, MCPError, MCPRuntimeError, WorkspaceNotFoundError
from ntcli.shared.httpx_utils import create_mcp_http_client
from ntcli.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, JSONValue, TextContent, Tool
from ntcli.utilities.logging import configure_logging, redact_sensitive_data

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CliContext:
    settings: Settings
    store: ConfigStore
    debug: bool = False


def log_trace(event: TraceEvent) -> None:
    """Trace callback that logs MCP traffic with credentials masked."""
    headers = redact_sensitive_data(event.headers)
    match event.kind:
        case "request" | "notification":
            logger.debug(f"MCP {event.kind}: {event.method} {json.dumps(event.payload)} headers={headers}")
        case "response":
            logger.debug(f"MCP response to {event.method}: {event.status_code} headers={headers} body={event.body}")
        case "error":
            logger.debug(f"MCP {event.method} failed: {event.error!r}")


def parse_tool_arguments(
    positional: tuple[str, ...] = (),
    options: tuple[str, ...] = (),
    json_text: str | None = None,
) -> dict[str, JSONValue]:
    """Build tool arguments from ``--json``, else ``--arg`` pairs, else positional pairs.

    Each ``key=value`` value is parsed as JSON when possible and kept as a
    string otherwise; only the first ``=`` separates key from value.
    """
    if json_text:
        try:
            parsed = json.loads(json_text)
        except ValueError as exc:
            raise click.BadParameter(
                f"""Failed to parse JSON arguments. Example: --json '{{"param1": "value1", "param2": 123}}'""",
                param_hint="--json",
            ) from exc
        if not isinstance(parsed, dict):
            raise click.BadParameter("JSON arguments must be an object", param_hint="--json")
        return parsed

    pairs = options or positional
    arguments: dict[str, JSONValue] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not key or not sep:
            raise click.BadParameter(f"Invalid argument: {pair}. Use format: key=value")
        try:
            arguments[key] = json.loads(value)
        except ValueError:
            arguments[key] = value
    return arguments


def _run(ctx: CliContext, func: Callable[..., Awaitable[T]], *args: Any) -> T:
    """Run a command coroutine, turning known failures into a message and exit status 1."""
    try:
        return anyio.run(partial(func, ctx, *args))
    except MCPError as exc:
        click.secho(f"Error: {exc.user_message()}", fg="red", err=True)
        if exc.message != exc.user_message():
            click.secho(f"  {exc.message}", fg="red", err=True)
        if ctx.debug and exc.data is not None:
            click.secho(f"  Details: {json.dumps(exc.data, indent=2, default=str)}", fg="bright_black", err=True)
        for hint in _hints_for(exc, *args):
            click.secho(f"  {hint}", fg="yellow", err=True)
    except MCPRuntimeError as exc:
        click.secho(f"Error: {exc.user_message()}", fg="red", err=True)
    except (WorkspaceNotFoundError, ClientNotInitializedError) as exc:
        click.secho(f"Error: {exc}", fg="red", err=True)
    raise SystemExit(1)


def _hints_for(error: MCPError, *args: Any) -> list[str]:
    server_id = args[0] if args else "<server-id>"
    if error.is_error_code(INVALID_PARAMS):
        return [
            "Check the tool parameters - they may be invalid",
            f"Use `ntcli mcp tools {server_id} --verbose` to see parameter schemas",
        ]
    if error.is_error_code(METHOD_NOT_FOUND):
        return [f"Use `ntcli mcp tools {server_id}` to see available tools"]
    if error.is_error_code(INTERNAL_ERROR):
        return ["Check that the MCP server is running and accessible"]
    return []


def _open_client(ctx: CliContext, server_id: str, workspace_id: str | None) -> tuple[MCPClient, ServerConnection]:
    connection = resolve_connection(ctx.store, server_id, workspace_id)
    if connection.auth_token is None:
        logger.warning(f"No valid token for workspace {connection.workspace_id}; connecting without one")
    client = MCPClient(
        connection.endpoint_url,
        connection.auth_token,
        http_client_factory=create_mcp_http_client,
        trace_callback=log_trace if ctx.debug else None,
    )
    return client, connection


def _format_tool(tool: Tool, verbose: bool) -> list[str]:
    lines = [click.style(tool.name, fg="cyan", bold=True)]
    if tool.description:
        lines.append(f"    {tool.description}")
    if verbose:
        properties = tool.input_schema.properties or {}
        required = set(tool.input_schema.required or [])
        if not properties:
            lines.append("    (no parameters)")
        for name, schema in properties.items():
            schema = schema if isinstance(schema, dict) else {}
            marker = " (required)" if name in required else ""
            kind = schema.get("type", "any")
            description = f" - {schema['description']}" if schema.get("description") else ""
            lines.append(f"    {name}: {kind}{marker}{description}")
    return lines


@click.group()
@click.option("--debug", is_flag=True, default=False, help="Log MCP traffic to stderr.")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """ntcli - command line client for NimbleTools MCP servers."""
    settings = Settings()
    debug = debug or settings.debug
    configure_logging("DEBUG" if debug else settings.log_level)
    ctx.obj = CliContext(settings=settings, store=ConfigStore(settings), debug=debug)


@cli.group()
def mcp() -> None:
    """Connect to, inspect and call MCP servers."""


async def _connect(ctx: CliContext, server_id: str, workspace_id: str | None) -> None:
    client, connection = _open_client(ctx, server_id, workspace_id)
    result = await client.initialize()

    click.secho(f"Connected to MCP server {server_id}", fg="green", bold=True)
    click.echo(f"  Endpoint: {connection.endpoint_url}")
    click.echo(f"  Server: {result.server_info.name} {result.server_info.version}")
    click.echo(f"  Protocol: {result.protocol_version}")
    capabilities = sorted(client.server_capabilities or {})
    click.echo(f"  Capabilities: {', '.join(capabilities) if capabilities else '(none)'}")
    if client.session_id:
        click.echo(f"  Session: {client.session_id}")
    click.echo()
    click.secho("Next steps:", fg="cyan")
    click.echo(f"  ntcli mcp tools {server_id}")


@mcp.command()
@click.argument("server_id")
@click.option("--workspace", "-w", "workspace_id", help="Workspace id (defaults to the active workspace).")
@click.pass_obj
def connect(ctx: CliContext, server_id: str, workspace_id: str | None) -> None:
    """Initialize an MCP session and show what the server reports."""
    _run(ctx, _connect, server_id, workspace_id)


async def _tools(ctx: CliContext, server_id: str, workspace_id: str | None, verbose: bool) -> None:
    client, _ = _open_client(ctx, server_id, workspace_id)
    await client.initialize()
    tools = await client.list_tools()

    if not tools:
        click.echo(f"MCP server {server_id} exposes no tools")
        return
    click.secho(f"Tools on {server_id} ({len(tools)})", fg="blue", bold=True)
    for tool in tools:
        for line in _format_tool(tool, verbose):
            click.echo(f"  {line}")
    click.echo()
    click.secho("Next steps:", fg="cyan")
    click.echo(f"  ntcli mcp call {server_id} {tools[0].name} key=value")


@mcp.command()
@click.argument("server_id")
@click.option("--workspace", "-w", "workspace_id", help="Workspace id (defaults to the active workspace).")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show parameter schemas.")
@click.pass_obj
def tools(ctx: CliContext, server_id: str, workspace_id: str | None, verbose: bool) -> None:
    """List tools available on an MCP server."""
    _run(ctx, _tools, server_id, workspace_id, verbose)


async def _call(
    ctx: CliContext,
    server_id: str,
    tool_name: str,
    arguments: dict[str, JSONValue],
    workspace_id: str | None,
) -> None:
    client, _ = _open_client(ctx, server_id, workspace_id)
    await client.initialize()

    started = time.monotonic()
    result = await client.call_tool(tool_name, arguments)
    duration_ms = int((time.monotonic() - started) * 1000)

    click.secho("Tool Call Result", fg="blue", bold=True)
    click.echo(f"  Server: {server_id}")
    click.echo(f"  Tool: {tool_name}")
    click.echo(f"  Duration: {duration_ms}ms")
    for key, value in arguments.items():
        click.echo(f"    {key}: {json.dumps(value)}")
    click.echo()

    if result.is_error:
        click.secho("Tool Error", fg="red", bold=True)
    else:
        click.secho("Tool Success", fg="green", bold=True)

    if not result.content:
        click.echo("(No output)")
    for block in result.content:
        if isinstance(block, TextContent):
            try:
                click.echo(json.dumps(json.loads(block.text), indent=2))
            except ValueError:
                click.echo(block.text)
        else:
            click.echo(f"[{block.type} content]")


@mcp.command()
@click.argument("server_id")
@click.argument("tool_name")
@click.argument("args", nargs=-1)
@click.option("--workspace", "-w", "workspace_id", help="Workspace id (defaults to the active workspace).")
@click.option("--arg", "-a", "arg_options", multiple=True, help="Tool argument as key=value (repeatable).")
@click.option("--json", "json_text", help="Tool arguments as a JSON object.")
@click.pass_obj
def call(
    ctx: CliContext,
    server_id: str,
    tool_name: str,
    args: tuple[str, ...],
    workspace_id: str | None,
    arg_options: tuple[str, ...],
    json_text: str | None,
) -> None:
    """Call TOOL_NAME on an MCP server, with arguments given as key=value pairs."""
    arguments = parse_tool_arguments(args, arg_options, json_text)
    _run(ctx, _call, server_id, tool_name, arguments, workspace_id)


async def _health(ctx: CliContext, server_id: str, workspace_id: str | None) -> None:
    connection = resolve_connection(ctx.store, server_id, workspace_id)
    runtime = MCPRuntimeClient(
        ctx.store.get_mcp_api_url(),
        connection.auth_token,
        http_client_factory=create_mcp_http_client,
    )
    status = await runtime.check_health(connection.workspace_id, server_id)
    click.echo(f"{server_id}: {status.get('status', 'unknown')}")
    if status.get("message"):
        click.echo(f"  {status['message']}")


@mcp.command()
@click.argument("server_id")
@click.option("--workspace", "-w", "workspace_id", help="Workspace id (defaults to the active workspace).")
@click.pass_obj
def health(ctx: CliContext, server_id: str, workspace_id: str | None) -> None:
    """Check the health endpoint of a deployed MCP server."""
    _run(ctx, _health, server_id, workspace_id)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

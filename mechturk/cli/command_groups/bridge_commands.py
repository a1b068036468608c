"""Controller commands: ping, call, tree and screenshot against a running target."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from mechturk.bridge.client import BridgeClient
from mechturk.cli.shared.logging_utils import configure_console_logging
from mechturk.config.loader import load_config
from mechturk.tools.live import LiveTools
from mechturk.tools.responses import ToolResponse
from mechturk.utils.exceptions import MechTurkError

T = TypeVar("T")


def _make_client(host: str | None, port: int | None, timeout_ms: int | None) -> BridgeClient:
    config = load_config()
    bridge = config.bridge.model_copy(
        update={
            k: v
            for k, v in {"host": host, "port": port, "request_timeout_ms": timeout_ms}.items()
            if v is not None
        }
    )
    return BridgeClient.from_config(bridge)


def _run_with_client(
    console: Console,
    host: str | None,
    port: int | None,
    timeout_ms: int | None,
    body: Callable[[BridgeClient], Awaitable[T]],
) -> T:
    try:
        client = _make_client(host, port, timeout_ms)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    async def run() -> T:
        try:
            return await body(client)
        finally:
            await client.disconnect()

    try:
        return asyncio.run(run())
    except MechTurkError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1) from e


def _print_tool_response(console: Console, response: ToolResponse) -> None:
    if response.is_error:
        console.print(f"[red]{response.text}[/red]")
        raise typer.Exit(1)
    console.print(response.text)


def register_bridge_commands(app: typer.Typer, console: Console) -> None:
    """Register controller-side bridge commands."""

    def host_opt():
        return typer.Option(None, "--host", "-h", help="Bridge host (default: bridge.host / GODOT_BRIDGE_HOST)")

    def port_opt():
        return typer.Option(None, "--port", "-p", help="Bridge port (default: bridge.port / GODOT_BRIDGE_PORT)")

    def timeout_opt():
        return typer.Option(None, "--timeout", help="Request timeout in milliseconds")

    def verbose_opt():
        return typer.Option(False, "--verbose", "-v", help="Verbose output")

    @app.command()
    def ping(
        host: str = host_opt(),
        port: int = port_opt(),
        timeout: int = timeout_opt(),
        verbose: bool = verbose_opt(),
    ) -> None:
        """Check that a target is reachable."""
        configure_console_logging(verbose)

        async def body(client: BridgeClient) -> Any:
            return await client.request("ping")

        result = _run_with_client(console, host, port, timeout, body)
        table = Table(title="Bridge")
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for key, value in (result or {}).items():
            table.add_row(str(key), str(value))
        console.print(table)

    @app.command()
    def call(
        method: str = typer.Argument(..., help="Bridge method name, e.g. get_scene_tree"),
        params: str = typer.Option(None, "--params", help="JSON object of method params"),
        host: str = host_opt(),
        port: int = port_opt(),
        timeout: int = timeout_opt(),
        verbose: bool = verbose_opt(),
    ) -> None:
        """Call a bridge method and print its raw result."""
        configure_console_logging(verbose)
        try:
            parsed = json.loads(params) if params else None
        except json.JSONDecodeError as e:
            console.print(f"[red]--params is not valid JSON: {e}[/red]")
            raise typer.Exit(1) from e

        async def body(client: BridgeClient) -> Any:
            return await client.request(method, parsed)

        result = _run_with_client(console, host, port, timeout, body)
        console.print(json.dumps(result, indent=2, ensure_ascii=False))

    @app.command()
    def tree(
        root: str = typer.Option("/root", "--root", help="Path to start from"),
        depth: int = typer.Option(5, "--depth", "-d", help="Maximum depth (-1 for unlimited)"),
        properties: bool = typer.Option(False, "--properties", help="Include basic node properties"),
        host: str = host_opt(),
        port: int = port_opt(),
        timeout: int = timeout_opt(),
        verbose: bool = verbose_opt(),
    ) -> None:
        """Print the live scene tree."""
        configure_console_logging(verbose)

        async def body(client: BridgeClient) -> ToolResponse:
            return await LiveTools(client).get_scene_tree(
                {"rootPath": root, "depth": depth, "includeProperties": properties}
            )

        _print_tool_response(console, _run_with_client(console, host, port, timeout, body))

    @app.command()
    def screenshot(
        output: str = typer.Option("screenshot.png", "--output", "-o", help="PNG file to write"),
        source: str = typer.Option("game", "--source", help="game or editor"),
        width: int = typer.Option(None, "--width", help="Resize width in pixels"),
        height: int = typer.Option(None, "--height", help="Resize height in pixels"),
        host: str = host_opt(),
        port: int = port_opt(),
        timeout: int = timeout_opt(),
        verbose: bool = verbose_opt(),
    ) -> None:
        """Capture the target's viewport to a PNG file."""
        configure_console_logging(verbose)

        async def body(client: BridgeClient) -> ToolResponse:
            return await LiveTools(client).capture_screenshot(
                {"outputPath": output, "source": source, "width": width, "height": height}
            )

        _print_tool_response(console, _run_with_client(console, host, port, timeout, body))

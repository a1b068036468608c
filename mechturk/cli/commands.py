"""CLI commands for mechturk.

`serve` runs the reference target; the bridge command group talks to a running
target as a controller; the config group manages ~/.mechturk/config.json.
"""

import asyncio
import errno
import socket

import typer
from rich.console import Console

from mechturk import __logo__, __version__
from mechturk.cli.command_groups.bridge_commands import register_bridge_commands
from mechturk.cli.command_groups.config_commands import register_config_commands
from mechturk.cli.shared.logging_utils import configure_console_logging, ensure_rotating_log_file

app = typer.Typer(
    name="mechturk",
    help=f"{__logo__} mechturk - remote control bridge for a running game engine",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} mechturk v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
):
    """mechturk - remote control bridge for a running game engine."""
    pass


def _port_in_use(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
            return False
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                return True
            raise


# ============================================================================
# Target
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option(None, "--host", "-h", help="Bind host (default: target.host from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Bridge port (default: target.port from config)"),
    frame_interval: int = typer.Option(None, "--frame-interval", help="Milliseconds between frames"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Run the reference target: a demo scene served over the bridge."""
    from mechturk.config.loader import load_config
    from mechturk.target.host import TargetHost

    try:
        config = load_config()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    target = config.target.model_copy(
        update={
            k: v
            for k, v in {"host": host, "port": port, "frame_interval_ms": frame_interval}.items()
            if v is not None
        }
    )

    if _port_in_use(target.host, target.port):
        console.print(
            f"[red]Port {target.port} is already in use.[/red] "
            f"Stop the process using it, or pass [cyan]--port[/cyan] (current: {target.host}:{target.port})."
        )
        raise typer.Exit(1)

    configure_console_logging(verbose, level=config.logging.level)
    if config.logging.file_sink:
        log_path = ensure_rotating_log_file("serve", level="DEBUG" if verbose else config.logging.level)
        console.print(f"[dim]Logs: {log_path}[/dim]")

    console.print(f"{__logo__} Starting mechturk target on ws://{target.host}:{target.port} ...")
    host_runtime = TargetHost(target)

    async def run():
        stop = asyncio.Event()
        try:
            await host_runtime.run(stop)
        except asyncio.CancelledError:
            stop.set()
            raise

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")


register_bridge_commands(app=app, console=console)
register_config_commands(app=app, console=console)


if __name__ == "__main__":
    app()

"""Config command group (init/show)."""

from __future__ import annotations

import json

import typer
from rich.console import Console

from mechturk.config.loader import (
    convert_to_camel,
    default_config,
    get_config_path,
    load_config,
    load_config_file,
    save_config,
)


def register_config_commands(app: typer.Typer, console: Console) -> None:
    """Register the config command group."""
    config_app = typer.Typer(help="Config helpers (init/show)")
    app.add_typer(config_app, name="config")

    @config_app.command("init")
    def config_init(
        force: bool = typer.Option(False, "--force", help="Overwrite an existing config with defaults"),
    ) -> None:
        path = get_config_path()
        if path.exists() and not force:
            # Refresh: keep the file's own values, add fields introduced since.
            try:
                existing = load_config_file(path)
            except ValueError as e:
                console.print(f"[red]{e}[/red]")
                raise typer.Exit(1) from e
            save_config(existing, path)
            console.print(f"[green]✓[/green] Config refreshed at {path} (existing values preserved)")
            return
        save_config(default_config(), path)
        console.print(f"[green]✓[/green] Created config at {path}")

    @config_app.command("show")
    def config_show() -> None:
        try:
            config = load_config()
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1) from e
        console.print(json.dumps(convert_to_camel(config.model_dump()), indent=2))

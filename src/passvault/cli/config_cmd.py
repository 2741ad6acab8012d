"""Config command: show the resolved configuration."""

from __future__ import annotations

import click
import yaml

from ..config import config_path
from ._common import console, resolve_config, store_option


def register_config_commands(main: click.Group) -> None:
    """Register the config command."""

    @main.command("config")
    @store_option
    def config(store_dir):
        """Print the configuration passvault would use."""
        resolved = resolve_config(store_dir)
        console.print(f"[dim]# {config_path()}[/]")
        click.echo(
            yaml.dump(resolved.model_dump(mode="json"), default_flow_style=False),
            nl=False,
        )

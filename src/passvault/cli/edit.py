"""Edit commands: insert, rm."""

from __future__ import annotations

import click
from rich.markup import escape

from ..errors import StoreError
from ._common import console, fail, open_store, open_vcs, resolve_entry, store_option


def register_edit_commands(main: click.Group) -> None:
    """Register the commands that change the store."""

    @main.command("insert")
    @click.argument("name")
    @store_option
    @click.option("--multiline", "-m", is_flag=True, help="Read the secret from stdin until EOF.")
    @click.option("--force", "-f", is_flag=True, help="Overwrite without asking.")
    def insert(name: str, store_dir, multiline: bool, force: bool):
        """Encrypt a new secret into the store as NAME.

        Examples:

            passvault insert web/github

            pwgen 24 1 | passvault insert -m web/gitlab
        """
        store = open_store(store_dir)

        if store.get(name.strip("/")) is not None and not force:
            if not click.confirm(f"An entry already exists for {name}. Overwrite it?"):
                console.print("[dim]Aborted.[/]")
                return

        if multiline:
            secret = click.get_text_stream("stdin").read()
        else:
            secret = click.prompt(
                f"Enter secret for {name}", hide_input=True, confirmation_prompt=True,
            )

        try:
            key = store.insert(open_vcs(store), name, secret)
        except (StoreError, ValueError) as exc:
            fail(f"Insert failed: {escape(str(exc))}")

        console.print(f"[green]Stored[/] [cyan]{escape(str(key))}[/]")

    @main.command("rm")
    @click.argument("name")
    @store_option
    @click.option("--force", "-f", is_flag=True, help="Skip confirmation.")
    def rm(name: str, store_dir, force: bool):
        """Remove the entry or directory NAME from the store.

        Examples:

            passvault rm web/github
        """
        store = open_store(store_dir)
        key = resolve_entry(store, name)
        if key is None or len(key) <= 1:
            fail(f"No entry: {escape(name)}")

        if not force and not click.confirm(f"Remove {key}?"):
            console.print("[dim]Aborted.[/]")
            return

        try:
            store.remove(open_vcs(store), key)
        except StoreError as exc:
            fail(f"Remove failed: {escape(str(exc))}")

        console.print(f"[green]Removed[/] [cyan]{escape(str(key))}[/]")

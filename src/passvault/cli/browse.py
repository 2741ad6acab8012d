"""Browse commands: ls, show, find."""

from __future__ import annotations

import click
from rich.markup import escape

from ._common import console, fail, open_store, resolve_entry, store_option


def register_browse_commands(main: click.Group) -> None:
    """Register the read-only store commands."""

    @main.command("ls")
    @click.argument("path", default="")
    @store_option
    @click.option("--long", "-l", "long_", is_flag=True, help="List every entry path instead of a tree.")
    def ls(path: str, store_dir, long_: bool):
        """List the store as a tree, or the subtree at PATH.

        Examples:

            passvault ls

            passvault ls web -l
        """
        store = open_store(store_dir)

        if long_:
            prefix = path.strip("/")
            for key in store.entries()[1:]:
                rendered = str(key)
                if not prefix or rendered == prefix or rendered.startswith(prefix + "/"):
                    click.echo(rendered)
            return

        text = store.render_subtree(path.strip("/"))
        if text is None:
            fail(f"No entry: {escape(path)}")
        click.echo(text, nl=False)

    @main.command("show")
    @click.argument("name")
    @store_option
    def show(name: str, store_dir):
        """Decrypt and print the entry NAME.

        NAME is tried as a full path first, then as a bare entry name.

        Examples:

            passvault show web/github
        """
        store = open_store(store_dir)
        key = resolve_entry(store, name)
        if key is None:
            fail(f"No entry: {escape(name)}")

        content = store.read(key)
        if content is None:
            fail(f"Unable to read {escape(str(key))}")
        click.echo(content, nl=not content.endswith("\n"))

    @main.command("find")
    @click.argument("query")
    @store_option
    @click.option("--name", "-n", "by_name", is_flag=True, help="Match entry names instead of full paths.")
    @click.option("--print", "-p", "print_", is_flag=True, help="Decrypt and print every match.")
    def find(query: str, store_dir, by_name: bool, print_: bool):
        """List entries whose path contains QUERY.

        Examples:

            passvault find git

            passvault find -n github --print
        """
        store = open_store(store_dir)
        matches = store.find_by_name(query) if by_name else store.find(query)
        matches = [m for m in matches if len(m) > 1]

        if not matches:
            console.print("[yellow]Nothing found![/]")
            return

        for key in matches:
            if not print_:
                click.echo(str(key))
                continue
            content = store.read(key)
            if content is None:
                console.print(f"[red]Unable to read {escape(str(key))}[/]")
                continue
            click.echo(f"{key}:\n{content}")

"""Search command: grep through decrypted secrets."""

from __future__ import annotations

import click
from rich.markup import escape

from ..search import SEARCH_TOOLS
from ._common import console, fail, open_store, resolve_config, store_option


def register_search_commands(main: click.Group) -> None:
    """Register the grep command."""

    @main.command("grep", context_settings={"ignore_unknown_options": True})
    @store_option
    @click.option(
        "--tool",
        type=click.Choice(sorted(SEARCH_TOOLS)),
        default=None,
        help="Search tool (default from config, usually grep).",
    )
    @click.argument("args", nargs=-1, required=True, type=click.UNPROCESSED)
    def grep(store_dir, tool, args):
        """Search every secret's content; ARGS go to the search tool.

        Examples:

            passvault grep -i username

            passvault grep --tool rg '^user:'
        """
        config = resolve_config(store_dir)
        store = open_store(store_dir, config)
        try:
            output = store.grep(tool or config.search_tool, list(args))
        except ValueError as exc:
            fail(escape(str(exc)))

        if not output:
            console.print("[yellow]No matches.[/]")
            return
        click.echo(output, nl=False)

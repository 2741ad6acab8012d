"""Git passthrough: run git inside the store directory."""

from __future__ import annotations

import sys

import click
from rich.markup import escape

from ..errors import VcsError
from ._common import fail, open_store, open_vcs, store_option


def register_git_commands(main: click.Group) -> None:
    """Register the git command."""

    @main.command("git", context_settings={"ignore_unknown_options": True})
    @store_option
    @click.argument("args", nargs=-1, type=click.UNPROCESSED)
    def git(store_dir, args):
        """Run a git command in the store.

        Examples:

            passvault git log --oneline

            passvault git push
        """
        store = open_store(store_dir)
        try:
            code = open_vcs(store).dispatch(list(args))
        except VcsError as exc:
            fail(escape(str(exc)))
        sys.exit(code)

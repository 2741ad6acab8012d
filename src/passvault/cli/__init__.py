"""
passvault CLI -- the password store from the command line.

The main Click group is defined here and every command group is
registered from its own module.

Entry point: passvault.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="passvault")
@click.option("--verbose", "-v", is_flag=True, help="Log every step.")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """passvault -- a pass(1) compatible password store.

    Secrets are GPG-encrypted files, grouped in directories,
    committed to git when the store is a repository.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .browse import register_browse_commands
from .edit import register_edit_commands
from .search_cmd import register_search_commands
from .git_cmd import register_git_commands
from .config_cmd import register_config_commands

register_browse_commands(main)
register_edit_commands(main)
register_search_commands(main)
register_git_commands(main)
register_config_commands(main)

"""Shared utilities for all CLI command modules.

Provides the Rich console instance and the helpers that turn command
options into an open store and its version-control collaborator.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from ..config import load_config, resolve_passphrase
from ..errors import StoreError
from ..models import StoreConfig
from ..store import SecretStore
from ..tree import PathKey
from ..vcs import VersionControl, from_path

console = Console()
logger = logging.getLogger("passvault.cli")

store_option = click.option(
    "--store",
    "store_dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Store directory (default: $PASSWORD_STORE_DIR or ~/.password-store).",
)


def resolve_config(store_dir: Optional[str]) -> StoreConfig:
    """Load config and apply the command-line overrides."""
    config = load_config()
    if store_dir:
        config.store_dir = Path(store_dir).expanduser()
    obj = click.get_current_context().find_object(dict) or {}
    if obj.get("verbose"):
        config.verbose = True
    return config


def open_store(store_dir: Optional[str], config: Optional[StoreConfig] = None) -> SecretStore:
    """Build the store or exit with a readable error.

    Pass ``config`` when the caller has already resolved it.
    """
    config = config or resolve_config(store_dir)
    try:
        return SecretStore.from_config(config, passphrase=resolve_passphrase(config))
    except (StoreError, ValueError) as exc:
        console.print(f"[bold red]Cannot open store:[/] {escape(str(exc))}")
        sys.exit(1)


def open_vcs(store: SecretStore) -> VersionControl:
    return from_path(store.root)


def resolve_entry(store: SecretStore, query: str) -> Optional[PathKey]:
    """Look ``query`` up as a full path first, then as a unique name."""
    key = store.get(query.strip("/"))
    if key is not None:
        return key
    named = [p for p in store.find_by_name(query) if p.name == query]
    if len(named) == 1:
        return named[0]
    if len(named) > 1:
        logger.info("'%s' is ambiguous: %s", query, ", ".join(str(p) for p in named))
    return None


def fail(message: str) -> None:
    """Print ``message`` in red and exit 1."""
    console.print(f"[red]{message}[/]")
    sys.exit(1)

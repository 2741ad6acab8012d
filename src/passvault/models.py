"""
Store data models -- entries, keys, and configuration.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENTRY_EXTENSION = "gpg"
ENTRY_SUFFIX = "." + ENTRY_EXTENSION
GPG_ID_FILE = ".gpg-id"
SKIPPED_ENTRIES = frozenset({".git"})
ROOT_LABEL = "(store root)"
DEFAULT_STORE_DIR = Path("~/.password-store")

ADD_MESSAGE = "Add given password {name} to store."
REMOVE_MESSAGE = "Remove {path} from store."


class StoreEntry(BaseModel):
    """One filesystem component of the store.

    ``name`` is the raw component, extension included. The rendered form
    drops the ``.gpg`` suffix; the root renders as ``""`` so that store
    paths read ``web/github`` rather than ``root/web/github``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    root: bool = False

    @classmethod
    def store_root(cls) -> StoreEntry:
        return cls(name="", root=True)

    @classmethod
    def from_path(cls, path: Path) -> StoreEntry:
        return cls(name=path.name)

    @property
    def label(self) -> str:
        """Display text, with the root shown as ``(store root)``."""
        return ROOT_LABEL if self.root else str(self)

    def __str__(self) -> str:
        if self.name.endswith(ENTRY_SUFFIX):
            return self.name[: -len(ENTRY_SUFFIX)]
        return self.name


class KeyInfo(BaseModel):
    """A key found by a crypto backend."""

    fingerprint: str
    key_id: str = ""
    user_ids: list[str] = Field(default_factory=list)
    has_secret: bool = False


class CryptoBackendType(str, Enum):
    """Supported encryption collaborators."""

    GPG = "gpg"
    PGPY = "pgpy"


class StoreConfig(BaseModel):
    """Everything needed to open a store, resolved before the store is built."""

    store_dir: Path = DEFAULT_STORE_DIR
    crypto_backend: CryptoBackendType = CryptoBackendType.GPG
    gpg_binary: str = "gpg"
    gpg_homedir: Optional[Path] = None
    keyring_dir: Optional[Path] = None
    passphrase_env: Optional[str] = None
    search_tool: str = "grep"
    verbose: bool = False

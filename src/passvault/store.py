"""
The Secret Store -- a pass(1) directory seen as a tree.

    ~/.password-store/
    ├── .gpg-id          # recipient for every encryption
    ├── .git/            # ignored
    ├── email.gpg        # leaf -> "email"
    └── web/             # branch -> "web"
        └── github.gpg   # leaf -> "web/github"

The directory is scanned once, when the store is built. From then on
lookups run against the in-memory tree; reads, writes and removals go to
the encrypted files and are recorded through the version-control
collaborator.
"""

from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO, Union

from .crypto import CryptoBackend, GpgBackend, create_crypto
from .errors import DecryptionError, ScanError, StoreIOError
from .models import (
    ADD_MESSAGE,
    ENTRY_SUFFIX,
    GPG_ID_FILE,
    REMOVE_MESSAGE,
    SKIPPED_ENTRIES,
    StoreConfig,
    StoreEntry,
)
from .render import TreeRenderer
from .search import ContentSearcher
from .tree import PathKey, Tree, collect_paths
from .vcs import VersionControl

logger = logging.getLogger("passvault.store")

StoreTree = Tree[StoreEntry]
PathQuery = Union[PathKey, str]


class SecretStore:
    """A password store rooted at one directory.

    Attributes:
        root: Store directory.
        tree: Snapshot of the store taken at construction.
        recipient: Key identifier from ``.gpg-id`` used for encryption.
        verbose: Log write and remove targets at INFO.
    """

    def __init__(
        self,
        root: Path,
        crypto: Optional[CryptoBackend] = None,
        verbose: bool = False,
    ):
        """Scan ``root`` and build the store.

        Args:
            root: Store directory.
            crypto: Encryption backend. Defaults to system gpg.
            verbose: Log write and remove targets.

        Raises:
            ScanError: If the store directory or a subdirectory is unreadable.
        """
        self.root = Path(root).expanduser()
        self.crypto = crypto or GpgBackend()
        self.verbose = verbose
        self.recipient = ""

        if not self.root.is_dir():
            raise ScanError(f"Store not found: {self.root}")

        self.tree: StoreTree = self._scan(self.root, frozenset())
        self.tree.name = StoreEntry.store_root()
        logger.debug("Scanned %s: %d node(s)", self.root, len(self.tree))

    @classmethod
    def from_config(
        cls,
        config: StoreConfig,
        crypto: Optional[CryptoBackend] = None,
        passphrase: Optional[str] = None,
    ) -> SecretStore:
        """Build a store from resolved configuration."""
        return cls(
            config.store_dir,
            crypto=crypto or create_crypto(config, passphrase=passphrase),
            verbose=config.verbose,
        )

    # -- construction ------------------------------------------------------

    def _scan(self, path: Path, ancestors: frozenset) -> StoreTree:
        node = Tree(StoreEntry.from_path(path))
        if not path.is_dir():
            return node

        ancestors = ancestors | {_resolved(path)}
        try:
            children = sorted(path.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            raise ScanError(f"Unable to read dir: {path}: {exc}") from exc

        for child in children:
            if child.name in SKIPPED_ENTRIES:
                continue
            if child.name == GPG_ID_FILE:
                self._load_recipient(child)
                continue
            if child.is_dir():
                if _resolved(child) in ancestors:
                    logger.warning("Skipping %s: it links back into the store", child)
                    continue
            elif not child.is_file() or child.suffix != ENTRY_SUFFIX:
                # Foreign files, broken links, sockets and the like.
                continue
            node.add(self._scan(child, ancestors))
        return node

    def _load_recipient(self, marker: Path) -> None:
        # One recipient for the whole store: the last marker scanned wins.
        try:
            lines = marker.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise ScanError(f"Unable to read {marker}: {exc}") from exc

        recipient = lines[0].strip() if lines else ""
        if self.recipient and recipient != self.recipient:
            logger.warning(
                "%s overrides recipient %s with %s", marker, self.recipient, recipient
            )
        self.recipient = recipient

    # -- lookup ------------------------------------------------------------

    @property
    def location(self) -> str:
        return str(self.root)

    def entries(self) -> list[PathKey]:
        """Every PathKey in the store, root first."""
        return collect_paths(self.tree)

    def leaves(self) -> list[PathKey]:
        """PathKeys of entries without children, the root excluded."""
        return [
            step.path
            for step in self.tree.walk()
            if step.depth > 0 and step.node.is_leaf
        ]

    def get(self, query: str) -> Optional[PathKey]:
        """Exact lookup by rendered path. ``""`` is the root."""
        return next((p for p in self.tree if str(p) == query), None)

    def find(self, query: str) -> list[PathKey]:
        """Every PathKey whose rendered path contains ``query``."""
        return [p for p in self.tree if query in str(p)]

    def find_by_name(self, query: str) -> list[PathKey]:
        """Every PathKey whose own name contains ``query``."""
        return [p for p in self.tree if query in p.name]

    def absolute_path(self, entry: PathQuery) -> Path:
        return self.root / str(entry)

    def entry_file(self, entry: PathQuery) -> Path:
        """The encrypted file backing ``entry``."""
        return self.root / f"{entry}{ENTRY_SUFFIX}"

    def _resolve(self, path: PathQuery) -> Optional[PathKey]:
        if isinstance(path, PathKey):
            return path
        return self.get(path.strip("/"))

    # -- content -----------------------------------------------------------

    def read(self, path: PathQuery) -> Optional[str]:
        """Decrypt and return the content of ``path``.

        Returns:
            The plaintext, or None when the file is missing or cannot be
            decrypted.
        """
        source = self.entry_file(path)
        try:
            data = source.read_bytes()
        except OSError as exc:
            logger.warning("Unable to read %s: %s", source, exc)
            return None

        try:
            plain = self.crypto.decrypt(data)
        except DecryptionError as exc:
            logger.warning("Unable to decrypt %s: %s", source, exc)
            return None
        return plain.decode("utf-8", errors="replace")

    def insert(
        self,
        vcs: VersionControl,
        name: str,
        data: Union[str, bytes],
    ) -> PathKey:
        """Encrypt ``data`` into a new entry and commit it.

        Args:
            vcs: Change-tracking collaborator.
            name: Entry path such as ``"web/github"``.
            data: Secret content.

        Returns:
            PathKey of the new entry.

        Raises:
            ValueError: If ``name`` is empty or escapes the store.
            EncryptionError: If no usable recipient key exists.
            StoreIOError: If the file cannot be written.
            VcsError: If staging or committing fails.
        """
        segments = _split_name(name)
        relative = "/".join(segments)
        target = self.entry_file(relative)

        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        ciphertext = self.crypto.encrypt(payload, self.recipient)

        if self.verbose:
            logger.info("Going to write file: %s", target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(ciphertext)
        except OSError as exc:
            raise StoreIOError(f"Could not write {target}: {exc}") from exc

        vcs.add(target)
        vcs.commit(ADD_MESSAGE.format(name=relative))

        self._attach(segments)
        return PathKey((self.tree.label, *segments))

    def _attach(self, segments: Sequence[str]) -> None:
        # Match on raw names: a directory "a" and a file "a.gpg" are
        # different nodes even though both render as "a".
        node = self.tree
        for segment in segments[:-1]:
            child = _child_named(node, segment)
            if child is None:
                child = _add_in_scan_order(node, StoreEntry(name=segment))
            node = child
        leaf = segments[-1] + ENTRY_SUFFIX
        if _child_named(node, leaf) is None:
            _add_in_scan_order(node, StoreEntry(name=leaf))

    def remove(self, vcs: VersionControl, path: PathQuery) -> bool:
        """Delete ``path`` from disk and the tree, then commit.

        The tree is only touched once the file is gone, so a failed
        deletion leaves the store view unchanged. When a directory and
        an entry share a name, the one listed first (the directory) is
        removed.

        Returns:
            False when ``path`` does not name a removable entry.

        Raises:
            StoreIOError: If the backing file or directory cannot be removed.
            VcsError: If staging or committing fails.
        """
        key = self._resolve(path)
        node = self.tree.subtree(key) if key is not None and len(key) > 1 else None
        parent = self.tree.subtree(key.parent) if node is not None else None
        if node is None or parent is None:
            logger.warning("Nothing to remove at '%s'", path)
            return False

        if self.verbose:
            logger.info("Remove %s", key)

        target = self._backing_path(key, node)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as exc:
            raise StoreIOError(f"Could not remove {target}: {exc}") from exc

        parent.detach(node)
        vcs.remove(target)
        vcs.commit(REMOVE_MESSAGE.format(path=key))
        return True

    def _backing_path(self, key: PathKey, node: StoreTree) -> Path:
        """The file or directory ``node`` was scanned from."""
        return self.absolute_path(key.parent) / node.name.name

    # -- presentation ------------------------------------------------------

    def render_subtree(self, path: PathQuery = "") -> Optional[str]:
        """Box-drawing rendition of the subtree at ``path``.

        Returns:
            The rendered text, or None when ``path`` does not resolve.
        """
        key = self._resolve(path)
        node = self.tree.subtree(key) if key is not None else None
        if node is None:
            logger.warning("No entry at '%s'", path)
            return None
        return TreeRenderer(label=lambda entry: entry.label).render(node)

    def print_tree(self, path: PathQuery = "", file: Optional[TextIO] = None) -> None:
        text = self.render_subtree(path)
        if text is not None:
            (file or sys.stdout).write(text)

    def grep(self, tool: str, args: Sequence[str]) -> str:
        """Run ``tool`` over every decrypted leaf.

        Raises:
            ValueError: If ``tool`` is not an allowed search tool.
        """
        searcher = ContentSearcher(tool, args)
        return searcher.search((path, self.read(path)) for path in self.leaves())


def _split_name(name: str) -> list[str]:
    segments = [s for s in name.strip().split("/") if s]
    if not segments:
        raise ValueError("Entry name must not be empty")
    if any(s in (".", "..") for s in segments):
        raise ValueError(f"Entry name must stay inside the store: {name!r}")
    if any(s in SKIPPED_ENTRIES or s == GPG_ID_FILE for s in segments):
        raise ValueError(f"Entry name uses a reserved component: {name!r}")
    return segments


def _resolved(path: Path) -> Path:
    try:
        return path.resolve()
    except (OSError, RuntimeError) as exc:
        raise ScanError(f"Unable to resolve {path}: {exc}") from exc


def _child_named(node: StoreTree, raw_name: str) -> Optional[StoreTree]:
    return next((c for c in node.children if c.name.name == raw_name), None)


def _add_in_scan_order(node: StoreTree, entry: StoreEntry) -> StoreTree:
    """Attach ``entry`` where a fresh scan would have put it."""
    child = Tree(entry)
    index = next(
        (i for i, c in enumerate(node.children) if c.name.name > entry.name),
        len(node.children),
    )
    node.insert(index, child)
    return child

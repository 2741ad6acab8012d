"""
Change tracking -- every write to the store gets recorded.

Git: each add/remove is staged and committed in the store directory,
    the same layout pass(1) uses. Commits are signed when
    ``pass.signcommits`` is set in the repo's git config.
NoVcs: the store is a plain directory; everything succeeds silently.

``add``/``remove`` only stage. ``commit`` has to be called separately.
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence, Union

from .errors import VcsError

logger = logging.getLogger("passvault.vcs")

PathLike = Union[str, Path]


class VersionControl(ABC):
    """Abstract change-tracking collaborator."""

    @abstractmethod
    def add(self, path: PathLike) -> int:
        """Stage a new or changed file. Returns the exit status."""

    @abstractmethod
    def remove(self, path: PathLike) -> int:
        """Stage the removal of a file or directory."""

    @abstractmethod
    def commit(self, message: str) -> int:
        """Record staged changes under ``message``."""

    @abstractmethod
    def dispatch(self, args: Sequence[str]) -> int:
        """Run a raw command against the repository, return its exit code."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""


class NoVcs(VersionControl):
    """For stores that are not under version control."""

    @property
    def name(self) -> str:
        return "none"

    def add(self, path: PathLike) -> int:
        return 0

    def remove(self, path: PathLike) -> int:
        return 0

    def commit(self, message: str) -> int:
        return 0

    def dispatch(self, args: Sequence[str]) -> int:
        logger.warning("Store is not a git repository, ignoring: %s", " ".join(args))
        return 0


class GitVcs(VersionControl):
    """Git working tree rooted at the store directory."""

    def __init__(self, repo: PathLike, sign: Optional[bool] = None):
        self.repo = Path(repo)
        self.sign = self._signing_enabled() if sign is None else sign

    @property
    def name(self) -> str:
        return "git"

    def _signing_enabled(self) -> bool:
        try:
            result = subprocess.run(
                ["git", "config", "--bool", "--get", "pass.signcommits"],
                capture_output=True, text=True, check=False, cwd=str(self.repo),
            )
        except OSError as exc:
            logger.debug("Could not read pass.signcommits: %s", exc)
            return False
        return result.stdout.strip().lower() == "true"

    def _git(self, *args: str) -> int:
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=False, cwd=str(self.repo),
            )
        except OSError as exc:
            raise VcsError(f"Could not run git: {exc}") from exc

        if result.returncode != 0:
            logger.error("Git command failed: %s -> %s", " ".join(cmd), result.stderr.strip())
            raise VcsError(
                f"'{' '.join(cmd)}' exited with {result.returncode}: {result.stderr.strip()}"
            )
        return result.returncode

    def add(self, path: PathLike) -> int:
        return self._git("add", str(path))

    def remove(self, path: PathLike) -> int:
        return self._git("rm", "-qr", str(path))

    def commit(self, message: str) -> int:
        args = ["commit", "-m", message]
        if self.sign:
            args.append("-S")
        return self._git(*args)

    def dispatch(self, args: Sequence[str]) -> int:
        # Output goes straight to the terminal.
        try:
            result = subprocess.run(["git", *args], check=False, cwd=str(self.repo))
        except OSError as exc:
            raise VcsError(f"Could not run git: {exc}") from exc
        return result.returncode


def is_git_repo(path: PathLike) -> bool:
    """True if ``path`` lies inside a git work tree."""
    try:
        result = subprocess.run(
            ["git", "-C", str(path), "rev-parse", "--is-inside-work-tree"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        logger.warning("git not available: %s", exc)
        return False
    return result.returncode == 0


def from_path(repo: PathLike) -> VersionControl:
    """Pick the collaborator for the store at ``repo``.

    Args:
        repo: Store root directory.

    Returns:
        GitVcs when ``repo`` is a git work tree, NoVcs otherwise.
    """
    if is_git_repo(repo):
        return GitVcs(repo)
    logger.info("'%s' is not a git repo, no vcs support", repo)
    return NoVcs()

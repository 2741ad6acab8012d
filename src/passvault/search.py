"""
Content search -- grep through secrets without writing them to disk.

Each leaf is decrypted in memory and piped into the search tool's
stdin. Only the tool's matches ever reach the caller.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Iterable, Optional, Sequence

from .tree import PathKey

logger = logging.getLogger("passvault.search")

SEARCH_TOOLS = frozenset({"grep", "egrep", "fgrep", "rg", "ag"})


class ContentSearcher:
    """Runs one external line-search tool over decrypted entries.

    Args:
        tool: Executable name, one of ``SEARCH_TOOLS``.
        args: Arguments passed through to the tool (pattern, flags).
        timeout: Seconds allowed per entry.

    Raises:
        ValueError: If ``tool`` is not an allowed search tool.
    """

    def __init__(self, tool: str, args: Sequence[str] = (), timeout: int = 30):
        if tool not in SEARCH_TOOLS:
            raise ValueError(
                f"Unsupported search tool: {tool} (choose from {', '.join(sorted(SEARCH_TOOLS))})"
            )
        self.tool = tool
        self.args = list(args)
        self.timeout = timeout

    def run(self, content: str) -> Optional[str]:
        """Search one decrypted entry.

        Returns:
            The tool's stdout, or None if the tool could not be run.
        """
        cmd = [self.tool, *self.args]
        try:
            result = subprocess.run(
                cmd,
                input=content,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.error("Search command failed: %s -> %s", " ".join(cmd), exc)
            return None
        return result.stdout

    def search(self, entries: Iterable[tuple[PathKey, Optional[str]]]) -> str:
        """Fold ``(path, content)`` pairs into one report.

        Entries without content are skipped. Every entry with output
        contributes a ``"<path>:\\n<output>\\n"`` block.
        """
        blocks: list[str] = []
        for path, content in entries:
            if content is None:
                logger.debug("Skipping unreadable entry %s", path)
                continue
            output = self.run(content)
            if output:
                blocks.append(f"{path}:\n{output}\n")
        return "".join(blocks)

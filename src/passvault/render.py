"""
Tree rendering -- the classic box-drawing view of a store.

    (store root)
    ├── email
    │   └── work
    └── web
        ├── github
        └── gitlab

Output follows insertion order exactly; nothing is sorted here.
"""

from __future__ import annotations

import sys
from typing import Callable, Optional, TextIO

from .tree import E, Tree

ENTRY = "├── "
LAST = "└── "
EMPTY = "    "
CONT = "│   "


class TreeRenderer:
    """Turns a ``Tree`` into indented text.

    Args:
        root_label: Text for the depth-0 line. Defaults to the node's label.
        label: Maps a node's element to its displayed text.
    """

    def __init__(
        self,
        root_label: Optional[str] = None,
        label: Callable[[object], str] = str,
    ):
        self.root_label = root_label
        self.label = label

    def lines(self, tree: Tree[E]) -> list[str]:
        out: list[str] = []
        for step in tree.walk():
            text = self.label(step.node.name)
            if step.depth == 0:
                out.append(self.root_label if self.root_label is not None else text)
                continue
            prefix = "".join(EMPTY if last else CONT for last in step.lineage)
            connector = LAST if step.is_last else ENTRY
            out.append(f"{prefix}{connector}{text}")
        return out

    def render(self, tree: Tree[E]) -> str:
        """Render ``tree`` as newline-terminated lines."""
        return "".join(f"{line}\n" for line in self.lines(tree))

    def print(self, tree: Tree[E], file: Optional[TextIO] = None) -> None:
        (file or sys.stdout).write(self.render(tree))

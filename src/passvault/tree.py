"""
Tree -- the hierarchy every secret hangs off.

A ``Tree`` is a name plus an ordered list of child trees. Each node owns
its children outright: no parent pointers, no sharing. Removing a node
drops it and everything beneath it.

A ``PathKey`` addresses a node from the root as a sequence of rendered
names. Lookup, insertion, removal and rendering all speak PathKeys, so
the rendering rule lives in exactly one place: ``str(node.name)``.

Traversal is pre-order and insertion-ordered:

    visit self -> descend -> each child in order -> ascend

``Tree.walk()`` yields that order lazily as ``TreeStep`` records. Path
collection, rendering and content search are folds over it.
``Tree.accept()`` drives the same order as visit/enter/exit events for
callers that prefer a visitor.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, Iterable, Iterator, Optional, TypeVar

E = TypeVar("E")

SEPARATOR = "/"


@dataclass(frozen=True)
class PathKey:
    """Ordered name segments identifying a node from the root.

    Empty segments are kept (the store root renders as ``""``) but are
    dropped when the key is rendered.
    """

    segments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        segments = tuple(self.segments)
        for segment in segments:
            if SEPARATOR in segment:
                raise ValueError(f"Path segment must not contain '/': {segment!r}")
        object.__setattr__(self, "segments", segments)

    @classmethod
    def parse(cls, text: str, root: str = "") -> PathKey:
        """Build a key from a slash-delimited string, prefixed by ``root``.

        Args:
            text: Rendered path such as ``"web/github"``.
            root: Rendered name of the tree root the path hangs under.

        Returns:
            PathKey starting with the root segment.
        """
        parts = [p for p in text.split(SEPARATOR) if p]
        return cls((root, *parts))

    def __str__(self) -> str:
        return SEPARATOR.join(s for s in self.segments if s)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[str]:
        return iter(self.segments)

    @property
    def name(self) -> str:
        """Last segment, or ``""`` for an empty key."""
        return self.segments[-1] if self.segments else ""

    @property
    def parent(self) -> PathKey:
        return PathKey(self.segments[:-1])

    def child(self, segment: str) -> PathKey:
        return PathKey((*self.segments, segment))

    def tail(self) -> PathKey:
        """The key with its first segment stripped."""
        return PathKey(self.segments[1:])


@dataclass(frozen=True)
class TreeStep(Generic[E]):
    """One pre-order stop of ``Tree.walk()``.

    Attributes:
        node: The visited tree node.
        path: Root-to-node key, the root included.
        depth: 0 for the node ``walk()`` started from.
        is_last: Whether the node is the last child of its parent.
        lineage: ``is_last`` flags of the ancestors between the start
            node (exclusive) and this node (exclusive).
    """

    node: "Tree[E]"
    path: PathKey
    depth: int
    is_last: bool
    lineage: tuple[bool, ...] = ()


class TreeVisitor(ABC, Generic[E]):
    """Receives traversal events from ``Tree.accept()``."""

    @abstractmethod
    def visit(self, node: "Tree[E]", is_last: bool) -> None:
        """Called once per node, before its children."""

    @abstractmethod
    def enter_level(self, is_last: bool) -> None:
        """Called before descending into a node's children."""

    @abstractmethod
    def exit_level(self) -> None:
        """Called after the last child of a node has been handled."""


@dataclass
class Tree(Generic[E]):
    """A node with a name and an ordered list of owned subtrees."""

    name: E
    children: list["Tree[E]"] = field(default_factory=list)

    @property
    def label(self) -> str:
        """The rendered name used in PathKeys."""
        return str(self.name)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    def __iter__(self) -> Iterator[PathKey]:
        for step in self.walk():
            yield step.path

    def add(self, child: Tree[E]) -> None:
        """Append ``child`` as the last subtree of this node."""
        self.children.append(child)

    def extend(self, children: Iterable[Tree[E]]) -> None:
        for child in children:
            self.add(child)

    def insert(self, index: int, child: Tree[E]) -> None:
        """Place ``child`` before the subtree currently at ``index``."""
        self.children.insert(index, child)

    def detach(self, child: Tree[E]) -> bool:
        """Drop the direct child that *is* ``child``.

        Siblings that merely render the same are left alone.
        """
        for index, candidate in enumerate(self.children):
            if candidate is child:
                del self.children[index]
                return True
        return False

    def remove(self, path: PathKey) -> bool:
        """Detach the node addressed by ``path``.

        ``path`` starts with this node's own name. A key of one segment
        (this node) or less is never removable.

        Args:
            path: Key of the node to drop.

        Returns:
            True if a node was detached.
        """
        if len(path) <= 1:
            return False
        if path.segments[0] != self.label:
            return False

        rest = path.tail()
        if len(rest) == 1:
            for index, child in enumerate(self.children):
                if child.label == rest.segments[0]:
                    del self.children[index]
                    return True
            return False

        return any(child.remove(rest) for child in self.children)

    def subtree(self, path: PathKey) -> Optional[Tree[E]]:
        """Return the node addressed by ``path`` or None."""
        if not path.segments or path.segments[0] != self.label:
            return None
        node = self
        for segment in path.segments[1:]:
            node = next((c for c in node.children if c.label == segment), None)
            if node is None:
                return None
        return node

    def child(self, label: str) -> Optional[Tree[E]]:
        """First direct child rendering as ``label``."""
        return next((c for c in self.children if c.label == label), None)

    def walk(self) -> Iterator[TreeStep[E]]:
        """Yield every node pre-order, starting with this one.

        Each call returns a fresh generator, so the walk can be restarted.
        """
        yield from self._walk(PathKey(), 0, False, ())

    def _walk(
        self,
        trace: PathKey,
        depth: int,
        is_last: bool,
        lineage: tuple[bool, ...],
    ) -> Iterator[TreeStep[E]]:
        path = trace.child(self.label)
        yield TreeStep(self, path, depth, is_last, lineage)

        below = lineage + (is_last,) if depth > 0 else lineage
        count = len(self.children)
        for index, child in enumerate(self.children):
            yield from child._walk(path, depth + 1, index + 1 == count, below)

    def accept(self, visitor: TreeVisitor[E], is_last: bool = False) -> None:
        """Drive ``visitor`` over this tree depth-first."""
        visitor.visit(self, is_last)
        visitor.enter_level(is_last)
        count = len(self.children)
        for index, child in enumerate(self.children):
            child.accept(visitor, index + 1 == count)
        visitor.exit_level()


def collect_paths(tree: Tree[E]) -> list[PathKey]:
    """Every PathKey in ``tree``, pre-order, root first."""
    return [step.path for step in tree.walk()]

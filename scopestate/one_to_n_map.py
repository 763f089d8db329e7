"""A map of 1-n parent/child relations whose edges carry data."""

from __future__ import annotations

from collections.abc import Hashable
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
E = TypeVar("E")


class RelationError(Exception):
    """Raised when a relation would be, or has become, inconsistent."""


class OneToNElementsMap(Generic[K, E]):
    """Every child has at most one parent; a parent may have any number of children."""

    def __init__(self) -> None:
        self.child_to_parent: dict[K, tuple[K, E]] = {}
        self.parent_to_children: dict[K, set[K]] = {}

    def __repr__(self) -> str:
        return f"OneToNElementsMap(child_to_parent={self.child_to_parent!r})"

    def clear(self) -> None:
        self.child_to_parent.clear()
        self.parent_to_children.clear()

    def insert(self, child: K, parent: K, edge: E) -> None:
        """Connect ``child`` to ``parent``; a child may only be connected once."""
        if child in self.child_to_parent:
            raise RelationError("this child already has a parent")
        self.child_to_parent[child] = (parent, edge)
        self.parent_to_children.setdefault(parent, set()).add(child)

    def remove(self, key: K) -> None:
        """Remove ``key`` together with the edges to its children and to its parent."""
        for child in self.parent_to_children.pop(key, set()):
            self.child_to_parent.pop(child, None)
        parent_edge = self.child_to_parent.pop(key, None)
        if parent_edge is not None:
            siblings = self.parent_to_children.get(parent_edge[0])
            if siblings is not None:
                siblings.discard(key)

    def parent_of(self, index: K) -> K | None:
        edge = self.child_to_parent.get(index)
        return None if edge is None else edge[0]

    def parent_edge_of(self, index: K) -> tuple[K, E] | None:
        return self.child_to_parent.get(index)

    def children_of(self, index: K) -> set[K]:
        return set(self.parent_to_children.get(index, ()))

    def children_edges_of(self, index: K) -> list[tuple[K, E]]:
        """Return the children of ``index`` with the edges leading to them."""
        result = []
        for child in self.parent_to_children.get(index, ()):
            try:
                _, edge = self.child_to_parent[child]
            except KeyError:
                raise RelationError("OneToNElementsMap got into inconsistent state") from None
            result.append((child, edge))
        return result

    def validate(self) -> None:
        """Raise ``RelationError`` if the two directions of the map disagree."""
        for parent, children in self.parent_to_children.items():
            for child in children:
                entry = self.child_to_parent.get(child)
                if entry is None:
                    raise RelationError(
                        f"parent_to_child stored mapping from {parent!r} to {child!r}, "
                        "which was not found in child_to_parent"
                    )
                if entry[0] != parent:
                    raise RelationError(
                        f"parent_to_child stored mapping from {parent!r} to {child!r}, "
                        f"but child_to_parent contained mapping to {entry[0]!r} instead"
                    )
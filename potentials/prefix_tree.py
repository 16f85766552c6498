"""
Prefix Tree

A tree of Unicode code points used as a presence index: the first level holds
every character that appears at index 0 of the stored strings, the second
level every character at index 1, and so on down the tree.

Nodes are created lazily on insertion and are never removed.  The tree stores
no values; it only answers "has a string with this path been added".
"""

from typing import Dict, Iterable, List, Optional, Set, Tuple


class PrefixNode:
    """One symbol in the tree plus the symbols that may follow it."""

    __slots__ = ("symbol", "children")

    def __init__(self, symbol: Optional[str]) -> None:
        self.symbol = symbol
        self.children: Dict[str, "PrefixNode"] = {}

    def child_nodes(self) -> List["PrefixNode"]:
        return list(self.children.values())

    def is_leaf(self) -> bool:
        return not self.children

    def __repr__(self) -> str:
        return f"PrefixNode({self.symbol!r}, children={len(self.children)})"


class PrefixTree:
    """Insert-only prefix tree keyed by code point."""

    def __init__(self, words: Iterable[str] = ()) -> None:
        # The root symbol is None, which no character of a str can equal.
        self.root = PrefixNode(None)
        for word in words:
            self.add(word)

    def add(self, s: str) -> None:
        """
        Add ``s`` to the tree.  The nth character of ``s`` lands on the nth
        level of the tree.  Adding the same string twice is a no-op.
        """
        node = self.root
        for c in s:
            child = node.children.get(c)
            if child is None:
                child = PrefixNode(c)
                node.children[c] = child
            node = child

    def contains(self, s: str) -> bool:
        """
        True if there is a path from the root whose symbols spell ``s``.

        The empty string is always contained.  A prefix of an added string is
        contained too: the tree does not mark where words end.
        """
        node = self.root
        for c in s:
            node = node.children.get(c)
            if node is None:
                return False
        return True

    def __contains__(self, s: str) -> bool:
        return self.contains(s)

    def words(self) -> Set[str]:
        """Every root-to-leaf string in the tree (used for dumps only)."""
        found: Set[str] = set()
        stack: List[Tuple[PrefixNode, str]] = [
            (child, child.symbol) for child in self.root.child_nodes()
        ]
        while stack:
            node, path = stack.pop()
            if node.is_leaf():
                found.add(path)
                continue
            for child in node.child_nodes():
                stack.append((child, path + child.symbol))
        return found

    def __len__(self) -> int:
        count = 0
        stack = self.root.child_nodes()
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.child_nodes())
        return count

    def __str__(self) -> str:
        """
        Level-ordered rendering of the tree, e.g. ``"w,o,r,d,"``.

        Every symbol at depth n is written before any symbol at depth n+1.
        Symbols within a level are sorted by code point.
        """
        parts: List[str] = []
        level = [self.root]
        while level:
            level = [child for node in level for child in node.child_nodes()]
            for symbol in sorted(node.symbol for node in level):
                parts.append(symbol)
                parts.append(",")
        return "".join(parts)

    def __repr__(self) -> str:
        return f"PrefixTree(nodes={len(self)})"

# -*- coding: utf-8 -*-
"""
dtreepy.node
============

The node structure of a built tree.

A :class:`TreeNode` is either a leaf, holding only the class distribution of
the training points that reached it, or an internal node, holding a split
descriptor and one child per branch.  Internal nodes keep their own class
distribution too; traversal answers with it whenever a query value cannot be
routed to a child (a missing value or an unknown category).

Nodes are created bottom-up by the builder and never change afterwards: the
children are stored in a tuple and the probability vector is read-only.
"""

from __future__ import annotations

from typing import Iterator

import numpy as np

from .splits import CategoricalSplitInfo, NumericSplitInfo


class TreeNode:
    """A node of a decision tree.

    Parameters
    ----------
    class_probabilities : array-like of float, shape (num_classes,)
        Weighted class distribution of the training points owned by the node.
    split : NumericSplitInfo or CategoricalSplitInfo or None
        Decision rule of an internal node; ``None`` for a leaf.
    children : sequence of TreeNode
        Children ordered by branch (left/right for numeric splits, category
        code for categorical splits).  Must be empty for a leaf.

    Attributes
    ----------
    class_probabilities : ndarray
    split : NumericSplitInfo or CategoricalSplitInfo or None
    children : tuple of TreeNode
    """

    __slots__ = ("class_probabilities", "split", "children")

    def __init__(self, class_probabilities,
                 split: NumericSplitInfo | CategoricalSplitInfo | None = None,
                 children=()):
        probs = np.array(class_probabilities, dtype=float)
        probs.setflags(write=False)
        children = tuple(children)
        if split is None and children:
            raise ValueError("a leaf cannot have children")
        if split is not None and len(children) != split.num_children:
            raise ValueError(
                f"split expects {split.num_children} children, got {len(children)}")
        self.class_probabilities = probs
        self.split = split
        self.children = children

    def __getstate__(self):
        return (np.array(self.class_probabilities), self.split, self.children)

    def __setstate__(self, state):
        probs, split, children = state
        probs = np.array(probs, dtype=float)
        probs.setflags(write=False)
        self.class_probabilities = probs
        self.split = split
        self.children = tuple(children)

    def __repr__(self) -> str:
        if self.is_leaf:
            return f"TreeNode(leaf, probabilities={self.class_probabilities.tolist()})"
        return f"TreeNode({self.split!r}, children={self.num_children})"

    @property
    def is_leaf(self) -> bool:
        return self.split is None

    @property
    def num_classes(self) -> int:
        return int(self.class_probabilities.shape[0])

    @property
    def num_children(self) -> int:
        return len(self.children)

    def child(self, index: int) -> "TreeNode":
        """Return child ``index``; raises ``IndexError`` outside ``[0, num_children)``."""
        index = int(index)
        if not 0 <= index < len(self.children):
            raise IndexError(
                f"child index {index} out of range for node with {len(self.children)} children")
        return self.children[index]

    def depth(self) -> int:
        """Number of edges on the longest root-to-leaf path."""
        if self.is_leaf:
            return 0
        return 1 + max(ch.depth() for ch in self.children)

    def num_nodes(self) -> int:
        return 1 + sum(ch.num_nodes() for ch in self.children)

    def num_leaves(self) -> int:
        return sum(1 for _ in self.iter_leaves())

    def iter_leaves(self) -> Iterator["TreeNode"]:
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                yield node
            else:
                stack.extend(reversed(node.children))

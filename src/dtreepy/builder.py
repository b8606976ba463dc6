# -*- coding: utf-8 -*-
"""
dtreepy.builder
===============

Recursive tree construction and tree traversal.

The builder works on a dataset laid out as ``(n_dimensions, n_points)`` with
one integer label in ``[0, num_classes)`` per point and optional non-negative
per-point weights.  Instead of copying data for every node it keeps a single
permutation of point indices: each node owns a contiguous range of that
permutation, and once a split is chosen the range is regrouped (stably) into
one contiguous sub-range per child before the children are built.

At every node the builder

1. computes the weighted class totals and the fitness of the unsplit node;
2. asks the strategy of every dimension (numeric or categorical, according to
   the :class:`~dtreepy.dataset_info.DatasetInfo`) for a split that beats the
   best gain seen so far, so ties go to the lowest dimension;
3. returns a leaf when no split improved or the node holds fewer than
   ``2 * min_leaf_size`` points, otherwise partitions and recurses.

Traversal (:func:`classify`, :func:`classify_batch`) only reads the tree.
"""

from __future__ import annotations

import numpy as np
from loguru import logger

from .dataset_info import DatasetInfo
from .exceptions import InvalidDatasetError
from .impurity import class_weight_sums, get_fitness_function
from .node import TreeNode
from .splits import AllCategoricalSplit, BestBinaryNumericSplit

DEFAULT_MIN_LEAF_SIZE: int = 20


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _normalize(counts: np.ndarray) -> np.ndarray:
    total = counts.sum()
    if total <= 0:
        return np.full(counts.shape[0], 1.0 / counts.shape[0])
    return counts / total


def partition_indices(indices, directions, num_children: int):
    """Stably regroup ``indices`` by child.

    Parameters
    ----------
    indices : ndarray of int
        Point indices owned by a node.
    directions : ndarray of int
        Child of each point, aligned with ``indices``; every entry must lie in
        ``[0, num_children)``.
    num_children : int

    Returns
    -------
    (ordered, ranges)
        ``ordered`` is a new array holding the points of child 0 first, then
        child 1, and so on, each group in its original relative order.
        ``ranges`` lists ``(offset, count)`` of every child inside ``ordered``.
    """
    directions = np.asarray(directions, dtype=np.intp)
    ordered = np.asarray(indices)[np.argsort(directions, kind="stable")]
    sizes = np.bincount(directions, minlength=num_children)
    offsets = np.concatenate(([0], np.cumsum(sizes)[:-1]))
    return ordered, [(int(o), int(s)) for o, s in zip(offsets, sizes)]


def _validate(data, labels, num_classes, weights, min_leaf_size, dataset_info):
    data = np.asarray(data, dtype=float)
    if data.ndim != 2:
        raise InvalidDatasetError(f"data must be 2-D (n_dimensions, n_points), got {data.ndim}-D")
    n_dims, n_points = data.shape
    if n_points == 0:
        raise InvalidDatasetError("cannot build a tree on zero points")

    num_classes = int(num_classes)
    if num_classes < 1:
        raise InvalidDatasetError("num_classes must be at least 1")

    labels = np.asarray(labels)
    if labels.ndim != 1 or labels.shape[0] != n_points:
        raise InvalidDatasetError(
            f"expected {n_points} labels, got array of shape {labels.shape}")
    if labels.size and not np.all(np.equal(np.mod(labels, 1), 0)):
        raise InvalidDatasetError("labels must be integers")
    labels = labels.astype(np.intp)
    if labels.min() < 0 or labels.max() >= num_classes:
        raise InvalidDatasetError(f"labels must lie in [0, {num_classes})")

    if weights is not None and len(weights) == 0:
        weights = None
    if weights is not None:
        weights = np.asarray(weights, dtype=float).ravel()
        if weights.shape[0] != n_points:
            raise InvalidDatasetError(
                f"expected {n_points} weights, got {weights.shape[0]}")
        if not np.all(np.isfinite(weights)) or np.any(weights < 0):
            raise InvalidDatasetError("weights must be finite and non-negative")

    min_leaf_size = int(min_leaf_size)
    if min_leaf_size < 1:
        raise InvalidDatasetError("min_leaf_size must be at least 1")

    if dataset_info is None:
        dataset_info = DatasetInfo(n_dims)
    elif dataset_info.dimensionality != n_dims:
        raise InvalidDatasetError(
            f"dataset info describes {dataset_info.dimensionality} dimensions, "
            f"data has {n_dims}")

    num_categories = np.zeros(n_dims, dtype=np.intp)
    for d in range(n_dims):
        col = data[d]
        if dataset_info.is_categorical(d):
            k = dataset_info.num_mappings(d)
            num_categories[d] = k
            if not (np.all(np.isfinite(col)) and np.all(col == np.floor(col))
                    and col.min() >= 0 and col.max() < k):
                raise InvalidDatasetError(
                    f"categorical dimension {d} must hold integer codes in [0, {k})")
        elif np.any(np.isnan(col)):
            raise InvalidDatasetError(f"numeric dimension {d} contains NaN")

    return data, labels, num_classes, weights, min_leaf_size, dataset_info, num_categories


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------
class TreeBuilder:
    """Builds a :class:`TreeNode` graph from a dataset.

    Parameters
    ----------
    data : array-like of float, shape (n_dimensions, n_points)
    labels : array-like of int, shape (n_points,)
    num_classes : int
    weights : array-like of float or None
        Per-point weights; ``None`` means unit weights.
    min_leaf_size : int, default=20
        Minimum number of points in every child of a split.
    dataset_info : DatasetInfo or None
        Dimension types.  ``None`` treats every dimension as numeric.
    fitness : {"gini", "information"} or fitness class, default="gini"
    no_recursion : bool, default=False
        Build a decision stump: split the root at most once.

    Raises
    ------
    InvalidDatasetError
        If the inputs violate a precondition of the builder.
    """

    def __init__(self, data, labels, num_classes: int, weights=None, *,
                 min_leaf_size: int = DEFAULT_MIN_LEAF_SIZE,
                 dataset_info: DatasetInfo | None = None,
                 fitness="gini", no_recursion: bool = False):
        (self.data, self.labels, self.num_classes, self.weights,
         self.min_leaf_size, self.dataset_info, self.num_categories) = _validate(
            data, labels, num_classes, weights, min_leaf_size, dataset_info)
        self.fitness = get_fitness_function(fitness)
        self.no_recursion = bool(no_recursion)
        self.order = np.arange(self.data.shape[1])
        if self.weights is not None and self.weights.sum() <= 0:
            logger.warning("All {} weights are zero; every node will predict a uniform distribution",
                           self.weights.shape[0])

    def build(self) -> TreeNode:
        """Build the tree over all points and return its root."""
        self.order = np.arange(self.data.shape[1])
        return self._build(0, self.order.shape[0], depth=0)

    def _find_split(self, idx, labels, weights, counts):
        """Return ``(gain, split_info)`` of the best split, or ``(baseline, None)``."""
        best_gain = self.fitness.evaluate_counts(counts)
        best_split = None
        for d in range(self.data.shape[0]):
            values = self.data[d, idx]
            if self.dataset_info.is_categorical(d):
                strategy = AllCategoricalSplit
                gain, aux = strategy.split_if_better(
                    best_gain, values, self.num_categories[d], labels,
                    self.num_classes, weights, self.min_leaf_size, self.fitness)
            else:
                strategy = BestBinaryNumericSplit
                gain, aux = strategy.split_if_better(
                    best_gain, values, labels, self.num_classes, weights,
                    self.min_leaf_size, self.fitness)
            if aux is not None:
                best_gain = gain
                best_split = strategy.make_split_info(d, aux)
        return best_gain, best_split

    def _build(self, begin: int, count: int, depth: int) -> TreeNode:
        idx = self.order[begin:begin + count]
        labels = self.labels[idx]
        weights = None if self.weights is None else self.weights[idx]
        counts = class_weight_sums(labels, self.num_classes, weights)
        probabilities = _normalize(counts)

        if count < 2 * self.min_leaf_size or (self.no_recursion and depth > 0):
            return TreeNode(probabilities)

        gain, split = self._find_split(idx, labels, weights, counts)
        if split is None:
            return TreeNode(probabilities)

        directions = split.directions(self.data[split.dimension, idx])
        ordered, ranges = partition_indices(idx, directions, split.num_children)
        self.order[begin:begin + count] = ordered
        logger.debug("depth={} points={} split on dimension {} ({}) gain={:.6f} children={}",
                     depth, count, split.dimension, split.split_type, gain,
                     split.num_children)

        children = [self._build(begin + offset, size, depth + 1)
                    for offset, size in ranges]
        return TreeNode(probabilities, split, children)


def build_tree(data, labels, num_classes: int, weights=None, *,
               min_leaf_size: int = DEFAULT_MIN_LEAF_SIZE,
               dataset_info: DatasetInfo | None = None,
               fitness="gini", no_recursion: bool = False) -> TreeNode:
    """Build a decision tree and return its root.

    See :class:`TreeBuilder` for the parameters.  Without ``dataset_info``
    every dimension is numeric; with it, categorical dimensions are split
    into one child per category.
    """
    return TreeBuilder(data, labels, num_classes, weights,
                       min_leaf_size=min_leaf_size, dataset_info=dataset_info,
                       fitness=fitness, no_recursion=no_recursion).build()


# -----------------------------------------------------------------------------
# Traversal
# -----------------------------------------------------------------------------
def classify(tree: TreeNode, point) -> tuple[int, np.ndarray]:
    """Classify a single point.

    Parameters
    ----------
    tree : TreeNode
        Root of a built tree.
    point : array-like of float, shape (n_dimensions,)

    Returns
    -------
    (label, probabilities)
        The most probable class (lowest index on ties) and a copy of the class
        distribution that answered.  When a value cannot be routed at an
        internal node (NaN, or a category outside ``[0, K)``) that node's own
        distribution answers.
    """
    point = np.asarray(point, dtype=float)
    node = tree
    while not node.is_leaf:
        direction = node.split.direction(point[node.split.dimension])
        if direction < 0:
            break
        node = node.children[direction]
    probabilities = np.array(node.class_probabilities)
    return int(np.argmax(probabilities)), probabilities


def classify_batch(tree: TreeNode, points) -> tuple[np.ndarray, np.ndarray]:
    """Classify every column of ``points``.

    Parameters
    ----------
    tree : TreeNode
    points : array-like of float, shape (n_dimensions, n_points)

    Returns
    -------
    labels : ndarray of int, shape (n_points,)
    probabilities : ndarray of float, shape (num_classes, n_points)
    """
    points = np.asarray(points, dtype=float)
    if points.ndim != 2:
        raise ValueError(f"points must be 2-D (n_dimensions, n_points), got {points.ndim}-D")
    n_points = points.shape[1]
    probabilities = np.empty((tree.num_classes, n_points), dtype=float)

    stack = [(tree, np.arange(n_points))]
    while stack:
        node, idx = stack.pop()
        if idx.size == 0:
            continue
        if node.is_leaf:
            probabilities[:, idx] = node.class_probabilities[:, None]
            continue
        directions = node.split.directions(points[node.split.dimension, idx])
        stuck = idx[directions < 0]
        probabilities[:, stuck] = node.class_probabilities[:, None]
        for k, child in enumerate(node.children):
            stack.append((child, idx[directions == k]))

    return np.argmax(probabilities, axis=0), probabilities

# -*- coding: utf-8 -*-
"""
dtreepy.splits
==============

Split strategies and the split descriptors stored in internal tree nodes.

A strategy looks at a single dimension of the points owned by a node and
answers one question: is there a way to split on this dimension that scores
strictly better than ``best_gain``?  It returns the (possibly unchanged) gain
together with an auxiliary value describing the winning split, or ``None``
when nothing better was found.

Two strategies are provided:

* :class:`BestBinaryNumericSplit` searches every threshold between two
  consecutive distinct values of a numeric dimension.
* :class:`AllCategoricalSplit` evaluates the K-way split that sends each
  category of a categorical dimension to its own child.

Gains are the weight-proportional average of the children's fitness values
(see :mod:`dtreepy.impurity`), so they live on the same scale as the fitness
of the unsplit node and a perfect split scores ``0``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .impurity import GiniGain

# Relative slack used when deciding whether a gain is a real improvement.
# Sums of identical child fitness values may differ from the parent's value
# in the last bits; those are ties, not improvements.
MIN_GAIN_IMPROVEMENT: float = 1e-12


def _improves(gain: float, best_gain: float) -> bool:
    return gain > best_gain + MIN_GAIN_IMPROVEMENT * max(1.0, abs(best_gain))


def _as_weights(weights, n: int) -> np.ndarray:
    if weights is None or len(weights) == 0:
        return np.ones(n, dtype=float)
    return np.asarray(weights, dtype=float)


# -----------------------------------------------------------------------------
# Split descriptors
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class NumericSplitInfo:
    """Binary split ``x[dimension] <= threshold`` (left) / ``>`` (right)."""

    dimension: int
    threshold: float

    split_type = "numeric"

    @property
    def num_children(self) -> int:
        return 2

    def direction(self, value) -> int:
        value = float(value)
        if np.isnan(value):
            return -1
        return 0 if value <= self.threshold else 1

    def directions(self, values) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        out = np.where(values <= self.threshold, 0, 1)
        out[np.isnan(values)] = -1
        return out


@dataclass(frozen=True)
class CategoricalSplitInfo:
    """K-way split sending category ``k`` of ``dimension`` to child ``k``."""

    dimension: int
    num_categories: int

    split_type = "categorical"

    @property
    def num_children(self) -> int:
        return self.num_categories

    def direction(self, value) -> int:
        value = float(value)
        if not np.isfinite(value):
            return -1
        idx = int(value)
        if idx != value or idx < 0 or idx >= self.num_categories:
            return -1
        return idx

    def directions(self, values) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        finite = np.isfinite(values)
        idx = np.where(finite, values, -1.0).astype(np.intp)
        ok = finite & (idx == values) & (idx >= 0) & (idx < self.num_categories)
        return np.where(ok, idx, -1)


# -----------------------------------------------------------------------------
# Numeric strategy
# -----------------------------------------------------------------------------
class BestBinaryNumericSplit:
    """Best single-threshold split of a numeric dimension."""

    @staticmethod
    def split_if_better(best_gain: float, values, labels, num_classes: int,
                        weights=None, min_leaf_size: int = 1,
                        fitness=GiniGain) -> tuple[float, float | None]:
        """
        Search the threshold that maximises the gain of a binary split.

        Points are sorted by value (stable for ties) and swept left to right
        while the weighted class totals of the left side are accumulated.  A
        cut is a candidate only between two different values and only when
        both sides keep at least ``min_leaf_size`` points.

        Parameters
        ----------
        best_gain : float
            Gain to beat, usually the fitness of the unsplit node.
        values : array-like of float, shape (n,)
            Column of the dimension being considered.
        labels : array-like of int, shape (n,)
        num_classes : int
        weights : array-like of float or None
            ``None`` or empty means unit weights.
        min_leaf_size : int
            Minimum number of points on each side of the cut.
        fitness : class
            Metric exposing ``evaluate_counts``.

        Returns
        -------
        (gain, threshold)
            ``(best_gain, None)`` when no cut is strictly better.  Otherwise the
            improved gain and the threshold, chosen as the midpoint between the
            two values around the cut.  Among equal gains the lowest threshold
            wins.
        """
        values = np.asarray(values, dtype=float)
        n = values.shape[0]
        min_leaf_size = max(int(min_leaf_size), 1)
        if n < 2 * min_leaf_size:
            return best_gain, None

        labels = np.asarray(labels, dtype=np.intp)
        w = _as_weights(weights, n)

        order = np.argsort(values, kind="mergesort")
        v = values[order]
        # Candidate cut ``i`` puts sorted points [0, i] on the left.
        cuts = np.arange(min_leaf_size - 1, n - min_leaf_size)
        cuts = cuts[v[cuts] != v[cuts + 1]]
        if cuts.size == 0:
            return best_gain, None

        M = np.zeros((n, num_classes), dtype=float)
        M[np.arange(n), labels[order]] = w[order]
        SW = M.cumsum(axis=0)
        total = SW[-1]
        total_weight = total.sum()
        if total_weight <= 0:
            return best_gain, None

        left = SW[cuts]
        right = total - left
        gains = (left.sum(axis=1) * fitness.evaluate_counts(left)
                 + right.sum(axis=1) * fitness.evaluate_counts(right)) / total_weight

        best = int(np.argmax(gains))
        gain = float(gains[best])
        if not _improves(gain, best_gain):
            return best_gain, None

        lo, hi = v[cuts[best]], v[cuts[best] + 1]
        threshold = 0.5 * (lo + hi)
        if not (lo <= threshold < hi):
            threshold = lo
        return gain, float(threshold)

    @staticmethod
    def num_children(aux) -> int:
        return 2

    @staticmethod
    def make_split_info(dimension: int, aux) -> NumericSplitInfo:
        return NumericSplitInfo(dimension=int(dimension), threshold=float(aux))

    @staticmethod
    def child_direction(value, aux) -> int:
        """Child of ``value`` under threshold ``aux``; ``-1`` for NaN."""
        return BestBinaryNumericSplit.make_split_info(0, aux).direction(value)


# -----------------------------------------------------------------------------
# Categorical strategy
# -----------------------------------------------------------------------------
class AllCategoricalSplit:
    """One child per category of a categorical dimension."""

    @staticmethod
    def split_if_better(best_gain: float, values, num_categories: int, labels,
                        num_classes: int, weights=None, min_leaf_size: int = 1,
                        fitness=GiniGain) -> tuple[float, int | None]:
        """
        Score the split that sends every category to its own child.

        The split is rejected when there are fewer than two categories, when
        any category holds fewer than ``min_leaf_size`` points, when a
        value is not an integer code in ``[0, num_categories)``, or when the
        weight-averaged fitness of the children is not strictly better than
        ``best_gain``.

        Returns
        -------
        (gain, num_categories)
            ``(best_gain, None)`` when the split is rejected.
        """
        num_categories = int(num_categories)
        min_leaf_size = max(int(min_leaf_size), 1)
        if num_categories < 2:
            return best_gain, None

        codes = np.asarray(values, dtype=float)
        if not (np.all(np.isfinite(codes)) and np.all(codes == np.floor(codes))
                and np.all((codes >= 0) & (codes < num_categories))):
            return best_gain, None
        cats = codes.astype(np.intp)
        n = cats.shape[0]
        if n < num_categories * min_leaf_size:
            return best_gain, None
        if np.any(np.bincount(cats, minlength=num_categories) < min_leaf_size):
            return best_gain, None

        labels = np.asarray(labels, dtype=np.intp)
        w = _as_weights(weights, n)
        counts = np.bincount(cats * num_classes + labels, weights=w,
                             minlength=num_categories * num_classes)
        counts = counts.reshape(num_categories, num_classes)
        child_weight = counts.sum(axis=1)
        total_weight = child_weight.sum()
        if total_weight <= 0:
            return best_gain, None

        gain = float(np.sum(child_weight * fitness.evaluate_counts(counts))
                     / total_weight)
        if not _improves(gain, best_gain):
            return best_gain, None
        return gain, num_categories

    @staticmethod
    def num_children(aux) -> int:
        return int(aux)

    @staticmethod
    def make_split_info(dimension: int, aux) -> CategoricalSplitInfo:
        return CategoricalSplitInfo(dimension=int(dimension), num_categories=int(aux))

    @staticmethod
    def child_direction(value, aux) -> int:
        return AllCategoricalSplit.make_split_info(0, aux).direction(value)

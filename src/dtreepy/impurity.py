# -*- coding: utf-8 -*-
"""
dtreepy.impurity
================

Impurity ("fitness") functions used to score a class distribution.

Both metrics return the *negated* impurity of a distribution, so that larger
values are better and a pure node scores exactly ``0``.  A split is then
scored by the weight-proportional average of its children's values, and the
builder keeps a split only when that average is strictly greater than the
value of the unsplit node.

Every metric works from a vector of weighted class totals.  The label-based
entry point :meth:`evaluate` only builds that vector (with unit weights when
no weights are given) and hands it to :meth:`evaluate_counts`, which is the
same routine the split strategies call on their running totals.
"""

from __future__ import annotations

import numpy as np


def class_weight_sums(labels, num_classes: int, weights=None) -> np.ndarray:
    """Return the total weight of each class.

    Parameters
    ----------
    labels : array-like of int
        Class ids in ``[0, num_classes)``.
    num_classes : int
        Length of the returned vector.
    weights : array-like of float or None
        Per-point weights.  ``None`` or an empty vector means unit weights.

    Returns
    -------
    ndarray of shape (num_classes,)
    """
    labels = np.asarray(labels, dtype=np.intp)
    if weights is None or len(weights) == 0:
        weights = np.ones(labels.shape[0], dtype=float)
    return np.bincount(labels, weights=np.asarray(weights, dtype=float),
                       minlength=num_classes)[:num_classes]


class GiniGain:
    """Negated Gini impurity, ``-(1 - sum_c p_c**2)``."""

    name = "gini"

    @staticmethod
    def evaluate_counts(counts) -> np.ndarray | float:
        counts = np.asarray(counts, dtype=float)
        total = counts.sum(axis=-1)
        safe = np.where(total > 0, total, 1.0)
        p = counts / np.expand_dims(safe, -1)
        value = -(1.0 - np.sum(p * p, axis=-1))
        value = np.where(total > 0, value, 0.0)
        return float(value) if value.ndim == 0 else value

    @staticmethod
    def evaluate(labels, num_classes: int, weights=None) -> float:
        if len(labels) == 0:
            return 0.0
        return GiniGain.evaluate_counts(
            class_weight_sums(labels, num_classes, weights))


class InformationGain:
    """Negated entropy in bits, ``sum_c p_c * log2(p_c)`` with ``0 log 0 = 0``."""

    name = "information"

    @staticmethod
    def evaluate_counts(counts) -> np.ndarray | float:
        counts = np.asarray(counts, dtype=float)
        total = counts.sum(axis=-1)
        safe = np.where(total > 0, total, 1.0)
        p = counts / np.expand_dims(safe, -1)
        logp = np.log2(np.where(p > 0, p, 1.0))
        value = np.sum(p * logp, axis=-1)
        value = np.where(total > 0, value, 0.0)
        return float(value) if value.ndim == 0 else value

    @staticmethod
    def evaluate(labels, num_classes: int, weights=None) -> float:
        if len(labels) == 0:
            return 0.0
        return InformationGain.evaluate_counts(
            class_weight_sums(labels, num_classes, weights))


_FITNESS_FUNCTIONS = {
    "gini": GiniGain,
    "information": InformationGain,
    "entropy": InformationGain,
}


def get_fitness_function(criterion):
    """Resolve ``criterion`` (a name or a metric class) to a metric class."""
    if isinstance(criterion, str):
        try:
            return _FITNESS_FUNCTIONS[criterion.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown criterion {criterion!r}; expected one of "
                f"{sorted(_FITNESS_FUNCTIONS)}") from None
    if hasattr(criterion, "evaluate_counts"):
        return criterion
    raise TypeError(f"criterion must be a name or a fitness class, got {criterion!r}")

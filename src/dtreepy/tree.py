# -*- coding: utf-8 -*-
"""
dtreepy.tree
============

Scikit-learn style classifier on top of the tree builder.

:class:`TreeClassifier` accepts the usual ``(n_samples, n_features)`` input
with arbitrary class labels and arbitrary (hashable) values in categorical
columns.  It encodes labels to ``0..C-1`` and categories to dense codes via a
:class:`~dtreepy.dataset_info.DatasetInfo`, transposes the data to the
``(n_dimensions, n_points)`` layout used by :mod:`dtreepy.builder` and builds
a single tree.  Numeric columns are split with the best binary threshold,
categorical columns with one child per category.

Besides ``fit``/``predict``/``predict_proba`` the classifier provides rule
tracing, rule export, pretty printing of the tree and Graphviz export.
"""

from __future__ import annotations

import contextlib

import numpy as np
from loguru import logger
from sklearn.base import BaseEstimator, ClassifierMixin

from .builder import DEFAULT_MIN_LEAF_SIZE, build_tree, classify_batch
from .dataset_info import DatasetInfo
from .exceptions import InvalidDatasetError, NotFittedError
from .impurity import get_fitness_function
from .logging import enable_logging
from .node import TreeNode


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _isnan_scalar(v) -> bool:
    return (v is None) or (isinstance(v, float) and np.isnan(v))

def _numeric_column(col) -> np.ndarray:
    if col.dtype.kind in "biuf":
        return col.astype(float)
    return np.array([np.nan if _isnan_scalar(v) else float(v) for v in col], dtype=float)


# -----------------------------------------------------------------------------
# Classifier
# -----------------------------------------------------------------------------
class TreeClassifier(ClassifierMixin, BaseEstimator):
    """
    Decision tree classifier for mixed numeric and categorical data.

    The tree is grown greedily: at every node each feature proposes its best
    split (a threshold for numeric features, one branch per category for
    categorical features) and the split with the highest gain is kept if it
    is strictly better than not splitting.  Growth stops when no split helps
    or when a node has fewer than ``2 * min_leaf_size`` samples.  Leaves
    store the weighted class distribution of their training samples.

    Parameters
    ----------
    min_leaf_size : int, default=20
        Minimum number of training samples in every child of a split.
    criterion : {"gini", "information", "entropy"}, default="gini"
        Impurity used to score splits.  ``"entropy"`` is an alias of
        ``"information"``.
    categorical_features : list[int|str] or None, default=None
        Indices or names of categorical input features.  If names are used
        ``feature_names`` must be provided.  All other features are numeric.
    feature_names : list[str] or None, default=None
        Optional feature names used by the rule and graph exports.
    decision_stump : bool, default=False
        Split the root at most once.
    verbose : int, default=0
        ``1`` logs a summary of the fitted tree to stderr, ``2`` also logs
        every split decision.

    Attributes
    ----------
    tree_ : TreeNode
        Root of the fitted tree.
    classes_ : ndarray
        Class labels, in the order used by :meth:`predict_proba`.
    n_features_ : int
    feature_names_ : list[str]
    categorical_features_ : list[int]
    dataset_info_ : DatasetInfo
        Dimension types and category codes learnt during ``fit``.

    Notes
    -----
    At prediction time a missing value (``None``/``NaN``) or a category never
    seen during training cannot be routed; the prediction is then the class
    distribution of the internal node where routing stopped.
    """

    def __init__(
        self,
        *,
        min_leaf_size: int = DEFAULT_MIN_LEAF_SIZE,
        criterion: str = "gini",
        categorical_features: list[int | str] | None = None,
        feature_names: list[str] | None = None,
        decision_stump: bool = False,
        verbose: int = 0,
    ):
        self.min_leaf_size = min_leaf_size
        self.criterion = criterion
        self.categorical_features = categorical_features
        self.feature_names = feature_names
        self.decision_stump = decision_stump
        self.verbose = verbose

    def fit(self, X, y, sample_weight=None, feature_names=None):
        """
        Build the tree from the training set ``(X, y)``.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training samples.  Categorical columns may hold any hashable
            values; numeric columns must be convertible to float.
        y : array-like of shape (n_samples,)
            Class labels.
        sample_weight : array-like of shape (n_samples,), optional
            Non-negative sample weights.  ``None`` means unit weights.
        feature_names : list[str], optional
            Overrides the ``feature_names`` given at construction time.

        Returns
        -------
        self
        """
        X = np.asarray(X)
        y = np.asarray(y)
        if X.ndim != 2:
            raise InvalidDatasetError(f"X must be 2-D, got {X.ndim}-D")
        if len(y) != X.shape[0]:
            raise InvalidDatasetError("y must have the same length as X")
        if sample_weight is not None:
            sample_weight = np.asarray(sample_weight, dtype=float)
            if len(sample_weight) != len(y):
                raise InvalidDatasetError("sample_weight must have the same length as y")
        get_fitness_function(self.criterion)

        n_features = X.shape[1]
        self.n_features_ = n_features
        names = feature_names if feature_names is not None else self.feature_names
        if names is not None:
            if len(names) != n_features:
                raise ValueError("feature_names length must match X.shape[1]")
            self.feature_names_ = list(names)
        else:
            self.feature_names_ = [f"f{i}" for i in range(n_features)]

        cf = self.categorical_features
        if cf is not None and len(cf) and isinstance(cf[0], str):
            if names is None:
                raise ValueError("feature_names must be provided when using categorical_features by name")
            name_to_idx = {n: i for i, n in enumerate(self.feature_names_)}
            self.categorical_features_ = sorted(name_to_idx[c] for c in cf)
        else:
            self.categorical_features_ = sorted(int(i) for i in (cf or []))

        if len(y) == 0:
            raise InvalidDatasetError("cannot build a tree on zero points")
        self.classes_, y_enc = np.unique(y, return_inverse=True)

        self.dataset_info_ = DatasetInfo(n_features)
        data = self._encode(X, grow=True)

        log_ctx = (enable_logging(level="DEBUG" if self.verbose > 1 else "INFO")
                   if self.verbose else contextlib.nullcontext())
        with log_ctx:
            self.tree_ = build_tree(
                data, y_enc, len(self.classes_), sample_weight,
                min_leaf_size=self.min_leaf_size,
                dataset_info=self.dataset_info_,
                fitness=self.criterion,
                no_recursion=self.decision_stump,
            )
            logger.info("Fitted tree on {} samples, {} features, {} classes: depth={} leaves={}",
                        X.shape[0], n_features, len(self.classes_),
                        self.tree_.depth(), self.tree_.num_leaves())
        return self

    def _encode(self, X, *, grow: bool) -> np.ndarray:
        """Return ``X`` as a ``(n_features, n_samples)`` float matrix."""
        X = np.asarray(X)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        if X.shape[1] != self.n_features_:
            raise ValueError(f"X has {X.shape[1]} features, expected {self.n_features_}")
        data = np.empty((self.n_features_, X.shape[0]), dtype=float)
        cats = set(self.categorical_features_)
        for j in range(self.n_features_):
            col = X[:, j]
            if j in cats:
                data[j] = self.dataset_info_.map_column(col, j, grow=grow)
            else:
                data[j] = _numeric_column(col)
        return data

    def _check_fitted(self) -> TreeNode:
        tree = getattr(self, "tree_", None)
        if tree is None:
            raise NotFittedError()
        return tree

    def predict(self, X):
        """
        Predict class labels for the provided samples.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Input samples.  Missing values may be represented by ``None`` or
            ``numpy.nan``.

        Returns
        -------
        ndarray of shape (n_samples,)
            Predicted class labels.

        Raises
        ------
        NotFittedError
            If the estimator has not been fitted.
        """
        proba = self.predict_proba(X)
        return self.classes_[np.argmax(proba, axis=1)]

    def predict_proba(self, X):
        """
        Predict class probabilities for the provided samples.

        Returns
        -------
        ndarray of shape (n_samples, n_classes)
            Class distribution of the node each sample ends in, columns ordered
            like :attr:`classes_`.
        """
        tree = self._check_fitted()
        _, proba = classify_batch(tree, self._encode(X, grow=False))
        return proba.T

    def get_depth(self) -> int:
        return self._check_fitted().depth()

    def get_n_leaves(self) -> int:
        return self._check_fitted().num_leaves()

    def predict_rule(self, X, feature_names=None):
        """
        Return the decision rule (antecedent) followed by each input instance.

        Each returned string is the conjunction of the conditions met from the
        root to the node that produced the prediction.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
        feature_names : list[str], optional
            Alternative names for the features.

        Returns
        -------
        list[str]
        """
        tree = self._check_fitted()
        data = self._encode(X, grow=False)
        fn = feature_names or self.feature_names_
        return [self._trace_rule(data[:, i], tree, fn) for i in range(data.shape[1])]

    def export_rules(self, *, feature_names=None, class_names=None):
        """
        Export every root-to-leaf path as ``<antecedent> => <predicted class>``.

        Parameters
        ----------
        feature_names : list[str], optional
        class_names : list[str], optional
            Names for the classes, ordered like :attr:`classes_`.

        Returns
        -------
        list[str]
        """
        tree = self._check_fitted()
        rules: list[str] = []
        self._collect_rules(tree, [], rules, feature_names or self.feature_names_, class_names)
        return rules

    def export_graphviz(self, filename: str | None = None, *, feature_names=None,
                        class_names=None, format: str = "png") -> str:
        """
        Export the tree structure in Graphviz format.

        Parameters
        ----------
        filename : str or None, default=None
            Basename of the output file (the extension is determined by
            ``format``).  If None, the DOT source is returned and no file is
            written.
        feature_names : list[str], optional
        class_names : list[str], optional
        format : str, default="png"
            Any Graphviz output format.  ``'dot'`` writes the DOT source
            without calling the external ``dot`` binary; for other formats a
            failed render falls back to writing a ``.dot`` file.

        Returns
        -------
        str
            Path to the written file, or the DOT source if filename is None.
        """
        tree = self._check_fitted()
        try:
            import graphviz
        except ImportError:
            raise RuntimeError("Graphviz is required for export_graphviz but not installed.")
        dot = graphviz.Digraph(format=format)
        self._add_graph_nodes(dot, tree, "0", feature_names or self.feature_names_, class_names)

        if filename is None:
            return dot.source
        if format.lower() == "dot":
            path = f"{filename}.dot"
            dot.save(path)
            return path
        try:
            dot.render(filename, cleanup=True)
            return f"{filename}.{format}"
        except (graphviz.ExecutableNotFound, graphviz.CalledProcessError) as exc:
            logger.warning("Graphviz render failed ({}); writing DOT source instead", exc)
            fallback_path = f"{filename}.dot"
            dot.save(fallback_path)
            return fallback_path

    def print_tree(self, feature_names=None, class_names=None):
        """Pretty-print the decision tree to ``stdout``."""
        tree = self._check_fitted()
        self._print_node(tree, "", feature_names or self.feature_names_, class_names)

    # ------------------------------------------------------------------
    # Rule tracing / Graphviz / printing helpers
    # ------------------------------------------------------------------
    def _feature_name(self, dim: int, fn) -> str:
        return fn[dim] if (fn is not None and 0 <= dim < len(fn)) else f"X[{dim}]"

    def _class_name(self, node: TreeNode, cn) -> str:
        k = int(np.argmax(node.class_probabilities))
        return str(cn[k]) if cn is not None else str(self.classes_[k])

    def _branch_conditions(self, node: TreeNode, fn) -> list[str]:
        split = node.split
        name = self._feature_name(split.dimension, fn)
        if split.split_type == "numeric":
            return [f"{name} <= {split.threshold:.4f}", f"{name} > {split.threshold:.4f}"]
        return [f"{name} == {self.dataset_info_.unmap_string(k, split.dimension)}"
                for k in range(split.num_categories)]

    def _trace_rule(self, x, node: TreeNode, fn=None):
        parts: list[str] = []
        while not node.is_leaf:
            direction = node.split.direction(x[node.split.dimension])
            if direction < 0:
                name = self._feature_name(node.split.dimension, fn)
                parts.append(f"{name} UNKNOWN")
                break
            parts.append(self._branch_conditions(node, fn)[direction])
            node = node.children[direction]
        return " AND ".join(parts) if parts else "<root>"

    def _collect_rules(self, node: TreeNode, parts, rules, fn, cn):
        if node.is_leaf:
            body = " AND ".join(parts) if parts else "<root>"
            rules.append(f"{body} => {self._class_name(node, cn)}")
            return
        for cond, child in zip(self._branch_conditions(node, fn), node.children):
            self._collect_rules(child, parts + [cond], rules, fn, cn)

    def _distribution_label(self, node: TreeNode, cn) -> str:
        names = cn if cn is not None else self.classes_
        return ", ".join(f"{c}: {p:.3f}" for c, p in zip(names, node.class_probabilities))

    def _add_graph_nodes(self, dot, node: TreeNode, name: str, fn, cn):
        if node.is_leaf:
            dot.node(name, f"class={self._class_name(node, cn)}\n{self._distribution_label(node, cn)}",
                     shape="box", style="filled", color="lightgrey")
            return
        split = node.split
        fname = self._feature_name(split.dimension, fn)
        dot.node(name, fname, shape="ellipse", style="filled", color="lightblue")
        if split.split_type == "numeric":
            edge_labels = [f"<= {split.threshold:.4f}", f"> {split.threshold:.4f}"]
        else:
            edge_labels = [str(self.dataset_info_.unmap_string(k, split.dimension))
                           for k in range(split.num_categories)]
        for k, (child, label) in enumerate(zip(node.children, edge_labels)):
            child_id = f"{name}_{k}"
            self._add_graph_nodes(dot, child, child_id, fn, cn)
            dot.edge(name, child_id, label=label)

    def _print_node(self, node: TreeNode, indent="", fn=None, cn=None):
        if node.is_leaf:
            print(f"{indent}Predict {self._class_name(node, cn)} | "
                  f"dist={{{self._distribution_label(node, cn)}}}")
            return
        for cond, child in zip(self._branch_conditions(node, fn), node.children):
            print(f"{indent}if {cond}:")
            self._print_node(child, indent + "  ", fn, cn)

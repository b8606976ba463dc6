# dtreepy/__init__.py
"""
dtreepy: decision tree induction for weighted, mixed numeric/categorical data.

Exports:
    - TreeClassifier (scikit-learn style estimator)
    - build_tree, classify, classify_batch, TreeBuilder (core engine)
    - TreeNode, NumericSplitInfo, CategoricalSplitInfo (tree structure)
    - GiniGain, InformationGain (impurity metrics)
    - BestBinaryNumericSplit, AllCategoricalSplit (split strategies)
    - DatasetInfo, Datatype (dimension types and category codes)
    - InvalidDatasetError, NotFittedError
    - enable_logging
"""
from .logging import enable_logging
from .exceptions import InvalidDatasetError, NotFittedError
from .impurity import GiniGain, InformationGain
from .splits import (AllCategoricalSplit, BestBinaryNumericSplit,
                     CategoricalSplitInfo, NumericSplitInfo)
from .dataset_info import DatasetInfo, Datatype
from .node import TreeNode
from .builder import TreeBuilder, build_tree, classify, classify_batch
from .tree import TreeClassifier

__all__ = [
    "TreeClassifier",
    "TreeBuilder", "build_tree", "classify", "classify_batch",
    "TreeNode", "NumericSplitInfo", "CategoricalSplitInfo",
    "GiniGain", "InformationGain",
    "BestBinaryNumericSplit", "AllCategoricalSplit",
    "DatasetInfo", "Datatype",
    "InvalidDatasetError", "NotFittedError",
    "enable_logging",
]
__version__ = "0.1.0"

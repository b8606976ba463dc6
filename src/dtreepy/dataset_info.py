# -*- coding: utf-8 -*-
"""
dtreepy.dataset_info
====================

Per-dimension type information for mixed numeric/categorical data.

The tree builder only ever sees real-valued matrices.  Categorical dimensions
are stored as dense integer codes ``0..K-1``; :class:`DatasetInfo` keeps track
of which dimensions are categorical, how many categories each one has and the
mapping between the original values (strings, or any hashable) and the codes.
"""

from __future__ import annotations

from enum import Enum

import numpy as np


def _category_key(value):
    # NaN never equals itself, so every missing value shares the key None
    if isinstance(value, (float, np.floating)) and np.isnan(value):
        return None
    return value


class Datatype(str, Enum):
    numeric = "numeric"
    categorical = "categorical"


class DatasetInfo:
    """Type table and category mappings for a dataset.

    Parameters
    ----------
    dimensionality : int
        Number of dimensions.  All of them start out numeric.

    Examples
    --------
    >>> info = DatasetInfo(2)
    >>> info.map_string("red", 1)
    0
    >>> info.map_string("blue", 1)
    1
    >>> info.type(1), info.num_mappings(1)
    (<Datatype.categorical: 'categorical'>, 2)
    """

    def __init__(self, dimensionality: int = 0):
        self.dimensionality = int(dimensionality)
        self._types = [Datatype.numeric] * self.dimensionality
        # dimension -> {value: code}, and the reverse list of values
        self._maps: dict[int, dict] = {}
        self._values: dict[int, list] = {}
        # category counts declared for already-encoded dimensions
        self._counts: dict[int, int] = {}

    def __repr__(self) -> str:
        cats = [d for d in range(self.dimensionality) if self.is_categorical(d)]
        return f"DatasetInfo(dimensionality={self.dimensionality}, categorical={cats})"

    def _check(self, dimension: int) -> int:
        dimension = int(dimension)
        if not 0 <= dimension < self.dimensionality:
            raise IndexError(
                f"dimension {dimension} out of range for dimensionality {self.dimensionality}")
        return dimension

    def type(self, dimension: int) -> Datatype:
        return self._types[self._check(dimension)]

    def set_type(self, dimension: int, datatype) -> None:
        self._types[self._check(dimension)] = Datatype(datatype)

    def is_categorical(self, dimension: int) -> bool:
        return self.type(dimension) is Datatype.categorical

    def map_string(self, value, dimension: int) -> int:
        """Return the code of ``value`` in ``dimension``, assigning a new one if unseen.

        Mapping a value marks the dimension categorical.  Missing values
        (``None`` or NaN) all share one code.
        """
        dimension = self._check(dimension)
        value = _category_key(value)
        self._types[dimension] = Datatype.categorical
        mapping = self._maps.setdefault(dimension, {})
        if value not in mapping:
            mapping[value] = len(mapping)
            self._values.setdefault(dimension, []).append(value)
        return mapping[value]

    def unmap_string(self, code: int, dimension: int):
        dimension = self._check(dimension)
        values = self._values.get(dimension, [])
        code = int(code)
        if not 0 <= code < len(values):
            raise KeyError(f"no value mapped to code {code} in dimension {dimension}")
        return values[code]

    def num_mappings(self, dimension: int) -> int:
        """Number of categories known for ``dimension`` (0 for numeric ones)."""
        dimension = self._check(dimension)
        if self._types[dimension] is not Datatype.categorical:
            return 0
        if dimension in self._maps:
            return len(self._maps[dimension])
        return self._counts.get(dimension, 0)

    def map_column(self, values, dimension: int, *, grow: bool = True) -> np.ndarray:
        """Encode a whole column.

        With ``grow=False`` values never seen before encode to ``-1``.
        """
        dimension = self._check(dimension)
        out = np.empty(len(values), dtype=float)
        for i, v in enumerate(values):
            if grow:
                out[i] = self.map_string(v, dimension)
            else:
                out[i] = self._maps.get(dimension, {}).get(_category_key(v), -1)
        return out

    @classmethod
    def from_categorical_dimensions(cls, dimensionality: int, dimensions,
                                    num_categories) -> "DatasetInfo":
        """Build an info for data whose categorical dimensions are already encoded.

        Parameters
        ----------
        dimensionality : int
        dimensions : sequence of int
            Categorical dimensions.
        num_categories : sequence of int
            Category count of each dimension in ``dimensions``.
        """
        info = cls(dimensionality)
        for d, k in zip(dimensions, num_categories):
            d = info._check(d)
            info._types[d] = Datatype.categorical
            info._counts[d] = int(k)
        return info

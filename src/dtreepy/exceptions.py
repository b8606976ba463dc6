"""Exceptions raised by dtreepy.

- InvalidDatasetError: the data handed to the tree builder breaks one of its
  preconditions (shape, label range, weights, category codes, ...).
- NotFittedError: an estimator was used for prediction or export before
  ``fit`` was called.

Both subclass ValueError, so callers written against plain ValueError keep
working.
"""

from __future__ import annotations


class InvalidDatasetError(ValueError):
    """Raised when a dataset cannot be used to build a tree.

    Attributes:
        reason (str): Human-readable description of the violated precondition.

    Examples:
        >>> err = InvalidDatasetError("labels must lie in [0, 3)")
        >>> err.reason
        'labels must lie in [0, 3)'
    """

    reason: str

    def __init__(self, reason: str) -> None:
        """Initialize InvalidDatasetError.

        Args:
            reason (str): Description of the violated precondition.
        """
        super().__init__(f"Invalid dataset: {reason}")
        self.reason = reason


class NotFittedError(ValueError):
    """Raised when an estimator is used before it has been fitted."""

    def __init__(self, message: str = "Estimator not fitted. Call fit(...) first.") -> None:
        super().__init__(message)
